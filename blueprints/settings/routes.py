"""
Routes for platform settings
"""
from flask import jsonify
from blueprints.settings import settings_bp
from services.settings_service import SettingsService
from utils.permissions import admin_required
from utils.request_helpers import json_body
from utils.validation import to_bool


@settings_bp.route('/')
@admin_required
def index():
    return jsonify(SettingsService.get_settings())


@settings_bp.route('/', methods=['PUT', 'PATCH'])
@admin_required
def update():
    data = json_body()
    auto_approve = data.get('auto_approve_expenses')
    settings = SettingsService.update_settings(
        auto_approve_expenses=to_bool(auto_approve) if auto_approve is not None else None,
        platform_name=data.get('platform_name'),
        progress_update_frequency=data.get('progress_update_frequency'),
    )
    return jsonify(settings)
