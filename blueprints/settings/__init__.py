"""
Settings blueprint - platform-wide settings
"""
from flask import Blueprint
from flask_login import login_required

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')

# Require authentication for all routes in this blueprint
@settings_bp.before_request
@login_required
def require_login():
    pass

from blueprints.settings import routes
