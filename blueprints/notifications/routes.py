"""
Routes for the current user's in-app notifications
"""
from flask import jsonify
from blueprints.notifications import notifications_bp
from services.notification_service import NotificationService
from utils.permissions import resolve_caller
from utils.request_helpers import arg_bool, arg_int, json_body


@notifications_bp.route('/')
def index():
    caller = resolve_caller()
    notifications = NotificationService.list_for_user(
        caller.id,
        unread_only=bool(arg_bool('unread')),
        limit=arg_int('limit') or 50,
    )
    return jsonify([n.to_dict() for n in notifications])


@notifications_bp.route('/unread-count')
def unread_count():
    caller = resolve_caller()
    return jsonify({'count': NotificationService.unread_count(caller.id)})


@notifications_bp.route('/mark-read', methods=['POST'])
def mark_read():
    """Mark the given ``ids`` (or everything) as read."""
    caller = resolve_caller()
    updated = NotificationService.mark_read(caller.id, json_body().get('ids'))
    return jsonify({'updated': updated})
