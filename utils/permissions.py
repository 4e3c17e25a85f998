"""
Caller identity helpers for the HTTP façade.

The finance services never inspect roles themselves (apart from the
"submitter must equal original author" rule on expense edits).  Every role
check happens here, before a service is called:

    resolve_caller()   -> current user, or 401 Unauthorized
    require_admin()    -> current user if admin, else 403 Forbidden
    @admin_required    -> decorator form of require_admin()

Students may only touch startups they are members of; ``require_startup_access``
enforces that for admin-or-member endpoints.
"""
from functools import wraps

from flask import abort
from flask_login import current_user


def resolve_caller():
    """Return the authenticated user or abort with 401."""
    if not current_user or not current_user.is_authenticated:
        abort(401)
    return current_user._get_current_object()


def require_admin():
    caller = resolve_caller()
    if not caller.is_admin:
        abort(403)
    return caller


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        require_admin()
        return view(*args, **kwargs)
    return wrapped


def require_startup_access(startup_id):
    """Admins see every startup; students only the ones they belong to."""
    from services.startup_service import StartupService

    caller = resolve_caller()
    if caller.is_admin:
        return caller
    if not StartupService.is_member(startup_id, caller.id):
        abort(403)
    return caller
