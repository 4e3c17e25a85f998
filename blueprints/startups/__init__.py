"""
Startups blueprint - startup records, their budgets and dashboards
"""
from flask import Blueprint
from flask_login import login_required

startups_bp = Blueprint('startups', __name__, url_prefix='/startups')

# Require authentication for all routes in this blueprint
@startups_bp.before_request
@login_required
def require_login():
    pass

from blueprints.startups import routes
