"""
Expenses blueprint - expense claims and their review
"""
from flask import Blueprint
from flask_login import login_required

expenses_bp = Blueprint('expenses', __name__, url_prefix='/expenses')

# Require authentication for all routes in this blueprint
@expenses_bp.before_request
@login_required
def require_login():
    pass

from blueprints.expenses import routes
