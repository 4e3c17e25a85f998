"""
Payments blueprint - proof-of-payment upload and review
"""
from flask import Blueprint
from flask_login import login_required

payments_bp = Blueprint('payments', __name__, url_prefix='/payments')

# Require authentication for all routes in this blueprint
@payments_bp.before_request
@login_required
def require_login():
    pass

from blueprints.payments import routes
