"""
Authentication blueprint (JSON session login for the API)
"""
from flask import Blueprint

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

from blueprints.auth import routes
