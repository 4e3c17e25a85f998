"""
Authentication Routes
Session login/logout for API clients
"""
from flask import jsonify
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf.csrf import generate_csrf
from . import auth_bp
from .forms import LoginForm
from models.users import User
from extensions import limiter


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token for the X-CSRFToken header on subsequent writes"""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")  # Rate limit login attempts
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({'error': 'validation_error', 'message': 'Invalid login form', 'details': form.errors}), 400

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()

    # Generic error to prevent user enumeration
    if not user or not user.check_password(form.password.data):
        return jsonify({'error': 'invalid_credentials', 'message': 'Invalid email or password.'}), 401

    if not login_user(user, remember=form.remember.data):
        return jsonify({'error': 'account_inactive', 'message': 'This account has been deactivated.'}), 403

    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())
