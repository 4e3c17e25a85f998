import os
import logging
import click
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify, send_from_directory
from flask.json.provider import DefaultJSONProvider
from flask_login import login_required
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException
from config import config
from extensions import db, migrate, login_manager, csrf, limiter


class FinanceJSONProvider(DefaultJSONProvider):
    """Serialise Decimal amounts as JSON numbers."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return float(o)
        return DefaultJSONProvider.default(o)


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = RotatingFileHandler(
            'logs/incubator_finance.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Incubator Finance startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('Incubator Finance startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.json = FinanceJSONProvider(app)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # API clients get a 401 instead of a redirect to a login page
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'unauthorized', 'message': 'Authentication required'}), 401

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models

    # Register blueprints
    from blueprints.auth import auth_bp
    from blueprints.startups import startups_bp
    from blueprints.budgets import budgets_bp
    from blueprints.categories import bp as categories_bp
    from blueprints.expenses import expenses_bp
    from blueprints.payments import payments_bp
    from blueprints.reports import reports_bp
    from blueprints.settings import settings_bp
    from blueprints.notifications import notifications_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(startups_bp)
    app.register_blueprint(budgets_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(notifications_bp)

    # Uploaded payment proofs and receipts (members only)
    @app.route(app.config['UPLOAD_URL_PREFIX'].rstrip('/') + '/<path:filename>')
    @login_required
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Register Flask-Admin (must come after db.init_app and all models are loaded)
    from admin_panel import init_admin
    init_admin(app, db)
    # Flask-Admin generates its own form tokens; exempt its blueprint from
    # Flask-WTF's global CSRF so the two don't conflict.
    csrf.exempt(app.blueprints['admin'])

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""
    from services.exceptions import FinanceError

    @app.errorhandler(FinanceError)
    def finance_error(error):
        db.session.rollback()
        if error.status_code >= 409 or error.status_code == 403:
            app.logger.warning(f'{error.code}: {error.message}')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        code = (error.name or 'error').lower().replace(' ', '_')
        return jsonify({'error': code, 'message': error.description}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return jsonify({'error': 'internal_server_error', 'message': 'An unexpected error occurred'}), 500

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'error': 'csrf_error', 'message': error.description}), 400


def register_commands(app):
    """Register Flask CLI commands."""
    from models.users import User, UserRole, UserStatus

    @app.cli.group()
    def users():
        """Manage user accounts and admin access."""
        pass

    @users.command('grant-admin')
    @click.argument('email')
    def grant_admin(email):
        """Grant the admin role to a user by EMAIL."""
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if user.is_admin:
            click.echo(f'"{user.name}" ({email}) is already an admin.')
            return
        user.role = UserRole.ADMIN
        db.session.commit()
        click.echo(f'SUCCESS: "{user.name}" ({email}) granted admin role.')

    @users.command('revoke-admin')
    @click.argument('email')
    def revoke_admin(email):
        """Demote an admin back to student by EMAIL."""
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if not user.is_admin:
            click.echo(f'"{user.name}" ({email}) is not an admin.')
            return
        user.role = UserRole.STUDENT
        db.session.commit()
        click.echo(f'SUCCESS: Admin role revoked from "{user.name}" ({email}).')

    @users.command('list-admins')
    def list_admins():
        """List all users with the admin role."""
        admins = User.query.filter_by(role=UserRole.ADMIN).order_by(User.id).all()
        if not admins:
            click.echo('No admins found.')
            return
        click.echo(f'{"ID":<5} {"Name":<25} {"Email":<40} {"Status":<8}')
        click.echo('-' * 80)
        for u in admins:
            click.echo(f'{u.id:<5} {u.name:<25} {u.email:<40} {u.status:<8}')

    @users.command('create')
    @click.argument('email')
    @click.argument('name')
    @click.option('--role', type=click.Choice(UserRole.ALL), default=UserRole.STUDENT, show_default=True)
    @click.password_option()
    def create_user(email, name, role, password):
        """Create a user account."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            click.echo(f'ERROR: A user with email "{email}" already exists', err=True)
            return
        user = User(
            email=email,
            name=name,
            role=role,
            status=UserStatus.ACTIVE if role == UserRole.ADMIN else UserStatus.PENDING,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'SUCCESS: Created {role} "{name}" ({email}) with id {user.id}.')

    @app.cli.group()
    def budgets():
        """Budget allocation maintenance."""
        pass

    @budgets.command('link-categories')
    def link_categories():
        """Link budget categories to global categories by exact name."""
        from services.budget_service import BudgetService
        linked = BudgetService.link_categories_by_name()
        click.echo(f'Linked {linked} budget categor{"y" if linked == 1 else "ies"}.')

    @app.cli.group('settings')
    def settings_cli():
        """Platform settings."""
        pass

    @settings_cli.command('auto-approve')
    @click.argument('state', type=click.Choice(['on', 'off']))
    def auto_approve(state):
        """Turn automatic expense approval on or off."""
        from services.settings_service import SettingsService
        SettingsService.update_settings(auto_approve_expenses=(state == 'on'))
        click.echo(f'Expense auto-approval is now {state}.')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    # Never use 0.0.0.0 with debug mode - it exposes the debugger to the network
    app.run(host='127.0.0.1', port=5000, debug=True)
