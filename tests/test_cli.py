"""
Tests for the Flask CLI commands.
"""
from extensions import db
from models.budgets import BudgetCategory
from models.categories import Category
from models.users import User
from services.settings_service import SettingsService


class TestUserCommands:
    def test_grant_and_revoke_admin(self, app, student):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['users', 'grant-admin', 'student@example.com'])
        assert 'SUCCESS' in result.output
        assert db.session.get(User, student.id).is_admin

        result = runner.invoke(args=['users', 'list-admins'])
        assert 'student@example.com' in result.output

        runner.invoke(args=['users', 'revoke-admin', 'student@example.com'])
        assert not db.session.get(User, student.id).is_admin

    def test_unknown_email(self, app):
        result = app.test_cli_runner().invoke(args=['users', 'grant-admin', 'ghost@example.com'])
        assert 'No user found' in result.output

    def test_create_user(self, app):
        result = app.test_cli_runner().invoke(
            args=['users', 'create', 'New@Example.com', 'New Admin', '--role', 'admin', '--password', 'Secret123!'],
        )
        assert 'SUCCESS' in result.output
        user = User.query.filter_by(email='new@example.com').one()
        assert user.is_admin
        assert user.check_password('Secret123!')


class TestMaintenanceCommands:
    def test_link_categories(self, app, startup):
        db.session.add(BudgetCategory(startup_id=startup.id, name='Legal', max_budget=10))
        db.session.add(Category(name='Legal'))
        db.session.commit()
        result = app.test_cli_runner().invoke(args=['budgets', 'link-categories'])
        assert 'Linked 1 budget category.' in result.output

    def test_auto_approve_toggle(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=['settings', 'auto-approve', 'on'])
        assert SettingsService.get_auto_approve_expenses() is True
        runner.invoke(args=['settings', 'auto-approve', 'off'])
        assert SettingsService.get_auto_approve_expenses() is False
