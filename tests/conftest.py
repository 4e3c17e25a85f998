"""
Shared pytest fixtures for the Incubator Finance test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
from datetime import date
from decimal import Decimal

import pytest
from flask import g
from flask_login import FlaskLoginClient

from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    application.test_client_class = FlaskLoginClient
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()
    # The app context outlives requests, so per-request state lives on in g
    g.pop('_login_user', None)
    g.pop('notification_outbox', None)


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

def make_user(email, name, role='student', status='ACTIVE'):
    from models.users import User
    u = User(email=email, name=name, role=role, status=status)
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def admin(app):
    return make_user('admin@example.com', 'Admin User', role='admin')


@pytest.fixture
def student(app):
    return make_user('student@example.com', 'Student User')


@pytest.fixture
def other_student(app):
    return make_user('other@example.com', 'Other Student')


@pytest.fixture
def startup(app, student):
    """Startup with a 1000 budget and ``student`` as its only member."""
    from models.startups import Startup
    s = Startup(name='Acme Robotics', industry='Hardware', total_budget=Decimal('1000.00'))
    s.students = [student]
    _db.session.add(s)
    _db.session.commit()
    return s


@pytest.fixture
def category(app):
    from models.categories import Category
    c = Category(name='Travel', description='Trips and transport', is_active=True)
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture
def make_expense(app):
    """Insert an expense row directly, bypassing the submission workflow."""
    from models.expenses import Expense

    def _make(startup, category, submitted_by, amount, status='PENDING', expense_date=None,
              description='Train tickets'):
        e = Expense(
            amount=Decimal(str(amount)),
            description=description,
            date=expense_date or date(2026, 3, 10),
            category_id=category.id,
            startup_id=startup.id,
            submitted_by_id=submitted_by.id,
            status=status,
        )
        _db.session.add(e)
        _db.session.commit()
        return e

    return _make


class RecordingMailer:
    """Stand-in for the outbound mail collaborator."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, to, subject, body):
        if self.fail:
            raise ConnectionError('SMTP server unavailable')
        self.sent.append((to, subject, body))


@pytest.fixture
def mailer(app):
    m = RecordingMailer()
    app.extensions['mailer'] = m
    yield m
    app.extensions.pop('mailer', None)


@pytest.fixture
def failing_mailer(app):
    m = RecordingMailer(fail=True)
    app.extensions['mailer'] = m
    yield m
    app.extensions.pop('mailer', None)


@pytest.fixture
def client_for(app):
    """Logged-in test client for *user* (Flask-Login's FlaskLoginClient)."""
    def _client(user=None):
        g.pop('_login_user', None)
        if user is None:
            return app.test_client()
        return app.test_client(user=user)
    return _client
