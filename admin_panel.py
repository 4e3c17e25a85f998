"""
Flask-Admin back office for Incubator Finance
Accessible at /admin - restricted to users with role='admin'

Financial tables (budget slices, expenses, payment fields) are read-only here:
every write to them has to go through the services so that the allocation
ceiling and the approval workflows cannot be bypassed.
"""
from flask import abort, current_app
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_admin.theme import Bootstrap4Theme
from flask_login import current_user

from services.budget_service import BudgetService


def _is_admin():
    return current_user.is_authenticated and current_user.is_admin


# ---------------------------------------------------------------------------
# Base secure views
# ---------------------------------------------------------------------------

class SecureAdminIndexView(AdminIndexView):
    """Admin home page - checks for admin role before rendering."""

    @expose('/')
    def index(self):
        if not _is_admin():
            abort(403)
        return super().index()

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)


class SecureModelView(ModelView):
    """Full CRUD model view - admin only."""

    can_export = True
    page_size = 50
    column_display_pk = True

    def __init__(self, model, session, **kwargs):
        # Prefix endpoints so they cannot clash with the JSON blueprints
        if 'endpoint' not in kwargs:
            kwargs['endpoint'] = f'admin_{model.__name__.lower()}'
        super().__init__(model, session, **kwargs)

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)


class ReadOnlyModelView(SecureModelView):
    """Read-only model view for tables guarded by service invariants."""

    can_create = False
    can_edit = False
    can_delete = False


# ---------------------------------------------------------------------------
# Customised model views
# ---------------------------------------------------------------------------

class UserAdminView(SecureModelView):
    """Users - hide password hash and the payment workflow fields."""
    column_exclude_list = ['password_hash']
    form_excluded_columns = [
        'password_hash', 'payment_status', 'payment_proof_url', 'payment_rejection_reason',
        'payment_submitted_at', 'payment_reviewed_at', 'startups', 'notifications',
    ]
    column_searchable_list = ['email', 'name']
    column_filters = ['role', 'status', 'payment_status']
    column_list = [
        'id', 'name', 'email', 'role', 'status', 'payment_status',
        'payment_submitted_at', 'payment_reviewed_at', 'created_at',
    ]


class StartupAdminView(ReadOnlyModelView):
    column_searchable_list = ['name', 'industry']
    column_filters = ['status', 'is_deleted']
    column_list = ['id', 'name', 'industry', 'total_budget', 'status', 'is_deleted', 'created_at']
    form_excluded_columns = ['expenses', 'budget_categories']


class BudgetCategoryAdminView(ReadOnlyModelView):
    column_searchable_list = ['name']
    column_filters = ['startup_id', 'category_id']
    column_list = ['id', 'startup', 'name', 'category', 'max_budget', 'created_at']


class ExpenseAdminView(ReadOnlyModelView):
    column_searchable_list = ['description']
    column_filters = ['date', 'status', 'startup_id', 'category_id']
    column_default_sort = ('date', True)
    column_list = ['id', 'date', 'startup', 'category', 'amount', 'status', 'submitted_by', 'reviewed_at']


class CategoryAdminView(SecureModelView):
    """Global categories. Deletion goes through the API, which refuses categories in use."""
    can_delete = False
    column_searchable_list = ['name']
    column_filters = ['is_active']
    form_excluded_columns = ['expenses', 'budget_categories', 'created_at', 'updated_at']

    def after_model_change(self, form, model, is_created):
        # Slices named like this category move from the name fallback to the link
        linked = BudgetService.link_categories_by_name()
        if linked:
            current_app.logger.info(f'Admin panel: linked {linked} budget slice(s) to category "{model.name}"')


class NotificationAdminView(ReadOnlyModelView):
    column_filters = ['kind', 'is_read', 'user_id']
    column_default_sort = ('created_at', True)


# ---------------------------------------------------------------------------
# Admin factory
# ---------------------------------------------------------------------------

def init_admin(app, db):
    """Create the Flask-Admin instance and register all model views."""

    admin = Admin(
        app,
        name='Incubator Finance Admin',
        theme=Bootstrap4Theme(),
        index_view=SecureAdminIndexView(),
        url='/admin',
    )

    from models.users import User
    from models.startups import Startup
    from models.budgets import BudgetCategory
    from models.categories import Category
    from models.expenses import Expense
    from models.notifications import Notification
    from models.settings import Settings

    # Core
    admin.add_view(UserAdminView(User, db.session, name='Users', category='Core'))
    admin.add_view(StartupAdminView(Startup, db.session, name='Startups', category='Core'))

    # Finance
    admin.add_view(BudgetCategoryAdminView(BudgetCategory, db.session, name='Budget Categories', category='Finance'))
    admin.add_view(ExpenseAdminView(Expense, db.session, name='Expenses', category='Finance'))

    # Reference Data
    admin.add_view(CategoryAdminView(Category, db.session, name='Categories', category='Reference'))

    # Activity
    admin.add_view(NotificationAdminView(Notification, db.session, name='Notifications', category='Activity'))

    # Settings
    admin.add_view(SecureModelView(Settings, db.session, name='Settings', category='Settings'))

    return admin
