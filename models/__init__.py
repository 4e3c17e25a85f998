# Models package - Import all models for Flask-SQLAlchemy

from models.budgets import BudgetCategory
from models.categories import Category
from models.expenses import Expense, ExpenseStatus
from models.notifications import Notification, NotificationKind
from models.settings import Settings
from models.startups import Startup, StartupStatus, startup_members
from models.users import User, UserRole, UserStatus, PaymentStatus

__all__ = [
    'BudgetCategory',
    'Category',
    'Expense',
    'ExpenseStatus',
    'Notification',
    'NotificationKind',
    'PaymentStatus',
    'Settings',
    'Startup',
    'StartupStatus',
    'User',
    'UserRole',
    'UserStatus',
    'startup_members',
]
