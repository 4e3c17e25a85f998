"""
Spend Aggregation Service
=========================
Computes "spent" for budget slices and rolls it up per startup and platform.

Join rule
---------
Spent for a ``BudgetCategory`` is the sum of ``Expense.amount`` where

  - ``Expense.status == APPROVED``
  - ``Expense.startup_id`` is the slice's startup
  - ``Expense.category_id`` is the global ``Category`` the slice maps to

The slice maps to a global category through ``BudgetCategory.category_id``.
Slices that predate the link fall back to an exact, case-sensitive name match
(logged as a warning).  A slice with no matching category simply shows zero
spend.

Everything here is a pure read and never raises for missing sub-resources.
"""
from flask import current_app
from sqlalchemy import func

from extensions import db
from models.budgets import BudgetCategory
from models.categories import Category
from models.expenses import Expense, ExpenseStatus
from models.startups import Startup
from utils.budget_math import ZERO, as_decimal, remaining_budget, sum_amounts, utilization_percent
from utils.db_helpers import get_or_none


class SpendService:

    @staticmethod
    def resolve_category(budget_category):
        """Global ``Category`` a slice maps to, or ``None``."""
        if budget_category.category_id is not None:
            category = db.session.get(Category, budget_category.category_id)
            if category is not None:
                return category

        category = Category.query.filter_by(name=budget_category.name).first()
        if category is None:
            current_app.logger.warning(
                f'Budget category {budget_category.id} "{budget_category.name}" has no matching '
                f'global category; spend reported as 0'
            )
        else:
            current_app.logger.warning(
                f'Budget category {budget_category.id} "{budget_category.name}" matched by name only; '
                f'run "flask budgets link-categories" to link it'
            )
        return category

    @staticmethod
    def spent_for_category(startup_id, category_id):
        total = (
            db.session.query(func.coalesce(func.sum(Expense.amount), 0))
            .filter(
                Expense.startup_id == startup_id,
                Expense.category_id == category_id,
                Expense.status == ExpenseStatus.APPROVED,
            )
            .scalar()
        )
        return as_decimal(total)

    @staticmethod
    def get_spent_amount(budget_category_id, startup_id):
        """Approved spend against a slice; 0 when the slice or its category is missing."""
        budget_category = get_or_none(BudgetCategory, budget_category_id)
        if budget_category is None:
            return ZERO
        category = SpendService.resolve_category(budget_category)
        if category is None:
            return ZERO
        return SpendService.spent_for_category(startup_id, category.id)

    @staticmethod
    def count_matching_expenses(budget_category):
        """Expenses in any status filed against the slice (used to block deletion)."""
        category = SpendService.resolve_category(budget_category)
        if category is None:
            return 0
        return Expense.query.filter_by(
            startup_id=budget_category.startup_id,
            category_id=category.id,
        ).count()

    @staticmethod
    def get_totals_by_startup(startup_id):
        categories = BudgetCategory.query.filter_by(startup_id=startup_id).all()
        total_allocated = sum_amounts(c.max_budget for c in categories)
        total_spent = sum_amounts(SpendService.get_spent_amount(c.id, startup_id) for c in categories)
        return {
            'total_allocated': total_allocated,
            'total_spent': total_spent,
        }

    @staticmethod
    def get_platform_metrics():
        """Totals across every non-deleted startup."""
        startup_ids = [sid for (sid,) in db.session.query(Startup.id).filter(Startup.is_deleted.is_(False)).all()]
        totals = [SpendService.get_totals_by_startup(sid) for sid in startup_ids]
        return {
            'total_allocated': sum_amounts(t['total_allocated'] for t in totals),
            'total_spent': sum_amounts(t['total_spent'] for t in totals),
            'startup_count': len(startup_ids),
        }

    @staticmethod
    def describe(budget_category, spent):
        """Slice row with utilisation; over-budget slices are flagged, never blocked."""
        allocated = as_decimal(budget_category.max_budget)
        return {
            'id': budget_category.id,
            'name': budget_category.name,
            'category_id': budget_category.category_id,
            'allocated': allocated,
            'spent': spent,
            'remaining': remaining_budget(allocated, spent),
            'utilization_percent': utilization_percent(spent, allocated),
            'raw_utilization_percent': utilization_percent(spent, allocated, clamp=False),
            'is_over_budget': spent > allocated,
        }

    @staticmethod
    def list_with_spent(startup_id):
        categories = (
            BudgetCategory.query
            .filter_by(startup_id=startup_id)
            .order_by(BudgetCategory.created_at.desc(), BudgetCategory.id.desc())
            .all()
        )
        return [
            SpendService.describe(c, SpendService.get_spent_amount(c.id, startup_id))
            for c in categories
        ]
