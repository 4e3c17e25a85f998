"""
Budget Allocation Service
=========================
Owns the per-startup ``BudgetCategory`` slices and the allocation invariant:

    sum(BudgetCategory.max_budget for a startup) <= Startup.total_budget

The check is a read-validate-write sequence, so every write that can move the
sum first takes a row lock on the owning ``Startup`` (``SELECT ... FOR UPDATE``)
and only then re-reads the sibling allocations.  Two admins allocating against
the same startup at once are serialised on that row; the second one sees the
first one's slice.

Deleting a slice is refused while expenses are filed against it (matched the
same way the spend engine matches them, see ``SpendService``).
"""
from flask import current_app
from sqlalchemy import func

from extensions import db
from models.budgets import BudgetCategory
from models.categories import Category
from models.startups import Startup
from services.exceptions import BudgetExceedsStartupError, BudgetHasExpensesError, NotFoundError
from services.spend_service import SpendService
from utils.budget_math import as_decimal
from utils.db_helpers import get_or_raise, lock_for_update
from utils.validation import require_text, to_amount


class BudgetService:

    @staticmethod
    def list_for_startup(startup_id):
        return (
            BudgetCategory.query
            .filter_by(startup_id=startup_id)
            .order_by(BudgetCategory.created_at.desc(), BudgetCategory.id.desc())
            .all()
        )

    @staticmethod
    def get(budget_category_id):
        return get_or_raise(BudgetCategory, budget_category_id, 'BudgetCategory')

    @staticmethod
    def get_total_allocated(startup_id):
        """Sum of ``max_budget`` across the startup's slices (Decimal)."""
        total = (
            db.session.query(func.coalesce(func.sum(BudgetCategory.max_budget), 0))
            .filter(BudgetCategory.startup_id == startup_id)
            .scalar()
        )
        return as_decimal(total)

    @staticmethod
    def _clean_name(name):
        min_length = current_app.config.get('CATEGORY_NAME_MIN_LENGTH', 2)
        return require_text(name, 'name', min_length=min_length, max_length=100)

    @staticmethod
    def _lock_startup(startup_id):
        startup = lock_for_update(Startup, startup_id, 'Startup')
        if startup.is_deleted:
            raise NotFoundError('Startup', startup_id)
        return startup

    @staticmethod
    def create_category(startup_id, name, max_budget):
        """
        Allocate a new slice of a startup's budget.

        Raises:
            ValidationError:            empty name / negative amount
            NotFoundError:              startup missing or soft-deleted
            BudgetExceedsStartupError:  existing allocations + max_budget > total_budget
        """
        name = BudgetService._clean_name(name)
        max_budget = to_amount(max_budget, 'max_budget', allow_zero=True)

        try:
            startup = BudgetService._lock_startup(startup_id)
            ceiling = as_decimal(startup.total_budget)
            attempted_total = BudgetService.get_total_allocated(startup.id) + max_budget
            if attempted_total > ceiling:
                raise BudgetExceedsStartupError(attempted_total, ceiling)

            budget_category = BudgetCategory(
                startup_id=startup.id,
                name=name,
                max_budget=max_budget,
                category=Category.query.filter_by(name=name).first(),
            )
            db.session.add(budget_category)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f'Budget category {budget_category.id} "{name}" allocated {max_budget} '
            f'for startup {startup_id} (total {attempted_total}/{ceiling})'
        )
        return budget_category

    @staticmethod
    def update_category(budget_category_id, name=None, max_budget=None):
        """
        Rename a slice and/or change its ceiling.

        A new ``max_budget`` is validated as
        ``(current total - this slice) + new value <= total_budget``.
        """
        budget_category = BudgetService.get(budget_category_id)
        if name is not None:
            name = BudgetService._clean_name(name)
        if max_budget is not None:
            max_budget = to_amount(max_budget, 'max_budget', allow_zero=True)

        try:
            if max_budget is not None:
                startup = BudgetService._lock_startup(budget_category.startup_id)
                db.session.refresh(budget_category)
                ceiling = as_decimal(startup.total_budget)
                current_total = BudgetService.get_total_allocated(startup.id)
                other_total = current_total - as_decimal(budget_category.max_budget)
                attempted_total = other_total + max_budget
                if attempted_total > ceiling:
                    raise BudgetExceedsStartupError(attempted_total, ceiling)
                budget_category.max_budget = max_budget

            if name is not None and name != budget_category.name:
                budget_category.name = name
                budget_category.category = Category.query.filter_by(name=name).first()

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Budget category {budget_category.id} updated')
        return budget_category

    @staticmethod
    def delete_category(budget_category_id):
        budget_category = BudgetService.get(budget_category_id)
        expense_count = SpendService.count_matching_expenses(budget_category)
        if expense_count:
            raise BudgetHasExpensesError(budget_category.id, expense_count)

        try:
            db.session.delete(budget_category)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(f'Budget category {budget_category_id} deleted')

    @staticmethod
    def link_categories_by_name(commit=True):
        """
        One-off migration of the name join to the ``category_id`` link.

        Every slice without a link is attached to the global category with the
        exact same name, if one exists.  Returns the number of slices linked.
        """
        unlinked = BudgetCategory.query.filter(BudgetCategory.category_id.is_(None)).all()
        if not unlinked:
            return 0

        by_name = {c.name: c for c in Category.query.filter(
            Category.name.in_({bc.name for bc in unlinked})
        ).all()}

        linked = 0
        for bc in unlinked:
            category = by_name.get(bc.name)
            if category is not None:
                bc.category_id = category.id
                linked += 1

        if commit:
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
        return linked

    @staticmethod
    def list_with_spent(startup_id):
        """Slices of a startup with spent / remaining / utilisation figures."""
        return SpendService.list_with_spent(startup_id)
