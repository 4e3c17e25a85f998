"""
Category Catalog
================
Global registry of named expense categories.  Names are unique; inactive
categories refuse new expenses but keep the ones already filed against them.
"""
from flask import current_app
from sqlalchemy import func, or_

from extensions import db
from models.categories import Category
from models.expenses import Expense
from models.startups import Startup
from services.exceptions import CategoryInUseError, DuplicateCategoryError
from utils.db_helpers import get_or_raise
from utils.validation import require_text


class CategoryService:

    @staticmethod
    def list_categories(is_active=None, search=None):
        """All categories, active first then by name."""
        query = Category.query
        if is_active is not None:
            query = query.filter(Category.is_active == is_active)
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Category.name.ilike(pattern), Category.description.ilike(pattern)))
        return query.order_by(Category.is_active.desc(), Category.name.asc()).all()

    @staticmethod
    def list_active():
        return Category.query.filter_by(is_active=True).order_by(Category.name.asc()).all()

    @staticmethod
    def get(category_id):
        return get_or_raise(Category, category_id, 'Category')

    @staticmethod
    def find_by_name(name):
        return Category.query.filter_by(name=name).first()

    @staticmethod
    def _ensure_unique(name, exclude_id=None):
        existing = CategoryService.find_by_name(name)
        if existing and existing.id != exclude_id:
            raise DuplicateCategoryError(name)

    @staticmethod
    def create(name, description=None, is_active=True):
        min_length = current_app.config.get('CATEGORY_NAME_MIN_LENGTH', 2)
        name = require_text(name, 'name', min_length=min_length, max_length=100)
        CategoryService._ensure_unique(name)

        category = Category(name=name, description=description or None, is_active=bool(is_active))
        try:
            db.session.add(category)
            db.session.flush()
            # Budget slices created before this category existed join it now
            from services.budget_service import BudgetService
            linked = BudgetService.link_categories_by_name(commit=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Category {category.id} "{category.name}" created ({linked} budget slice(s) linked)')
        return category

    @staticmethod
    def update(category_id, name=None, description=None, is_active=None):
        """Update a category.  Budget slices linked by id keep their link across renames."""
        category = CategoryService.get(category_id)
        if name is not None:
            min_length = current_app.config.get('CATEGORY_NAME_MIN_LENGTH', 2)
            name = require_text(name, 'name', min_length=min_length, max_length=100)
            CategoryService._ensure_unique(name, exclude_id=category.id)

        try:
            if name is not None and name != category.name:
                current_app.logger.info(f'Category {category.id} renamed "{category.name}" -> "{name}"')
                category.name = name
            if description is not None:
                category.description = description or None
            if is_active is not None:
                category.is_active = bool(is_active)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return category

    @staticmethod
    def set_active(category_id, is_active):
        return CategoryService.update(category_id, is_active=is_active)

    @staticmethod
    def delete(category_id):
        category = CategoryService.get(category_id)
        expense_count = category.expenses.count()
        if expense_count:
            raise CategoryInUseError(category.id, expense_count)
        try:
            db.session.delete(category)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(f'Category {category_id} deleted')

    @staticmethod
    def get_metrics():
        total = db.session.query(func.count(Category.id)).scalar() or 0
        active = db.session.query(func.count(Category.id)).filter(Category.is_active.is_(True)).scalar() or 0
        expenses = db.session.query(func.count(Expense.id)).filter(
            Expense.startup.has(Startup.is_deleted.is_(False))
        ).scalar() or 0
        return {
            'total_count': total,
            'active_count': active,
            'inactive_count': total - active,
            'total_expenses_count': expenses,
        }
