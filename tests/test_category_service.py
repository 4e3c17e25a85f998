"""
Tests for CategoryService: the global category catalog.
"""
import pytest

from extensions import db
from models.categories import Category
from services.category_service import CategoryService
from services.exceptions import CategoryInUseError, DuplicateCategoryError, ValidationError
from services.startup_service import StartupService


class TestCreateAndUpdate:
    def test_create(self, app):
        category = CategoryService.create('  Equipment ', description='Hardware')
        assert category.name == 'Equipment'
        assert category.is_active is True

    def test_names_are_unique(self, app, category):
        with pytest.raises(DuplicateCategoryError):
            CategoryService.create('Travel')

    def test_rename_to_existing_name_is_refused(self, app, category):
        other = CategoryService.create('Equipment')
        with pytest.raises(DuplicateCategoryError):
            CategoryService.update(other.id, name='Travel')

    def test_short_name_is_refused(self, app):
        with pytest.raises(ValidationError):
            CategoryService.create('X')

    def test_deactivate_keeps_existing_expenses(self, app, startup, category, student, make_expense):
        expense = make_expense(startup, category, student, 10, status='APPROVED')
        CategoryService.set_active(category.id, False)
        assert category.is_active is False
        assert expense.category_id == category.id


class TestListing:
    def test_active_first_then_name(self, app):
        CategoryService.create('Zeta')
        CategoryService.create('Alpha', is_active=False)
        CategoryService.create('Beta')
        assert [c.name for c in CategoryService.list_categories()] == ['Beta', 'Zeta', 'Alpha']
        assert [c.name for c in CategoryService.list_active()] == ['Beta', 'Zeta']

    def test_search(self, app, category):
        CategoryService.create('Equipment', description='Laptops and tools')
        assert [c.name for c in CategoryService.list_categories(search='laptop')] == ['Equipment']


class TestDelete:
    def test_delete_unused(self, app, category):
        CategoryService.delete(category.id)
        assert db.session.get(Category, category.id) is None

    def test_delete_in_use_is_refused(self, app, startup, category, student, make_expense):
        make_expense(startup, category, student, 10)
        with pytest.raises(CategoryInUseError) as exc:
            CategoryService.delete(category.id)
        assert exc.value.expense_count == 1


def test_metrics(app, category, startup, student, make_expense):
    CategoryService.create('Old', is_active=False)
    make_expense(startup, category, student, 10)
    assert CategoryService.get_metrics() == {
        'total_count': 2,
        'active_count': 1,
        'inactive_count': 1,
        'total_expenses_count': 1,
    }


def test_metrics_ignore_deleted_startups(app, category, startup, student, make_expense):
    make_expense(startup, category, student, 10)
    StartupService.soft_delete(startup.id)
    assert CategoryService.get_metrics()['total_expenses_count'] == 0
