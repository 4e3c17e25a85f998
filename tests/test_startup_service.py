"""
Tests for StartupService, including the guard on lowering a startup's budget.
"""
from decimal import Decimal

import pytest

import services.startup_service as startup_module
from extensions import db
from models.startups import Startup
from services.budget_service import BudgetService
from services.exceptions import BudgetBelowAllocationError, NotFoundError, ValidationError
from services.startup_service import StartupService


class TestCreate:
    def test_create_with_students_activates_them(self, app):
        from models.users import User
        pending = User(email='new@example.com', name='New Student', role='student', status='PENDING')
        pending.set_password('TestPass1!')
        db.session.add(pending)
        db.session.commit()

        startup = StartupService.create('Solar Farm', 25000, student_ids=[pending.id],
                                        incubation_start='2026-01-01', incubation_end='2026-12-31')
        assert startup.total_budget == Decimal('25000')
        assert [s.id for s in startup.students] == [pending.id]
        assert pending.status == 'ACTIVE'
        assert StartupService.is_member(startup.id, pending.id)

    def test_admins_cannot_be_members(self, app, admin):
        with pytest.raises(ValidationError):
            StartupService.create('Solar Farm', 100, student_ids=[admin.id])

    def test_end_before_start_is_refused(self, app):
        with pytest.raises(ValidationError):
            StartupService.create('Solar Farm', 100, incubation_start='2026-06-01', incubation_end='2026-01-01')


class TestUpdateBudget:
    def test_raise_total_budget(self, app, startup):
        StartupService.update(startup.id, total_budget=1500)
        assert startup.total_budget == Decimal('1500')

    def test_lowering_below_allocation_is_blocked(self, app, startup):
        BudgetService.create_category(startup.id, 'Travel', 800)
        with pytest.raises(BudgetBelowAllocationError) as exc:
            StartupService.update(startup.id, total_budget=700)
        assert exc.value.new_total == Decimal('700')
        assert exc.value.allocated == Decimal('800')
        assert db.session.get(Startup, startup.id).total_budget == Decimal('1000')

    def test_lowering_to_exact_allocation_is_allowed(self, app, startup):
        BudgetService.create_category(startup.id, 'Travel', 800)
        StartupService.update(startup.id, total_budget=800)
        assert startup.total_budget == Decimal('800')

    def test_unknown_fields_are_rejected(self, app, startup):
        with pytest.raises(ValidationError):
            StartupService.update(startup.id, is_deleted=True)

    def test_budget_revision_locks_startup_before_summing(self, app, startup, monkeypatch):
        calls = []
        real_lock = startup_module.lock_for_update
        real_total = BudgetService.get_total_allocated

        def spy_lock(model, record_id, entity=None):
            calls.append(('lock', model.__name__))
            return real_lock(model, record_id, entity)

        def spy_total(startup_id):
            calls.append(('sum', startup_id))
            return real_total(startup_id)

        monkeypatch.setattr(startup_module, 'lock_for_update', spy_lock)
        monkeypatch.setattr(BudgetService, 'get_total_allocated', staticmethod(spy_total))
        StartupService.update(startup.id, total_budget=900)
        assert calls == [('lock', 'Startup'), ('sum', startup.id)]


class TestSoftDelete:
    def test_deleted_startup_is_hidden(self, app, startup, student):
        StartupService.soft_delete(startup.id)
        assert startup.is_deleted is True
        assert startup.status == 'INACTIVE'
        assert StartupService.list_startups() == []
        assert StartupService.get_for_student(student.id) == []
        with pytest.raises(NotFoundError):
            StartupService.get(startup.id)
        assert StartupService.get(startup.id, include_deleted=True).id == startup.id


class TestListing:
    def test_get_for_student_only_returns_memberships(self, app, startup, student, other_student):
        assert [s.id for s in StartupService.get_for_student(student.id)] == [startup.id]
        assert StartupService.get_for_student(other_student.id) == []

    def test_list_with_spent(self, app, startup, category, student, make_expense):
        BudgetService.create_category(startup.id, 'Travel', 400)
        make_expense(startup, category, student, 250, status='APPROVED')
        (row,) = StartupService.list_with_spent()
        assert row['total_allocated'] == Decimal('400')
        assert row['total_spent'] == Decimal('250')
        assert row['remaining'] == Decimal('750')
        assert row['utilization_percent'] == Decimal('25.0')

    def test_metrics(self, app, startup, other_student):
        StartupService.create('Second', 500, student_ids=[other_student.id])
        metrics = StartupService.get_metrics()
        assert metrics['total_count'] == 2
        assert metrics['active_count'] == 2
        assert metrics['total_budget'] == Decimal('1500')
        assert metrics['unique_students'] == 2
