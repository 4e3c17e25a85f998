"""
Tests for ExpenseService: submission, the edit gate and review transitions.
"""
from datetime import date
from decimal import Decimal

import pytest

from extensions import db
from models.expenses import Expense
from models.notifications import Notification
from services.exceptions import (
    CannotEditError, ExpenseAlreadyProcessedError, InvalidCategoryError, NotFoundError,
    NotSubmitterError, RejectionReasonRequiredError, ValidationError,
)
from services.expense_service import ExpenseService
from services.notification_service import NotificationService
from services.settings_service import SettingsService
from services.startup_service import StartupService


def _submit(startup, category, student, amount=120, **overrides):
    kwargs = dict(
        startup_id=startup.id,
        category_id=category.id,
        amount=amount,
        date='2026-03-10',
        description='Conference train tickets',
        receipt_url=None,
        submitted_by_id=student.id,
    )
    kwargs.update(overrides)
    return ExpenseService.submit(**kwargs)


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------

class TestSubmit:
    def test_new_expense_is_pending(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        assert expense.status == 'PENDING'
        assert expense.amount == Decimal('120.00')
        assert expense.date == date(2026, 3, 10)
        assert expense.reviewed_at is None

    def test_pending_submission_notifies_every_admin(self, app, admin, startup, category, student):
        from models.users import User
        second_admin = User(email='admin2@example.com', name='Second Admin', role='admin', status='ACTIVE')
        second_admin.set_password('TestPass1!')
        db.session.add(second_admin)
        db.session.commit()
        _submit(startup, category, student)

        notes = Notification.query.filter_by(kind='EXPENSE_SUBMITTED').all()
        assert sorted(n.user_id for n in notes) == sorted([admin.id, second_admin.id])
        assert 'Student User submitted an expense of $120.00' in notes[0].message

    def test_auto_approve_creates_approved_expense_without_notification(
            self, app, admin, startup, category, student):
        SettingsService.update_settings(auto_approve_expenses=True)
        expense = _submit(startup, category, student)
        assert expense.status == 'APPROVED'
        assert expense.reviewed_at is not None
        assert Notification.query.filter_by(kind='EXPENSE_SUBMITTED').count() == 0

    def test_auto_approve_is_read_at_submission_time(self, app, admin, startup, category, student):
        first = _submit(startup, category, student)
        SettingsService.update_settings(auto_approve_expenses=True)
        second = _submit(startup, category, student)
        assert db.session.get(Expense, first.id).status == 'PENDING'
        assert second.status == 'APPROVED'

    def test_inactive_category_is_refused(self, app, startup, category, student):
        category.is_active = False
        db.session.commit()
        with pytest.raises(InvalidCategoryError) as exc:
            _submit(startup, category, student)
        assert exc.value.reason == 'inactive'
        assert Expense.query.count() == 0

    def test_missing_category_is_refused(self, app, startup, category, student):
        with pytest.raises(InvalidCategoryError) as exc:
            _submit(startup, category, student, category_id=31337)
        assert exc.value.reason == 'missing'

    @pytest.mark.parametrize('amount', [0, -10, 'abc', None, '0.004', '1e30', '10000000000'])
    def test_amount_must_be_positive_number(self, app, startup, category, student, amount):
        with pytest.raises(ValidationError):
            _submit(startup, category, student, amount=amount)
        assert Expense.query.count() == 0

    def test_amount_is_rounded_to_cents(self, app, startup, category, student):
        expense = _submit(startup, category, student, amount='12.346')
        assert expense.amount == Decimal('12.35')

    def test_missing_startup_is_not_found(self, app, startup, category, student):
        with pytest.raises(NotFoundError):
            _submit(startup, category, student, startup_id=5555)

    def test_submission_is_not_blocked_by_budget_ceiling(self, app, startup, category, student):
        expense = _submit(startup, category, student, amount=5000)
        assert expense.status == 'PENDING'

    def test_notification_failure_does_not_fail_submission(
            self, app, admin, startup, category, student, monkeypatch):
        def boom(event):
            raise RuntimeError('notifier down')
        monkeypatch.setattr(NotificationService, 'deliver', staticmethod(boom))

        expense = _submit(startup, category, student)
        assert db.session.get(Expense, expense.id).status == 'PENDING'


# ---------------------------------------------------------------------------
# edit
# ---------------------------------------------------------------------------

class TestEdit:
    def test_submitter_can_edit_pending(self, app, startup, category, student):
        expense = _submit(startup, category, student)
        ExpenseService.edit(expense.id, {'amount': '99.50', 'description': 'Cheaper tickets'}, editor_id=student.id)
        assert expense.amount == Decimal('99.50')
        assert expense.description == 'Cheaper tickets'

    @pytest.mark.parametrize('status', ['APPROVED', 'REJECTED'])
    def test_processed_expense_cannot_be_edited(self, app, startup, category, student, make_expense, status):
        expense = make_expense(startup, category, student, 10, status=status)
        with pytest.raises(CannotEditError) as exc:
            ExpenseService.edit(expense.id, {'amount': 5}, editor_id=student.id)
        assert exc.value.current_status == status
        assert status in str(exc.value)

    def test_only_original_submitter_may_edit(self, app, startup, category, student, other_student):
        expense = _submit(startup, category, student)
        with pytest.raises(NotSubmitterError):
            ExpenseService.edit(expense.id, {'amount': 5}, editor_id=other_student.id)

    def test_category_change_must_point_to_active_category(self, app, startup, category, student):
        from models.categories import Category
        retired = Category(name='Retired', is_active=False)
        db.session.add(retired)
        db.session.commit()
        expense = _submit(startup, category, student)
        with pytest.raises(InvalidCategoryError):
            ExpenseService.edit(expense.id, {'category_id': retired.id}, editor_id=student.id)
        assert db.session.get(Expense, expense.id).category_id == category.id

    def test_unknown_fields_are_rejected(self, app, startup, category, student):
        expense = _submit(startup, category, student)
        with pytest.raises(ValidationError):
            ExpenseService.edit(expense.id, {'status': 'APPROVED'}, editor_id=student.id)


# ---------------------------------------------------------------------------
# approve / reject
# ---------------------------------------------------------------------------

class TestReview:
    def test_approve_sets_status_and_audit(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        ExpenseService.approve(expense.id, reviewer_id=admin.id, admin_comment='Looks good')
        assert expense.status == 'APPROVED'
        assert expense.reviewed_at is not None
        assert expense.reviewed_by_id == admin.id
        assert expense.admin_comment == 'Looks good'

    def test_approve_notifies_submitter(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        ExpenseService.approve(expense.id, reviewer_id=admin.id)
        note = Notification.query.filter_by(kind='EXPENSE_APPROVED').one()
        assert note.user_id == student.id

    def test_reject_requires_comment(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        with pytest.raises(RejectionReasonRequiredError):
            ExpenseService.reject(expense.id, reviewer_id=admin.id, admin_comment='no')
        assert db.session.get(Expense, expense.id).status == 'PENDING'

    def test_reject_with_comment(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        ExpenseService.reject(expense.id, reviewer_id=admin.id, admin_comment='Missing receipt')
        assert expense.status == 'REJECTED'
        assert expense.admin_comment == 'Missing receipt'

    @pytest.mark.parametrize('comment', [12345, ['ok']])
    def test_non_text_comment_is_a_validation_error(self, app, admin, startup, category, student, comment):
        expense = _submit(startup, category, student)
        with pytest.raises(ValidationError):
            ExpenseService.approve(expense.id, reviewer_id=admin.id, admin_comment=comment)
        with pytest.raises(ValidationError):
            ExpenseService.reject(expense.id, reviewer_id=admin.id, admin_comment=comment)
        assert db.session.get(Expense, expense.id).status == 'PENDING'

    def test_blank_approval_comment_is_stored_as_none(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        ExpenseService.approve(expense.id, reviewer_id=admin.id, admin_comment='   ')
        assert expense.admin_comment is None

    def test_approved_expense_cannot_be_reviewed_again(self, app, admin, startup, category, student):
        expense = _submit(startup, category, student)
        ExpenseService.approve(expense.id, reviewer_id=admin.id)
        with pytest.raises(ExpenseAlreadyProcessedError) as exc:
            ExpenseService.reject(expense.id, reviewer_id=admin.id, admin_comment='Changed my mind')
        assert exc.value.current_status == 'APPROVED'
        # the second attempt emitted nothing
        assert Notification.query.filter_by(kind='EXPENSE_REJECTED').count() == 0


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class TestMetrics:
    def test_counts_and_totals_by_status(self, app, startup, category, student, make_expense):
        make_expense(startup, category, student, 10, status='PENDING')
        make_expense(startup, category, student, 20, status='APPROVED')
        make_expense(startup, category, student, 30, status='APPROVED')
        make_expense(startup, category, student, 40, status='REJECTED')

        metrics = ExpenseService.get_metrics_for_startup(startup.id)
        assert metrics['total_count'] == 4
        assert metrics['pending_count'] == 1
        assert metrics['approved_amount'] == Decimal('50')
        assert ExpenseService.get_pending_count() == 1

    def test_current_month_total_counts_approved_in_month(self, app, startup, category, student, make_expense):
        make_expense(startup, category, student, 15, status='APPROVED', expense_date=date(2026, 3, 2))
        make_expense(startup, category, student, 25, status='APPROVED', expense_date=date(2026, 2, 27))
        make_expense(startup, category, student, 35, status='PENDING', expense_date=date(2026, 3, 5))
        assert ExpenseService.get_current_month_total(today=date(2026, 3, 31)) == Decimal('15')

    def test_deleted_startups_drop_out_of_metrics(self, app, startup, category, student, make_expense):
        make_expense(startup, category, student, 100, status='APPROVED', expense_date=date(2026, 3, 2))
        make_expense(startup, category, student, 40, status='PENDING', expense_date=date(2026, 3, 3))
        StartupService.soft_delete(startup.id)

        metrics = ExpenseService.get_metrics()
        assert metrics['total_count'] == 0
        assert metrics['approved_amount'] == Decimal('0')
        assert ExpenseService.get_pending_count() == 0
        assert ExpenseService.get_current_month_total(today=date(2026, 3, 31)) == Decimal('0')
        assert ExpenseService.list_expenses() == []
        assert len(ExpenseService.list_expenses(include_deleted=True)) == 2
