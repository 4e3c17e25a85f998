"""
Expense Approval Service
========================
Records expense claims against a startup and a global category and drives
their review::

    PENDING --approve--> APPROVED   (terminal)
    PENDING --reject---> REJECTED   (terminal)

A new expense starts PENDING unless the ``expenses.auto_approve`` setting is on
at submission time, in which case it is created APPROVED directly (no review
event, no "submitted" notification).

Only APPROVED expenses count towards spend (see ``SpendService``).  Submission
is never blocked by a budget ceiling; only allocation is.
"""
from flask import current_app
from sqlalchemy import extract, func

from extensions import db
from models.categories import Category
from models.expenses import Expense, ExpenseStatus
from models.notifications import NotificationKind
from models.startups import Startup
from services.approval_workflow import ApprovalWorkflow, Transition
from services.exceptions import (
    CannotEditError, ExpenseAlreadyProcessedError, InvalidCategoryError, NotFoundError,
    NotSubmitterError, RejectionReasonRequiredError, ValidationError,
)
from services.notification_service import NotificationService
from services.settings_service import SettingsService
from utils.budget_math import as_decimal
from utils.db_helpers import get_or_none, get_or_raise, lock_for_update, utc_now
from utils.validation import require_text, to_amount, to_date


EXPENSE_WORKFLOW = ApprovalWorkflow(
    name='expense',
    status_attr='status',
    stamp_attrs={'approve': 'reviewed_at', 'reject': 'reviewed_at'},
    initial=ExpenseStatus.PENDING,
    transitions=[
        Transition('approve', {ExpenseStatus.PENDING}, ExpenseStatus.APPROVED,
                   ExpenseAlreadyProcessedError, NotificationKind.EXPENSE_APPROVED),
        Transition('reject', {ExpenseStatus.PENDING}, ExpenseStatus.REJECTED,
                   ExpenseAlreadyProcessedError, NotificationKind.EXPENSE_REJECTED),
    ],
)

EDITABLE_FIELDS = ('amount', 'description', 'date', 'category_id', 'receipt_url')


class ExpenseService:

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def get(expense_id):
        return get_or_raise(Expense, expense_id, 'Expense')

    @staticmethod
    def live_query():
        """Expenses whose startup has not been soft-deleted."""
        return Expense.query.filter(Expense.startup.has(Startup.is_deleted.is_(False)))

    @staticmethod
    def list_expenses(startup_id=None, category_id=None, status=None, submitted_by_id=None,
                      start_date=None, end_date=None, limit=None, include_deleted=False):
        """Expenses newest first, optionally filtered."""
        query = Expense.query if include_deleted else ExpenseService.live_query()
        if startup_id is not None:
            query = query.filter(Expense.startup_id == startup_id)
        if category_id is not None:
            query = query.filter(Expense.category_id == category_id)
        if status and status != 'ALL':
            query = query.filter(Expense.status == status)
        if submitted_by_id is not None:
            query = query.filter(Expense.submitted_by_id == submitted_by_id)
        if start_date is not None:
            query = query.filter(Expense.date >= start_date)
        if end_date is not None:
            query = query.filter(Expense.date <= end_date)
        query = query.order_by(Expense.created_at.desc(), Expense.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def list_for_submitter(user_id, status=None):
        return ExpenseService.list_expenses(submitted_by_id=user_id, status=status)

    @staticmethod
    def _count_and_total(query):
        count, total = query.with_entities(
            func.count(Expense.id), func.coalesce(func.sum(Expense.amount), 0)
        ).one()
        return count or 0, as_decimal(total)

    @staticmethod
    def _metrics(base_query):
        pending_count, pending_total = ExpenseService._count_and_total(
            base_query.filter(Expense.status == ExpenseStatus.PENDING)
        )
        approved_count, approved_total = ExpenseService._count_and_total(
            base_query.filter(Expense.status == ExpenseStatus.APPROVED)
        )
        rejected_count, _ = ExpenseService._count_and_total(
            base_query.filter(Expense.status == ExpenseStatus.REJECTED)
        )
        return {
            'total_count': pending_count + approved_count + rejected_count,
            'pending_count': pending_count,
            'pending_amount': pending_total,
            'approved_count': approved_count,
            'approved_amount': approved_total,
            'rejected_count': rejected_count,
        }

    @staticmethod
    def get_metrics():
        return ExpenseService._metrics(ExpenseService.live_query())

    @staticmethod
    def get_metrics_for_startup(startup_id):
        return ExpenseService._metrics(ExpenseService.live_query().filter(Expense.startup_id == startup_id))

    @staticmethod
    def get_pending_count():
        return ExpenseService.live_query().filter(Expense.status == ExpenseStatus.PENDING).count()

    @staticmethod
    def get_current_month_total(startup_id=None, today=None):
        """Approved spend dated in the current calendar month."""
        today = today or utc_now().date()
        query = db.session.query(func.coalesce(func.sum(Expense.amount), 0)).filter(
            Expense.status == ExpenseStatus.APPROVED,
            extract('year', Expense.date) == today.year,
            extract('month', Expense.date) == today.month,
            Expense.startup.has(Startup.is_deleted.is_(False)),
        )
        if startup_id is not None:
            query = query.filter(Expense.startup_id == startup_id)
        return as_decimal(query.scalar())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def _active_category(category_id):
        category = get_or_none(Category, category_id)
        if category is None:
            raise InvalidCategoryError(category_id, reason='missing')
        if not category.is_active:
            raise InvalidCategoryError(category_id, reason='inactive')
        return category

    @staticmethod
    def _event_payload(expense):
        return {
            'expense_id': expense.id,
            'amount': expense.amount,
            'description': expense.description,
            'startup_id': expense.startup_id,
            'startup_name': expense.startup.name if expense.startup else None,
            'category_name': expense.category.name if expense.category else None,
            'submitted_by_id': expense.submitted_by_id,
            'submitted_by_name': expense.submitted_by.name if expense.submitted_by else None,
            'status': expense.status,
            'admin_comment': expense.admin_comment,
        }

    @staticmethod
    def submit(startup_id, category_id, amount, date, description, receipt_url, submitted_by_id):
        """
        File a new expense claim.

        Membership of the startup is checked by the caller.

        Raises:
            ValidationError:       bad amount / description / date
            NotFoundError:         startup missing or soft-deleted
            InvalidCategoryError:  category missing or inactive
        """
        amount = to_amount(amount)
        description = require_text(description, 'description', max_length=500)
        expense_date = to_date(date)

        startup = get_or_none(Startup, startup_id)
        if startup is None or startup.is_deleted:
            raise NotFoundError('Startup', startup_id)
        ExpenseService._active_category(category_id)

        auto_approve = SettingsService.get_auto_approve_expenses()
        status = ExpenseStatus.APPROVED if auto_approve else ExpenseStatus.PENDING

        expense = Expense(
            amount=amount,
            description=description,
            date=expense_date,
            receipt_url=receipt_url or None,
            category_id=category_id,
            startup_id=startup.id,
            submitted_by_id=submitted_by_id,
            status=status,
        )
        if auto_approve:
            expense.reviewed_at = utc_now()

        try:
            db.session.add(expense)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f'Expense {expense.id} submitted by user {submitted_by_id} for startup {startup.id}: '
            f'{amount} ({status})'
        )

        if status == ExpenseStatus.PENDING:
            NotificationService.dispatch(NotificationKind.EXPENSE_SUBMITTED, ExpenseService._event_payload(expense))
        return expense

    @staticmethod
    def edit(expense_id, changes, editor_id=None):
        """
        Change a PENDING expense.  Only the original submitter may edit.

        ``changes`` may hold any of amount, description, date, category_id,
        receipt_url; anything else is rejected.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f'Cannot edit field(s): {", ".join(sorted(unknown))}', field=sorted(unknown)[0])

        try:
            expense = lock_for_update(Expense, expense_id, 'Expense')
            if editor_id is not None and expense.submitted_by_id != editor_id:
                raise NotSubmitterError(expense.id)
            if expense.status != ExpenseStatus.PENDING:
                raise CannotEditError(expense.status)

            if 'amount' in changes:
                expense.amount = to_amount(changes['amount'])
            if 'description' in changes:
                expense.description = require_text(changes['description'], 'description', max_length=500)
            if 'date' in changes:
                expense.date = to_date(changes['date'])
            if 'category_id' in changes and changes['category_id'] != expense.category_id:
                ExpenseService._active_category(changes['category_id'])
                expense.category_id = changes['category_id']
            if 'receipt_url' in changes:
                expense.receipt_url = changes['receipt_url'] or None

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Expense {expense.id} edited by user {editor_id}')
        return expense

    @staticmethod
    def _review(expense_id, action, reviewer_id=None, admin_comment=None):
        try:
            expense = lock_for_update(Expense, expense_id, 'Expense')
            record = EXPENSE_WORKFLOW.apply(
                expense, action,
                reviewed_by_id=reviewer_id,
                admin_comment=admin_comment or None,
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f'Expense {expense.id} {record.from_status} -> {record.to_status} by user {reviewer_id}'
        )
        NotificationService.dispatch(
            record.event, ExpenseService._event_payload(expense), [expense.submitted_by_id]
        )
        return expense

    @staticmethod
    def approve(expense_id, reviewer_id=None, admin_comment=None):
        """PENDING -> APPROVED.  Raises ``ExpenseAlreadyProcessedError`` otherwise."""
        admin_comment = require_text(admin_comment, 'admin_comment', min_length=0, max_length=500)
        return ExpenseService._review(expense_id, 'approve', reviewer_id, admin_comment)

    @staticmethod
    def reject(expense_id, reviewer_id=None, admin_comment=None):
        """PENDING -> REJECTED.  A comment explaining the rejection is required."""
        min_length = current_app.config.get('EXPENSE_REJECTION_REASON_MIN_LENGTH', 5)
        admin_comment = require_text(admin_comment, 'admin_comment', min_length=0, max_length=500)
        if len(admin_comment) < min_length:
            raise RejectionReasonRequiredError(min_length)
        return ExpenseService._review(expense_id, 'reject', reviewer_id, admin_comment)
