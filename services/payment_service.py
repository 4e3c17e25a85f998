"""
Payment Verification Service
============================
Per-user, single-slot proof-of-payment review that doubles as account
activation::

    NOT_SUBMITTED --submit--> PENDING
    REJECTED      --submit--> PENDING    (clears the previous rejection)
    PENDING       --approve-> APPROVED   (activates the account)
    PENDING       --reject--> REJECTED

Only one proof can be outstanding; a PENDING or APPROVED user cannot submit
again.  Approval and rejection e-mails are best-effort: the review stands even
if the mailer is down.
"""
from flask import current_app
from sqlalchemy import func

from extensions import db
from models.notifications import NotificationKind
from models.users import PaymentStatus, User, UserStatus
from services.approval_workflow import ApprovalWorkflow, Transition
from services.exceptions import (
    AlreadySubmittedError, PaymentNotPendingError, RejectionReasonRequiredError,
)
from services.notification_service import NotificationService
from utils.db_helpers import get_or_none, lock_for_update
from utils.validation import require_text


PAYMENT_WORKFLOW = ApprovalWorkflow(
    name='payment',
    status_attr='payment_status',
    stamp_attrs={
        'submit': 'payment_submitted_at',
        'approve': 'payment_reviewed_at',
        'reject': 'payment_reviewed_at',
    },
    initial=PaymentStatus.NOT_SUBMITTED,
    transitions=[
        Transition('submit', {PaymentStatus.NOT_SUBMITTED, PaymentStatus.REJECTED}, PaymentStatus.PENDING,
                   AlreadySubmittedError),
        Transition('approve', {PaymentStatus.PENDING}, PaymentStatus.APPROVED,
                   PaymentNotPendingError, NotificationKind.PAYMENT_APPROVED),
        Transition('reject', {PaymentStatus.PENDING}, PaymentStatus.REJECTED,
                   PaymentNotPendingError, NotificationKind.PAYMENT_REJECTED),
    ],
)

DEFAULT_PROJECTION = {
    'payment_status': PaymentStatus.NOT_SUBMITTED,
    'payment_proof_url': None,
    'payment_rejection_reason': None,
    'payment_submitted_at': None,
    'payment_reviewed_at': None,
}


class PaymentService:

    @staticmethod
    def get_status(user_id):
        """Payment projection of *user_id*; unknown users read as NOT_SUBMITTED."""
        user = get_or_none(User, user_id)
        if user is None:
            return dict(DEFAULT_PROJECTION)
        return user.payment_projection()

    @staticmethod
    def list_pending():
        """Users waiting for review, oldest submission first."""
        return (
            User.query
            .filter(User.payment_status == PaymentStatus.PENDING)
            .order_by(User.payment_submitted_at.asc(), User.id.asc())
            .all()
        )

    @staticmethod
    def get_metrics():
        counts = dict(
            db.session.query(User.payment_status, func.count(User.id))
            .group_by(User.payment_status)
            .all()
        )
        metrics = {status.lower(): counts.get(status, 0) for status in PaymentStatus.ALL}
        metrics['total'] = sum(metrics.values())
        return metrics

    @staticmethod
    def submit_proof(user_id, proof_url):
        """
        Record a new proof of payment.

        Raises:
            ValidationError:        empty proof URL
            NotFoundError:          unknown user
            AlreadySubmittedError:  a proof is already PENDING or APPROVED
        """
        proof_url = require_text(proof_url, 'proof_url', max_length=500)
        try:
            user = lock_for_update(User, user_id, 'User')
            record = PAYMENT_WORKFLOW.apply(
                user, 'submit',
                payment_proof_url=proof_url,
                payment_rejection_reason=None,
                payment_reviewed_at=None,
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Payment proof submitted by user {user.id} ({record.from_status} -> PENDING)')
        return user

    @staticmethod
    def approve(user_id):
        """PENDING -> APPROVED; the account is activated and its e-mail marked verified."""
        try:
            user = lock_for_update(User, user_id, 'User')
            record = PAYMENT_WORKFLOW.apply(user, 'approve', status=UserStatus.ACTIVE)
            user.email_verified = record.at
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Payment approved for user {user.id}; account activated')
        NotificationService.dispatch(record.event, PaymentService._event_payload(user), [user.id])
        return user

    @staticmethod
    def reject(user_id, reason):
        """PENDING -> REJECTED with a reason the user will see."""
        min_length = current_app.config.get('PAYMENT_REJECTION_REASON_MIN_LENGTH', 10)
        reason = require_text(reason, 'reason', min_length=0, max_length=500)
        if len(reason) < min_length:
            raise RejectionReasonRequiredError(min_length)

        try:
            user = lock_for_update(User, user_id, 'User')
            record = PAYMENT_WORKFLOW.apply(user, 'reject', payment_rejection_reason=reason)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Payment rejected for user {user.id}')
        NotificationService.dispatch(record.event, PaymentService._event_payload(user), [user.id])
        return user

    @staticmethod
    def _event_payload(user):
        return {
            'user_id': user.id,
            'name': user.name,
            'email': user.email,
            'reason': user.payment_rejection_reason,
        }
