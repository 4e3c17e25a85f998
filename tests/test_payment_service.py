"""
Tests for PaymentService: the single-slot proof-of-payment workflow.
"""
import pytest

from extensions import db
from models.notifications import Notification
from models.users import User
from services.exceptions import (
    AlreadySubmittedError, NotFoundError, PaymentNotPendingError, RejectionReasonRequiredError,
)
from services.payment_service import PaymentService

PROOF = '/uploads/payments/proof.pdf'


@pytest.fixture
def applicant(app):
    u = User(email='applicant@example.com', name='Alex Applicant', role='student', status='PENDING')
    u.set_password('TestPass1!')
    db.session.add(u)
    db.session.commit()
    return u


def _set_status(user, status):
    user.payment_status = status
    db.session.commit()


# ---------------------------------------------------------------------------
# submit_proof
# ---------------------------------------------------------------------------

class TestSubmitProof:
    def test_first_submission_goes_pending(self, app, applicant):
        PaymentService.submit_proof(applicant.id, PROOF)
        assert applicant.payment_status == 'PENDING'
        assert applicant.payment_proof_url == PROOF
        assert applicant.payment_submitted_at is not None
        assert applicant.payment_reviewed_at is None

    def test_resubmission_after_rejection_clears_reason(self, app, applicant):
        PaymentService.submit_proof(applicant.id, PROOF)
        PaymentService.reject(applicant.id, 'Amount does not match the invoice')
        assert applicant.payment_rejection_reason is not None

        PaymentService.submit_proof(applicant.id, '/uploads/payments/second.pdf')
        assert applicant.payment_status == 'PENDING'
        assert applicant.payment_rejection_reason is None
        assert applicant.payment_reviewed_at is None

    @pytest.mark.parametrize('status', ['PENDING', 'APPROVED'])
    def test_cannot_submit_while_pending_or_approved(self, app, applicant, status):
        _set_status(applicant, status)
        with pytest.raises(AlreadySubmittedError) as exc:
            PaymentService.submit_proof(applicant.id, PROOF)
        assert exc.value.current_status == status

    def test_unknown_user_is_not_found(self, app):
        with pytest.raises(NotFoundError):
            PaymentService.submit_proof(4040, PROOF)


# ---------------------------------------------------------------------------
# approve
# ---------------------------------------------------------------------------

class TestApprove:
    def test_approval_activates_account(self, app, applicant, mailer):
        PaymentService.submit_proof(applicant.id, PROOF)
        PaymentService.approve(applicant.id)
        assert applicant.payment_status == 'APPROVED'
        assert applicant.payment_reviewed_at is not None
        assert applicant.status == 'ACTIVE'
        assert applicant.email_verified is not None

    def test_approval_emails_and_notifies_user(self, app, applicant, mailer):
        PaymentService.submit_proof(applicant.id, PROOF)
        PaymentService.approve(applicant.id)
        assert [to for to, _, _ in mailer.sent] == ['applicant@example.com']
        assert Notification.query.filter_by(user_id=applicant.id, kind='PAYMENT_APPROVED').count() == 1

    def test_mailer_outage_does_not_undo_approval(self, app, applicant, failing_mailer):
        PaymentService.submit_proof(applicant.id, PROOF)
        PaymentService.approve(applicant.id)
        assert db.session.get(User, applicant.id).payment_status == 'APPROVED'

    @pytest.mark.parametrize('status', ['NOT_SUBMITTED', 'APPROVED', 'REJECTED'])
    def test_only_pending_can_be_approved(self, app, applicant, status):
        _set_status(applicant, status)
        with pytest.raises(PaymentNotPendingError):
            PaymentService.approve(applicant.id)


# ---------------------------------------------------------------------------
# reject
# ---------------------------------------------------------------------------

class TestReject:
    def test_short_reason_is_refused(self, app, applicant):
        PaymentService.submit_proof(applicant.id, PROOF)
        with pytest.raises(RejectionReasonRequiredError) as exc:
            PaymentService.reject(applicant.id, 'blurry')
        assert exc.value.min_length == 10
        assert db.session.get(User, applicant.id).payment_status == 'PENDING'

    def test_long_enough_reason_rejects_and_stamps_review(self, app, applicant, mailer):
        PaymentService.submit_proof(applicant.id, PROOF)
        PaymentService.reject(applicant.id, 'The receipt is unreadable')
        assert applicant.payment_status == 'REJECTED'
        assert applicant.payment_rejection_reason == 'The receipt is unreadable'
        assert applicant.payment_reviewed_at is not None
        (_, subject, body) = mailer.sent[0]
        assert subject == 'Payment Rejected'
        assert 'The receipt is unreadable' in body

    def test_reject_requires_pending(self, app, applicant):
        with pytest.raises(PaymentNotPendingError):
            PaymentService.reject(applicant.id, 'No proof was ever uploaded')


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    def test_unknown_user_reads_as_not_submitted(self, app):
        status = PaymentService.get_status(777)
        assert status['payment_status'] == 'NOT_SUBMITTED'
        assert status['payment_proof_url'] is None

    def test_pending_list_is_oldest_first(self, app, applicant, student):
        PaymentService.submit_proof(applicant.id, PROOF)
        PaymentService.submit_proof(student.id, PROOF)
        assert [u.id for u in PaymentService.list_pending()] == [applicant.id, student.id]

    def test_metrics_count_each_status(self, app, applicant, student, admin):
        PaymentService.submit_proof(applicant.id, PROOF)
        metrics = PaymentService.get_metrics()
        assert metrics['pending'] == 1
        assert metrics['not_submitted'] == 2
        assert metrics['total'] == 3
