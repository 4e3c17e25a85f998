"""
Tests for the User model: password hashing, roles and the payment projection.
"""
from models.users import User


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_correct_password_accepted(self, app, admin):
        assert admin.check_password('TestPass1!') is True

    def test_wrong_password_rejected(self, app, admin):
        assert admin.check_password('WrongPass99!') is False

    def test_password_is_hashed(self, app, admin):
        assert admin.password_hash != 'TestPass1!', \
            "password_hash must store a hash, not the plain-text password"


# ---------------------------------------------------------------------------
# Roles and account state
# ---------------------------------------------------------------------------

class TestRoles:
    def test_admin_role(self, app, admin):
        assert admin.is_admin is True
        assert admin.is_student is False

    def test_student_role(self, app, student):
        assert student.is_admin is False
        assert student.is_student is True

    def test_inactive_account_cannot_hold_a_session(self, app, student):
        assert student.is_active is True
        student.status = 'INACTIVE'
        assert student.is_active is False


# ---------------------------------------------------------------------------
# Payment projection
# ---------------------------------------------------------------------------

class TestPaymentProjection:
    def test_new_user_has_not_submitted(self, app, student):
        assert student.payment_projection() == {
            'payment_status': 'NOT_SUBMITTED',
            'payment_proof_url': None,
            'payment_rejection_reason': None,
            'payment_submitted_at': None,
            'payment_reviewed_at': None,
        }

    def test_to_dict_never_exposes_password_hash(self, app, student):
        data = student.to_dict()
        assert 'password_hash' not in data
        assert data['payment_status'] == 'NOT_SUBMITTED'

    def test_unsaved_user_defaults(self):
        assert User(email='x@example.com', name='X').payment_status is None
