"""
User model

Covers authentication fields consumed by Flask-Login and the single-slot
payment-verification fields that gate access to the programme.
"""
from extensions import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timezone


class UserRole:
    ADMIN = 'admin'
    STUDENT = 'student'

    ALL = (ADMIN, STUDENT)


class UserStatus:
    PENDING = 'PENDING'
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'


class PaymentStatus:
    NOT_SUBMITTED = 'NOT_SUBMITTED'
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

    ALL = (NOT_SUBMITTED, PENDING, APPROVED, REJECTED)


class User(UserMixin, db.Model):
    """User account"""
    __tablename__ = 'users'
    
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=UserRole.STUDENT)
    status = db.Column(db.String(20), nullable=False, default=UserStatus.PENDING)
    email_verified = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)

    # Payment verification (one outstanding proof at a time)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.NOT_SUBMITTED, index=True)
    payment_proof_url = db.Column(db.String(500))
    payment_rejection_reason = db.Column(db.String(500))
    payment_submitted_at = db.Column(db.DateTime)
    payment_reviewed_at = db.Column(db.DateTime)
    
    def set_password(self, password):
        """Hash and set the user's password"""
        self.password_hash = generate_password_hash(password)
    
    def check_password(self, password):
        """Check if provided password matches the hash"""
        return check_password_hash(self.password_hash, password)

    @property
    def is_active(self):
        """Flask-Login refuses sessions for deactivated accounts."""
        return self.status != UserStatus.INACTIVE

    @property
    def is_admin(self):
        """True if the user has the 'admin' role."""
        return self.role == UserRole.ADMIN

    @property
    def is_student(self):
        return self.role == UserRole.STUDENT

    def payment_projection(self):
        return {
            'payment_status': self.payment_status,
            'payment_proof_url': self.payment_proof_url,
            'payment_rejection_reason': self.payment_rejection_reason,
            'payment_submitted_at': self.payment_submitted_at.isoformat() if self.payment_submitted_at else None,
            'payment_reviewed_at': self.payment_reviewed_at.isoformat() if self.payment_reviewed_at else None,
        }

    def to_dict(self):
        data = {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'status': self.status,
            'email_verified': self.email_verified.isoformat() if self.email_verified else None,
        }
        data.update(self.payment_projection())
        return data

    def __repr__(self):
        return f'<User {self.email}>'
