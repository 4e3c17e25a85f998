import json
from extensions import db
from datetime import datetime, timezone


class NotificationKind:
    EXPENSE_SUBMITTED = 'EXPENSE_SUBMITTED'
    EXPENSE_APPROVED = 'EXPENSE_APPROVED'
    EXPENSE_REJECTED = 'EXPENSE_REJECTED'
    PAYMENT_APPROVED = 'PAYMENT_APPROVED'
    PAYMENT_REJECTED = 'PAYMENT_REJECTED'


class Notification(db.Model):
    """In-app notification delivered to a single user."""
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    kind = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    # JSON-encoded event payload
    data = db.Column(db.Text)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)

    user = db.relationship('User', backref=db.backref('notifications', lazy='dynamic', cascade='all, delete-orphan'))

    def get_data(self):
        if not self.data:
            return {}
        try:
            return json.loads(self.data)
        except (ValueError, TypeError):
            return {}

    def to_dict(self):
        return {
            'id': self.id,
            'kind': self.kind,
            'title': self.title,
            'message': self.message,
            'data': self.get_data(),
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Notification {self.kind} -> user {self.user_id}>'
