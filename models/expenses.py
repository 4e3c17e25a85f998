from extensions import db
from datetime import datetime, timezone


class ExpenseStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

    ALL = (PENDING, APPROVED, REJECTED)


class Expense(db.Model):
    __tablename__ = 'expenses'
    
    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(500), nullable=False)
    date = db.Column(db.Date, nullable=False)  # economic date, not created_at
    receipt_url = db.Column(db.String(500))

    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False, index=True)
    startup_id = db.Column(db.Integer, db.ForeignKey('startups.id'), nullable=False, index=True)
    submitted_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Review
    status = db.Column(db.String(20), nullable=False, default=ExpenseStatus.PENDING, index=True)
    admin_comment = db.Column(db.String(500))
    reviewed_at = db.Column(db.DateTime)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    category = db.relationship('Category', back_populates='expenses')
    startup = db.relationship('Startup', back_populates='expenses')
    submitted_by = db.relationship('User', foreign_keys=[submitted_by_id])
    reviewed_by = db.relationship('User', foreign_keys=[reviewed_by_id])

    @property
    def is_pending(self):
        return self.status == ExpenseStatus.PENDING

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount),
            'description': self.description,
            'date': self.date.isoformat() if self.date else None,
            'receipt_url': self.receipt_url,
            'status': self.status,
            'admin_comment': self.admin_comment,
            'category': {'id': self.category.id, 'name': self.category.name} if self.category else None,
            'startup': {'id': self.startup.id, 'name': self.startup.name} if self.startup else None,
            'submitted_by': {'id': self.submitted_by.id, 'name': self.submitted_by.name} if self.submitted_by else None,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
    
    def __repr__(self):
        return f'<Expense {self.date}: {self.description} - {self.amount} ({self.status})>'
