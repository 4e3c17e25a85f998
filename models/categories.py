from extensions import db
from datetime import datetime, timezone


class Category(db.Model):
    """Global expense classification (Travel, Equipment, ...)."""
    __tablename__ = 'categories'
    
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    
    # Relationships
    expenses = db.relationship('Expense', back_populates='category', lazy='dynamic')
    budget_categories = db.relationship('BudgetCategory', back_populates='category', lazy=True)

    def to_dict(self, include_counts=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'is_active': self.is_active,
        }
        if include_counts:
            data['expense_count'] = self.expenses.count()
        return data
    
    def __repr__(self):
        return f'<Category {self.name}>'
