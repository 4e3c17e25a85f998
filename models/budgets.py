from extensions import db
from datetime import datetime, timezone


class BudgetCategory(db.Model):
    """A named slice of a startup's total budget.

    ``category_id`` links the slice to the global expense catalog.  Rows created
    before the link existed are matched to a ``Category`` by ``name`` instead.
    """
    __tablename__ = 'budget_categories'

    id = db.Column(db.Integer, primary_key=True)
    startup_id = db.Column(db.Integer, db.ForeignKey('startups.id', ondelete='CASCADE'), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    max_budget = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    startup = db.relationship('Startup', back_populates='budget_categories')
    category = db.relationship('Category', back_populates='budget_categories')

    def to_dict(self):
        return {
            'id': self.id,
            'startup_id': self.startup_id,
            'category_id': self.category_id,
            'name': self.name,
            'max_budget': float(self.max_budget or 0),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<BudgetCategory {self.id}: {self.name} {self.max_budget}>'
