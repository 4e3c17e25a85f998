from extensions import db
from datetime import datetime, timezone


# Students assigned to a startup
startup_members = db.Table(
    'startup_members',
    db.Column('startup_id', db.Integer, db.ForeignKey('startups.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)


class StartupStatus:
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'
    GRADUATED = 'GRADUATED'

    ALL = (ACTIVE, INACTIVE, GRADUATED)


class Startup(db.Model):
    """A funded project with a fixed total budget ceiling."""
    __tablename__ = 'startups'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    industry = db.Column(db.String(100))
    incubation_start = db.Column(db.Date)
    incubation_end = db.Column(db.Date)
    total_budget = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=StartupStatus.ACTIVE)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    # Relationships
    students = db.relationship('User', secondary=startup_members, backref=db.backref('startups', lazy='dynamic'))
    budget_categories = db.relationship(
        'BudgetCategory', back_populates='startup', lazy=True,
        cascade='all, delete-orphan', order_by='BudgetCategory.created_at.desc()',
    )
    expenses = db.relationship('Expense', back_populates='startup', lazy='dynamic')

    def to_dict(self, include_students=True):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'industry': self.industry,
            'incubation_start': self.incubation_start.isoformat() if self.incubation_start else None,
            'incubation_end': self.incubation_end.isoformat() if self.incubation_end else None,
            'total_budget': float(self.total_budget or 0),
            'status': self.status,
            'is_deleted': self.is_deleted,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_students:
            data['students'] = [
                {'id': s.id, 'name': s.name, 'email': s.email} for s in self.students
            ]
        return data

    def __repr__(self):
        return f'<Startup {self.id}: {self.name}>'
