"""
Startup Service
===============
Startups are funded projects with a fixed ``total_budget`` ceiling.  Members
(students) are attached through ``startup_members``.

The ceiling is the lock boundary for every allocation write, so revising it
takes the same row lock as ``BudgetService`` and is refused when the new total
would fall below what is already allocated.

Deletion is soft: ``is_deleted`` hides the startup from every aggregation.
"""
from flask import current_app
from sqlalchemy import or_

from extensions import db
from models.startups import Startup, StartupStatus, startup_members
from models.users import User, UserRole, UserStatus
from services.budget_service import BudgetService
from services.exceptions import BudgetBelowAllocationError, NotFoundError, ValidationError
from services.spend_service import SpendService
from utils.budget_math import as_decimal, remaining_budget, sum_amounts, utilization_percent
from utils.db_helpers import get_or_none, lock_for_update
from utils.validation import require_text, to_amount, to_date


class StartupService:

    @staticmethod
    def get(startup_id, include_deleted=False):
        startup = get_or_none(Startup, startup_id)
        if startup is None or (startup.is_deleted and not include_deleted):
            raise NotFoundError('Startup', startup_id)
        return startup

    @staticmethod
    def list_startups(search=None, status=None, include_deleted=False):
        query = Startup.query
        if not include_deleted:
            query = query.filter(Startup.is_deleted.is_(False))
        if status:
            query = query.filter(Startup.status == status)
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Startup.name.ilike(pattern), Startup.industry.ilike(pattern)))
        return query.order_by(Startup.created_at.desc(), Startup.id.desc()).all()

    @staticmethod
    def get_for_student(user_id):
        """Startups the student belongs to."""
        return (
            Startup.query
            .join(startup_members, startup_members.c.startup_id == Startup.id)
            .filter(startup_members.c.user_id == user_id, Startup.is_deleted.is_(False))
            .order_by(Startup.name.asc())
            .all()
        )

    @staticmethod
    def is_member(startup_id, user_id):
        return db.session.query(startup_members).filter_by(
            startup_id=startup_id, user_id=user_id
        ).first() is not None

    @staticmethod
    def _load_students(student_ids):
        student_ids = list(dict.fromkeys(student_ids or ()))
        if not student_ids:
            return []
        students = User.query.filter(User.id.in_(student_ids)).all()
        found = {s.id for s in students}
        missing = [sid for sid in student_ids if sid not in found]
        if missing:
            raise NotFoundError('User', missing[0])
        not_students = [s.id for s in students if s.role != UserRole.STUDENT]
        if not_students:
            raise ValidationError(f'User {not_students[0]} is not a student', field='student_ids')
        return students

    @staticmethod
    def _clean_dates(incubation_start, incubation_end):
        start = to_date(incubation_start, 'incubation_start') if incubation_start else None
        end = to_date(incubation_end, 'incubation_end') if incubation_end else None
        if start and end and end < start:
            raise ValidationError('incubation_end must not be before incubation_start', field='incubation_end')
        return start, end

    @staticmethod
    def create(name, total_budget, description=None, industry=None,
               incubation_start=None, incubation_end=None, student_ids=None):
        """Create a startup; member students are activated."""
        name = require_text(name, 'name', min_length=2, max_length=150)
        total_budget = to_amount(total_budget, 'total_budget', allow_zero=True)
        start, end = StartupService._clean_dates(incubation_start, incubation_end)
        students = StartupService._load_students(student_ids)

        startup = Startup(
            name=name,
            description=description or None,
            industry=industry or None,
            incubation_start=start,
            incubation_end=end,
            total_budget=total_budget,
            status=StartupStatus.ACTIVE,
        )
        startup.students = students
        for student in students:
            student.status = UserStatus.ACTIVE

        try:
            db.session.add(startup)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(
            f'Startup {startup.id} "{startup.name}" created with budget {total_budget} '
            f'and {len(students)} student(s)'
        )
        return startup

    @staticmethod
    def update(startup_id, **fields):
        """
        Update a startup.

        Accepts name, description, industry, incubation_start, incubation_end,
        status, student_ids and total_budget.  Lowering ``total_budget`` below
        the current allocation raises ``BudgetBelowAllocationError``.
        """
        unknown = set(fields) - {
            'name', 'description', 'industry', 'incubation_start', 'incubation_end',
            'status', 'student_ids', 'total_budget',
        }
        if unknown:
            raise ValidationError(f'Unknown field(s): {", ".join(sorted(unknown))}', field=sorted(unknown)[0])

        if 'name' in fields:
            fields['name'] = require_text(fields['name'], 'name', min_length=2, max_length=150)
        if 'status' in fields and fields['status'] not in StartupStatus.ALL:
            raise ValidationError(f'Invalid status {fields["status"]!r}', field='status')
        if 'total_budget' in fields:
            fields['total_budget'] = to_amount(fields['total_budget'], 'total_budget', allow_zero=True)
        students = None
        if 'student_ids' in fields:
            students = StartupService._load_students(fields.pop('student_ids'))

        try:
            startup = lock_for_update(Startup, startup_id, 'Startup')
            if startup.is_deleted:
                raise NotFoundError('Startup', startup_id)

            if 'total_budget' in fields:
                allocated = BudgetService.get_total_allocated(startup.id)
                if fields['total_budget'] < allocated:
                    raise BudgetBelowAllocationError(fields['total_budget'], allocated)

            if 'incubation_start' in fields or 'incubation_end' in fields:
                start, end = StartupService._clean_dates(
                    fields.pop('incubation_start', startup.incubation_start),
                    fields.pop('incubation_end', startup.incubation_end),
                )
                startup.incubation_start = start
                startup.incubation_end = end

            for attr, value in fields.items():
                setattr(startup, attr, value)

            if students is not None:
                startup.students = students
                for student in students:
                    student.status = UserStatus.ACTIVE

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info(f'Startup {startup.id} updated ({", ".join(sorted(fields)) or "members"})')
        return startup

    @staticmethod
    def soft_delete(startup_id):
        startup = StartupService.get(startup_id)
        try:
            startup.is_deleted = True
            startup.status = StartupStatus.INACTIVE
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(f'Startup {startup.id} "{startup.name}" deleted')
        return startup

    @staticmethod
    def list_with_spent(search=None, status=None):
        """Startups with allocation and spend figures, for list views."""
        rows = []
        for startup in StartupService.list_startups(search=search, status=status):
            totals = SpendService.get_totals_by_startup(startup.id)
            total_budget = as_decimal(startup.total_budget)
            row = startup.to_dict()
            row.update({
                'total_allocated': totals['total_allocated'],
                'total_spent': totals['total_spent'],
                'remaining': remaining_budget(total_budget, totals['total_spent']),
                'utilization_percent': utilization_percent(totals['total_spent'], total_budget),
            })
            rows.append(row)
        return rows

    @staticmethod
    def get_metrics():
        startups = StartupService.list_startups()
        active = [s for s in startups if s.status == StartupStatus.ACTIVE]
        student_ids = set()
        for startup in startups:
            student_ids.update(s.id for s in startup.students)
        platform = SpendService.get_platform_metrics()
        return {
            'total_count': len(startups),
            'active_count': len(active),
            'total_budget': sum_amounts(s.total_budget for s in startups),
            'total_allocated': platform['total_allocated'],
            'total_spent': platform['total_spent'],
            'unique_students': len(student_ids),
        }
