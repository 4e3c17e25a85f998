"""
Reporting facade: read-only compositions of startups, allocations and expenses.
"""
from flask import current_app

from models.expenses import Expense, ExpenseStatus
from models.startups import Startup
from services.expense_service import ExpenseService
from services.spend_service import SpendService
from utils.budget_math import as_decimal, remaining_budget, sum_amounts, utilization_percent
from services.exceptions import NotFoundError
from utils.db_helpers import get_or_none


class ReportService:

    @staticmethod
    def get_budget_report(startup_id=None):
        """Per-startup budget usage plus a platform summary.

        Deleted startups are skipped; asking for one by id yields an empty report.
        """
        query = Startup.query.filter(Startup.is_deleted.is_(False))
        if startup_id is not None:
            query = query.filter(Startup.id == startup_id)
        startups = query.order_by(Startup.name.asc()).all()

        report = []
        for startup in startups:
            categories = []
            for bc in startup.budget_categories:
                category = SpendService.resolve_category(bc)
                spent = SpendService.spent_for_category(startup.id, category.id) if category else as_decimal(0)
                row = SpendService.describe(bc, spent)
                row['expense_count'] = startup.expenses.filter(
                    Expense.category_id == category.id,
                    Expense.status == ExpenseStatus.APPROVED,
                ).count() if category else 0
                categories.append(row)

            total = as_decimal(startup.total_budget)
            allocated = sum_amounts(c['allocated'] for c in categories)
            spent = sum_amounts(c['spent'] for c in categories)
            report.append({
                'startup': startup.to_dict(),
                'budget': {
                    'total': total,
                    'allocated': allocated,
                    'unallocated': remaining_budget(total, allocated),
                    'spent': spent,
                    'remaining': remaining_budget(total, spent),
                    'utilization_percent': utilization_percent(spent, total),
                },
                'categories': categories,
            })

        return {
            'report': report,
            'summary': {
                'total_startups': len(report),
                'total_budget': sum_amounts(r['budget']['total'] for r in report),
                'total_allocated': sum_amounts(r['budget']['allocated'] for r in report),
                'total_spent': sum_amounts(r['budget']['spent'] for r in report),
            },
        }

    @staticmethod
    def get_expense_report(startup_id=None, status=None, start_date=None, end_date=None):
        """Expenses grouped by category and by status."""
        expenses = ExpenseService.list_expenses(
            startup_id=startup_id, status=status, start_date=start_date, end_date=end_date,
        )
        expenses.sort(key=lambda e: (e.date, e.id), reverse=True)

        by_category = {}
        for expense in expenses:
            group = by_category.setdefault(expense.category_id, {
                'category_id': expense.category_id,
                'category_name': expense.category.name,
                'total': as_decimal(0),
                'count': 0,
            })
            group['total'] += as_decimal(expense.amount)
            group['count'] += 1

        by_status = {}
        for s in ExpenseStatus.ALL:
            matching = [e for e in expenses if e.status == s]
            by_status[s] = {'count': len(matching), 'total': sum_amounts(e.amount for e in matching)}

        return {
            'expenses': [e.to_dict() for e in expenses],
            'by_category': list(by_category.values()),
            'by_status': by_status,
            'summary': {
                'total_expenses': len(expenses),
                'total_amount': sum_amounts(e.amount for e in expenses),
                'approved_amount': by_status[ExpenseStatus.APPROVED]['total'],
            },
        }

    @staticmethod
    def get_activity_report(startup_id=None, start_date=None, end_date=None):
        """Recent expense activity per startup and a capped timeline."""
        limit = current_app.config.get('REPORT_EXPENSES_LIMIT', 50)
        timeline_limit = current_app.config.get('REPORT_TIMELINE_LIMIT', 20)
        expenses = ExpenseService.list_expenses(
            startup_id=startup_id, start_date=start_date, end_date=end_date, limit=limit,
        )

        by_startup = {}
        for expense in expenses:
            activity = by_startup.setdefault(expense.startup_id, {
                'startup': {'id': expense.startup_id, 'name': expense.startup.name},
                'expense_count': 0,
                'total_expense_amount': as_decimal(0),
                'last_activity': expense.created_at,
            })
            activity['expense_count'] += 1
            activity['total_expense_amount'] += as_decimal(expense.amount)
            if expense.created_at and (activity['last_activity'] is None or expense.created_at > activity['last_activity']):
                activity['last_activity'] = expense.created_at

        for activity in by_startup.values():
            if activity['last_activity'] is not None:
                activity['last_activity'] = activity['last_activity'].isoformat()

        timeline = [
            {
                'type': 'EXPENSE',
                'date': e.created_at.isoformat() if e.created_at else None,
                'startup': {'id': e.startup_id, 'name': e.startup.name},
                'user': {'id': e.submitted_by_id, 'name': e.submitted_by.name if e.submitted_by else None},
                'details': {'description': e.description, 'amount': as_decimal(e.amount), 'status': e.status},
            }
            for e in expenses[:timeline_limit]
        ]

        return {
            'expenses': {
                'count': len(expenses),
                'total': sum_amounts(e.amount for e in expenses),
            },
            'activity_by_startup': list(by_startup.values()),
            'timeline': timeline,
            'summary': {
                'total_expenses': len(expenses),
                'active_startups': len(by_startup),
            },
        }

    @staticmethod
    def get_startup_dashboard(startup_id):
        """Budget overview and recent expenses for a single startup."""
        startup = get_or_none(Startup, startup_id)
        if startup is None or startup.is_deleted:
            raise NotFoundError('Startup', startup_id)
        totals = SpendService.get_totals_by_startup(startup.id)
        recent = ExpenseService.list_expenses(
            startup_id=startup.id, limit=current_app.config.get('RECENT_EXPENSES_LIMIT', 5),
        )
        return {
            'startup': startup.to_dict(),
            'budget_categories': SpendService.list_with_spent(startup.id),
            'total_allocated': totals['total_allocated'],
            'total_spent': totals['total_spent'],
            'metrics': ExpenseService.get_metrics_for_startup(startup.id),
            'current_month_spent': ExpenseService.get_current_month_total(startup.id),
            'recent_expenses': [e.to_dict() for e in recent],
        }
