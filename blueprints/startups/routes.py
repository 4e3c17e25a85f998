"""
Routes for startups and their budget allocations
"""
from flask import jsonify, request
from blueprints.startups import startups_bp
from services.budget_service import BudgetService
from services.report_service import ReportService
from services.startup_service import StartupService
from utils.permissions import admin_required, require_startup_access, resolve_caller
from utils.request_helpers import arg_bool, json_body, pick

STARTUP_FIELDS = (
    'name', 'description', 'industry', 'incubation_start', 'incubation_end',
    'status', 'student_ids', 'total_budget',
)


@startups_bp.route('/')
def index():
    """Admins see every startup with spend figures; students their own."""
    caller = resolve_caller()
    if caller.is_admin:
        return jsonify(StartupService.list_with_spent(
            search=request.args.get('search'),
            status=request.args.get('status'),
        ))
    return jsonify([s.to_dict() for s in StartupService.get_for_student(caller.id)])


@startups_bp.route('/', methods=['POST'])
@admin_required
def create():
    data = json_body()
    startup = StartupService.create(
        name=data.get('name'),
        total_budget=data.get('total_budget'),
        description=data.get('description'),
        industry=data.get('industry'),
        incubation_start=data.get('incubation_start'),
        incubation_end=data.get('incubation_end'),
        student_ids=data.get('student_ids'),
    )
    return jsonify(startup.to_dict()), 201


@startups_bp.route('/metrics')
@admin_required
def metrics():
    return jsonify(StartupService.get_metrics())


@startups_bp.route('/<int:startup_id>')
def detail(startup_id):
    require_startup_access(startup_id)
    include_deleted = bool(arg_bool('include_deleted')) and resolve_caller().is_admin
    return jsonify(StartupService.get(startup_id, include_deleted=include_deleted).to_dict())


@startups_bp.route('/<int:startup_id>', methods=['PUT', 'PATCH'])
@admin_required
def update(startup_id):
    startup = StartupService.update(startup_id, **pick(json_body(), *STARTUP_FIELDS))
    return jsonify(startup.to_dict())


@startups_bp.route('/<int:startup_id>', methods=['DELETE'])
@admin_required
def delete(startup_id):
    StartupService.soft_delete(startup_id)
    return jsonify({'success': True})


@startups_bp.route('/<int:startup_id>/dashboard')
def dashboard(startup_id):
    require_startup_access(startup_id)
    return jsonify(ReportService.get_startup_dashboard(startup_id))


@startups_bp.route('/<int:startup_id>/budgets')
def budgets(startup_id):
    """Budget categories with spent / remaining / utilisation."""
    require_startup_access(startup_id)
    StartupService.get(startup_id)
    return jsonify({
        'startup_id': startup_id,
        'total_allocated': BudgetService.get_total_allocated(startup_id),
        'categories': BudgetService.list_with_spent(startup_id),
    })


@startups_bp.route('/<int:startup_id>/budgets', methods=['POST'])
@admin_required
def create_budget(startup_id):
    data = json_body()
    budget_category = BudgetService.create_category(startup_id, data.get('name'), data.get('max_budget'))
    return jsonify(budget_category.to_dict()), 201
