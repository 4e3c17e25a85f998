"""
Routes for expense claims
"""
from flask import abort, current_app, jsonify, request
from blueprints.expenses import expenses_bp
from extensions import limiter
from services.expense_service import EDITABLE_FIELDS, ExpenseService
from services.startup_service import StartupService
from utils.file_store import LocalFileStore
from utils.permissions import admin_required, require_startup_access, resolve_caller
from utils.request_helpers import arg_date, arg_int, json_body, pick


@expenses_bp.route('/')
def index():
    """Admins filter every expense; students only see their own."""
    caller = resolve_caller()
    status = request.args.get('status')
    if not caller.is_admin:
        return jsonify([e.to_dict() for e in ExpenseService.list_for_submitter(caller.id, status=status)])
    expenses = ExpenseService.list_expenses(
        startup_id=arg_int('startup_id'),
        category_id=arg_int('category_id'),
        status=status,
        submitted_by_id=arg_int('submitted_by_id'),
        start_date=arg_date('start_date'),
        end_date=arg_date('end_date'),
    )
    return jsonify([e.to_dict() for e in expenses])


@expenses_bp.route('/', methods=['POST'])
def submit():
    data = json_body()
    startup_id = data.get('startup_id')
    caller = require_startup_access(startup_id)
    expense = ExpenseService.submit(
        startup_id=startup_id,
        category_id=data.get('category_id'),
        amount=data.get('amount'),
        date=data.get('date'),
        description=data.get('description'),
        receipt_url=data.get('receipt_url'),
        submitted_by_id=caller.id,
    )
    return jsonify(expense.to_dict()), 201


@expenses_bp.route('/receipts', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('PAYMENT_UPLOAD_RATE_LIMIT', '10 per hour'))
def upload_receipt():
    """Store a receipt file; the returned URL goes into ``receipt_url``."""
    resolve_caller()
    upload = request.files.get('file')
    if upload is None:
        abort(400, description='No file provided')
    url = LocalFileStore.from_app().store_file(upload.read(), upload.filename, folder='receipts')
    return jsonify({'url': url}), 201


@expenses_bp.route('/metrics')
def metrics():
    startup_id = arg_int('startup_id')
    if startup_id is None:
        caller = resolve_caller()
        if not caller.is_admin:
            abort(403)
        return jsonify(ExpenseService.get_metrics())
    require_startup_access(startup_id)
    return jsonify(ExpenseService.get_metrics_for_startup(startup_id))


@expenses_bp.route('/pending-count')
@admin_required
def pending_count():
    return jsonify({'count': ExpenseService.get_pending_count()})


@expenses_bp.route('/<int:expense_id>')
def detail(expense_id):
    caller = resolve_caller()
    expense = ExpenseService.get(expense_id)
    if not (caller.is_admin or expense.submitted_by_id == caller.id
            or StartupService.is_member(expense.startup_id, caller.id)):
        abort(403)
    return jsonify(expense.to_dict())


@expenses_bp.route('/<int:expense_id>', methods=['PUT', 'PATCH'])
def edit(expense_id):
    caller = resolve_caller()
    expense = ExpenseService.edit(expense_id, pick(json_body(), *EDITABLE_FIELDS), editor_id=caller.id)
    return jsonify(expense.to_dict())


@expenses_bp.route('/<int:expense_id>/approve', methods=['POST'])
@admin_required
def approve(expense_id):
    caller = resolve_caller()
    data = json_body()
    expense = ExpenseService.approve(expense_id, reviewer_id=caller.id, admin_comment=data.get('admin_comment'))
    return jsonify(expense.to_dict())


@expenses_bp.route('/<int:expense_id>/reject', methods=['POST'])
@admin_required
def reject(expense_id):
    caller = resolve_caller()
    data = json_body()
    expense = ExpenseService.reject(expense_id, reviewer_id=caller.id, admin_comment=data.get('admin_comment'))
    return jsonify(expense.to_dict())
