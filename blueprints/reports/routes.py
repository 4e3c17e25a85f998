"""
Routes for admin reports
"""
from flask import jsonify, request
from blueprints.reports import reports_bp
from services.report_service import ReportService
from utils.permissions import admin_required
from utils.request_helpers import arg_date, arg_int


@reports_bp.before_request
@admin_required
def require_admin():
    pass


@reports_bp.route('/budget')
def budget():
    return jsonify(ReportService.get_budget_report(startup_id=arg_int('startup_id')))


@reports_bp.route('/expenses')
def expenses():
    return jsonify(ReportService.get_expense_report(
        startup_id=arg_int('startup_id'),
        status=request.args.get('status'),
        start_date=arg_date('start_date'),
        end_date=arg_date('end_date'),
    ))


@reports_bp.route('/activity')
def activity():
    return jsonify(ReportService.get_activity_report(
        startup_id=arg_int('startup_id'),
        start_date=arg_date('start_date'),
        end_date=arg_date('end_date'),
    ))
