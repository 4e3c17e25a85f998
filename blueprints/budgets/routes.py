"""
Routes for individual budget categories
"""
from flask import jsonify
from blueprints.budgets import budgets_bp
from services.budget_service import BudgetService
from services.spend_service import SpendService
from utils.permissions import admin_required, require_startup_access
from utils.request_helpers import json_body


@budgets_bp.route('/<int:budget_category_id>')
def detail(budget_category_id):
    budget_category = BudgetService.get(budget_category_id)
    require_startup_access(budget_category.startup_id)
    spent = SpendService.get_spent_amount(budget_category.id, budget_category.startup_id)
    return jsonify(SpendService.describe(budget_category, spent))


@budgets_bp.route('/<int:budget_category_id>', methods=['PUT', 'PATCH'])
@admin_required
def update(budget_category_id):
    data = json_body()
    budget_category = BudgetService.update_category(
        budget_category_id,
        name=data.get('name'),
        max_budget=data.get('max_budget'),
    )
    return jsonify(budget_category.to_dict())


@budgets_bp.route('/<int:budget_category_id>', methods=['DELETE'])
@admin_required
def delete(budget_category_id):
    BudgetService.delete_category(budget_category_id)
    return jsonify({'success': True})
