"""
Routes for the global category catalog
"""
from flask import jsonify, request
from blueprints.categories import bp
from services.category_service import CategoryService
from utils.permissions import admin_required, resolve_caller
from utils.request_helpers import arg_bool, json_body


@bp.route('/')
def index():
    """Students only ever see active categories."""
    caller = resolve_caller()
    if not caller.is_admin:
        return jsonify([c.to_dict() for c in CategoryService.list_active()])
    categories = CategoryService.list_categories(
        is_active=arg_bool('is_active'),
        search=request.args.get('search'),
    )
    return jsonify([c.to_dict(include_counts=True) for c in categories])


@bp.route('/', methods=['POST'])
@admin_required
def create():
    data = json_body()
    category = CategoryService.create(
        data.get('name'),
        description=data.get('description'),
        is_active=data.get('is_active', True),
    )
    return jsonify(category.to_dict()), 201


@bp.route('/metrics')
@admin_required
def metrics():
    return jsonify(CategoryService.get_metrics())


@bp.route('/<int:category_id>')
def detail(category_id):
    return jsonify(CategoryService.get(category_id).to_dict(include_counts=resolve_caller().is_admin))


@bp.route('/<int:category_id>', methods=['PUT', 'PATCH'])
@admin_required
def update(category_id):
    data = json_body()
    category = CategoryService.update(
        category_id,
        name=data.get('name'),
        description=data.get('description'),
        is_active=data.get('is_active'),
    )
    return jsonify(category.to_dict())


@bp.route('/<int:category_id>', methods=['DELETE'])
@admin_required
def delete(category_id):
    CategoryService.delete(category_id)
    return jsonify({'success': True})
