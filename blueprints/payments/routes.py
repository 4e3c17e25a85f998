"""
Routes for proof-of-payment upload and review
"""
from flask import abort, current_app, jsonify, request
from blueprints.payments import payments_bp
from extensions import limiter
from services.payment_service import PaymentService
from utils.file_store import LocalFileStore
from utils.permissions import admin_required, resolve_caller
from utils.request_helpers import json_body


@payments_bp.route('/status')
def status():
    caller = resolve_caller()
    return jsonify(PaymentService.get_status(caller.id))


@payments_bp.route('/upload', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('PAYMENT_UPLOAD_RATE_LIMIT', '10 per hour'))
def upload():
    """
    Submit a proof of payment.

    Accepts a multipart ``file`` (stored through the file store) or a JSON
    ``proof_url`` pointing at an already stored file.
    """
    caller = resolve_caller()
    upload = request.files.get('file')
    store = LocalFileStore.from_app()
    if upload is not None:
        proof_url = store.store_file(upload.read(), upload.filename, folder='payments')
    else:
        proof_url = json_body().get('proof_url')
        if not proof_url:
            abort(400, description='No file provided')

    try:
        user = PaymentService.submit_proof(caller.id, proof_url)
    except Exception:
        # The proof is orphaned if the submission is refused
        if upload is not None:
            store.delete_file(proof_url)
        raise
    return jsonify(user.payment_projection()), 201


@payments_bp.route('/pending')
@admin_required
def pending():
    return jsonify([
        {'id': u.id, 'name': u.name, 'email': u.email, **u.payment_projection()}
        for u in PaymentService.list_pending()
    ])


@payments_bp.route('/metrics')
@admin_required
def metrics():
    return jsonify(PaymentService.get_metrics())


@payments_bp.route('/<int:user_id>/approve', methods=['POST'])
@admin_required
def approve(user_id):
    user = PaymentService.approve(user_id)
    return jsonify(user.to_dict())


@payments_bp.route('/<int:user_id>/reject', methods=['POST'])
@admin_required
def reject(user_id):
    user = PaymentService.reject(user_id, json_body().get('reason'))
    return jsonify(user.to_dict())
