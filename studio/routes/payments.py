from flask import Blueprint, jsonify, request

from studio.extensions import limiter
from studio.services import payment_service
from studio.utils.auth import require_admin
from studio.utils.request import json_body

payments_bp = Blueprint('payments', __name__)


@payments_bp.route('/initiate', methods=['POST'])
@limiter.limit('30 per hour')
def initiate():
    """
    Start a Paystack checkout
    POST /api/paystack/initiate
    Body: {
        "email": "jane@example.com",
        "amount": 150000,          # major units (Naira)
        "serviceId": "web-app",
        "serviceName": "Web Application",
        "bookingId": 12            # optional
    }
    """
    data = payment_service.initiate_payment(json_body())
    return jsonify({'success': True, 'data': data}), 200


@payments_bp.route('/verify', methods=['POST'])
@limiter.limit('60 per hour')
def verify():
    """
    Verify a payment after the Paystack redirect
    POST /api/paystack/verify
    Body: {"reference": "...", "service": "...", "amount": 150000}

    Safe to call repeatedly; a recorded reference returns its summary.
    """
    data = json_body()
    summary = payment_service.verify_payment(
        data.get('reference'),
        expected_service=data.get('service'),
        expected_amount=data.get('amount'),
    )
    return jsonify({'success': True, 'data': summary}), 200


@payments_bp.route('/webhook', methods=['POST'])
@limiter.exempt
def webhook():
    """
    Paystack webhook
    POST /api/paystack/webhook

    The x-paystack-signature header is an HMAC-SHA512 of the raw body.
    """
    result = payment_service.handle_webhook(
        request.get_data(),
        request.headers.get('x-paystack-signature'),
    )
    return jsonify(result), 200


@payments_bp.route('/transactions', methods=['GET'])
@require_admin
def list_transactions():
    result = payment_service.list_transactions(
        status=request.args.get('status'),
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('perPage', type=int),
    )
    result['items'] = [txn.to_dict(include_order=True) for txn in result['items']]
    return jsonify({'success': True, **result}), 200
