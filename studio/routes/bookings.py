from flask import Blueprint, jsonify, request

from studio.extensions import limiter
from studio.services import booking_service
from studio.utils.auth import require_admin
from studio.utils.request import json_body

bookings_bp = Blueprint('bookings', __name__)


@bookings_bp.route('/booking', methods=['POST'])
@limiter.limit('20 per hour')
def create_booking():
    """
    Public booking intake
    POST /api/booking
    Body: {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "service": "web-app",
        "phone": "...", "projectType": "...", "budget": "...",
        "timeline": "...", "message": "..."
    }

    Creates the booking, its project and (if needed) a provisional user.
    """
    result = booking_service.submit_booking(json_body())
    return jsonify({'success': True, **result}), 200


@bookings_bp.route('/bookings', methods=['GET'])
@require_admin
def list_bookings():
    """
    List bookings
    GET /api/bookings?search=jane&paymentStatus=pending&page=1&perPage=20
    """
    result = booking_service.list_bookings(
        search=request.args.get('search'),
        payment_status=request.args.get('paymentStatus'),
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('perPage', type=int),
    )
    result['items'] = [booking.to_dict() for booking in result['items']]
    return jsonify({'success': True, **result}), 200


@bookings_bp.route('/bookings/<int:booking_id>', methods=['GET'])
@require_admin
def get_booking(booking_id):
    booking = booking_service.get_booking(booking_id)
    return jsonify({'success': True, 'booking': booking.to_dict(include_project=True)}), 200


@bookings_bp.route('/bookings/<int:booking_id>', methods=['PUT'])
@require_admin
def update_booking(booking_id):
    """
    Update a booking
    PUT /api/bookings/:id
    Body: any of name, email, phone, service, projectType, budget,
    timeline, message, paymentStatus
    """
    booking = booking_service.update_booking(booking_id, json_body())
    return jsonify({'success': True, 'booking': booking.to_dict(include_project=True)}), 200


@bookings_bp.route('/bookings/<int:booking_id>', methods=['DELETE'])
@require_admin
def delete_booking(booking_id):
    booking_service.delete_booking(booking_id)
    return jsonify({'success': True, 'message': 'Booking deleted'}), 200
