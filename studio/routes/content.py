from flask import Blueprint, jsonify, request

from studio.extensions import limiter
from studio.services import content_service
from studio.utils.auth import require_admin
from studio.utils.request import json_body

content_bp = Blueprint('content', __name__)


# ---------------------------------------------------------------------------
# Contact form
# ---------------------------------------------------------------------------

@content_bp.route('/contact', methods=['POST'])
@limiter.limit('10 per hour')
def submit_contact():
    """
    POST /api/contact
    Body: {"firstName", "lastName", "email", "subject", "message"}
    """
    contact = content_service.submit_contact(json_body())
    return jsonify({'success': True, 'contact': contact.to_dict()}), 201


@content_bp.route('/contacts', methods=['GET'])
@require_admin
def list_contacts():
    result = content_service.list_contacts(
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('perPage', type=int),
    )
    result['items'] = [contact.to_dict() for contact in result['items']]
    return jsonify({'success': True, **result}), 200


@content_bp.route('/contacts/<int:contact_id>', methods=['DELETE'])
@require_admin
def delete_contact(contact_id):
    content_service.delete_contact(contact_id)
    return jsonify({'success': True, 'message': 'Contact deleted'}), 200


# ---------------------------------------------------------------------------
# Service inquiries
# ---------------------------------------------------------------------------

@content_bp.route('/inquiry', methods=['POST'])
@limiter.limit('10 per hour')
def submit_inquiry():
    """
    POST /api/inquiry
    Body: {"name", "email", "service", "message", "phone"?}
    """
    inquiry = content_service.submit_inquiry(json_body())
    return jsonify({'success': True, 'inquiry': inquiry.to_dict()}), 201


@content_bp.route('/admin/inquiries', methods=['GET'])
@require_admin
def list_inquiries():
    """GET /api/admin/inquiries?search=...&status=new&page=1"""
    result = content_service.list_inquiries(
        search=request.args.get('search'),
        status=request.args.get('status'),
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('perPage', type=int),
    )
    result['items'] = [inquiry.to_dict() for inquiry in result['items']]
    return jsonify({'success': True, **result}), 200


@content_bp.route('/admin/inquiries/<int:inquiry_id>', methods=['PUT'])
@require_admin
def update_inquiry(inquiry_id):
    inquiry = content_service.update_inquiry(inquiry_id, json_body())
    return jsonify({'success': True, 'inquiry': inquiry.to_dict()}), 200


@content_bp.route('/admin/inquiries/<int:inquiry_id>', methods=['DELETE'])
@require_admin
def delete_inquiry(inquiry_id):
    content_service.delete_inquiry(inquiry_id)
    return jsonify({'success': True, 'message': 'Inquiry deleted'}), 200


# ---------------------------------------------------------------------------
# Site settings
# ---------------------------------------------------------------------------

@content_bp.route('/settings', methods=['GET'])
def public_settings():
    return jsonify({'success': True, 'settings': content_service.public_settings()}), 200


@content_bp.route('/admin/settings', methods=['GET'])
@require_admin
def list_settings():
    settings = content_service.list_settings()
    return jsonify({'success': True, 'settings': [setting.to_dict() for setting in settings]}), 200


@content_bp.route('/admin/settings', methods=['PUT'])
@require_admin
def update_settings():
    """
    PUT /api/admin/settings
    Body: {"settings": [{"key": "site_name", "value": "..."}]} or {"key", "value"}
    """
    # Values may hold URLs; they are stored as entered
    settings = content_service.update_settings(json_body(sanitize=False))
    return jsonify({'success': True, 'settings': [setting.to_dict() for setting in settings]}), 200
