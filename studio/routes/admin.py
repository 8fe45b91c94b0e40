import logging

from flask import Blueprint, current_app, g, jsonify

from studio.errors import ConflictError, ForbiddenError
from studio.extensions import limiter
from studio.models import AdminUser
from studio.services import auth_service, dashboard_service
from studio.utils.auth import require_admin
from studio.utils.request import bearer_token, json_body
from studio.utils.security import constant_time_compare

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/admin/login', methods=['POST'])
@limiter.limit('10 per minute')
def login():
    """
    Admin login by username or email
    POST /api/admin/login
    Body: {"username": "admin", "password": "..."}
    """
    data = json_body()
    admin, session = auth_service.admin_login(
        data.get('username') or data.get('email'),
        data.get('password'),
    )
    return jsonify({
        'success': True,
        'admin': admin.to_dict(),
        'token': session.token,
        'expiresAt': session.to_dict()['expiresAt'],
    }), 200


@admin_bp.route('/admin/verify', methods=['POST'])
@require_admin
def verify():
    return jsonify({'success': True, 'admin': g.current_admin.to_dict()}), 200


@admin_bp.route('/admin/logout', methods=['POST'])
def logout():
    auth_service.admin_logout(bearer_token(data={}))
    return jsonify({'success': True}), 200


@admin_bp.route('/seed-admin', methods=['POST'])
@limiter.limit('5 per hour')
def seed_admin():
    """
    Create the first admin account
    POST /api/seed-admin
    Body: {"secret": "...", "username": "...", "email": "...", "password": "..."}

    Only works while no admin exists and ADMIN_SEED_SECRET is configured.
    """
    data = json_body()
    expected = current_app.config.get('ADMIN_SEED_SECRET')
    if not expected or not constant_time_compare(expected, str(data.get('secret') or '')):
        logger.warning('Rejected seed-admin request')
        raise ForbiddenError('Invalid seed secret')
    if AdminUser.query.first() is not None:
        raise ConflictError('An admin account already exists')

    admin = auth_service.create_admin(
        data.get('username'),
        data.get('email'),
        data.get('password'),
        role='superadmin',
    )
    return jsonify({'success': True, 'admin': admin.to_dict()}), 201


@admin_bp.route('/admin/stats', methods=['GET'])
@require_admin
def stats():
    return jsonify({'success': True, 'stats': dashboard_service.admin_stats()}), 200
