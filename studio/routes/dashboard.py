from flask import Blueprint, g, jsonify

from studio.services import auth_service, dashboard_service, project_service
from studio.utils.auth import require_session

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/dashboard/<session_token>', methods=['GET'])
def client_dashboard(session_token):
    """
    Client dashboard
    GET /api/user/dashboard/:sessionToken

    Returns the user's projects, bookings, payment history, notifications,
    unread admin messages and summary stats.
    """
    user = auth_service.verify_session(session_token)
    return jsonify({'success': True, **dashboard_service.client_dashboard(user)}), 200


@dashboard_bp.route('/notifications/<int:notification_id>/read', methods=['PUT'])
@require_session
def mark_notification_read(notification_id):
    notification = project_service.mark_notification_read(notification_id, g.current_user)
    return jsonify({'success': True, 'notification': notification.to_dict()}), 200
