from flask import Blueprint, jsonify

from studio.extensions import limiter
from studio.services import auth_service
from studio.utils.request import bearer_token, json_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
@limiter.limit('10 per hour')
def register():
    """
    Register a client account
    POST /api/auth/register
    Body: {
        "email": "jane@example.com",
        "password": "password123",
        "firstName": "Jane",
        "lastName": "Doe",
        "phone": "+2348012345678"
    }
    """
    data = json_body()
    user, session = auth_service.register(
        email=data.get('email'),
        password=data.get('password'),
        first_name=data.get('firstName'),
        last_name=data.get('lastName'),
        phone=data.get('phone'),
    )
    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'sessionToken': session.token,
    }), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit('10 per minute')
def login():
    """
    Login
    POST /api/auth/login
    Body: {"email": "jane@example.com", "password": "password123"}
    """
    data = json_body()
    user, session = auth_service.login(data.get('email'), data.get('password'))
    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'sessionToken': session.token,
    }), 200


@auth_bp.route('/verify', methods=['POST'])
def verify():
    """Check a client session (Bearer header or body sessionToken)"""
    user = auth_service.verify_session(bearer_token())
    return jsonify({'success': True, 'user': user.to_dict()}), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    auth_service.logout(bearer_token())
    return jsonify({'success': True}), 200
