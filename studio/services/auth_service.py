"""
Client and admin authentication.

Both roles use opaque random bearer tokens with a fixed expiry, stored in
separate tables so one role's token is never accepted for the other.
"""
import logging

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from studio import db
from studio.errors import AuthError, ConflictError, ValidationError, field_error
from studio.models import AdminSession, AdminUser, User, UserSession
from studio.models.base import utcnow
from studio.utils.validators import check_phone, normalize_email, require_email, require_fields

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'
INVALID_SESSION = 'Invalid or expired session'


def _check_password_strength(password):
    min_length = current_app.config.get('MIN_PASSWORD_LENGTH', 8)
    if not isinstance(password, str) or len(password) < min_length:
        raise ValidationError(
            f'Password must be at least {min_length} characters',
            details=[field_error('password', f'must be at least {min_length} characters')],
        )


def _issue_user_session(user):
    return UserSession.issue(current_app.config['SESSION_LIFETIME'], user_id=user.id)


def register(email, password, first_name, last_name, phone=None):
    """
    Create a client account and log it in.

    A provisional account created by booking intake is claimed rather than
    rejected; any other existing account raises ConflictError.

    Returns:
        tuple: (User, UserSession)
    """
    require_fields({'email': email, 'password': password, 'firstName': first_name},
                   ['email', 'password', 'firstName'])
    email = require_email({'email': email})
    check_phone({'phone': phone})
    _check_password_strength(password)

    user = User.query.filter_by(email=email).first()
    if user is not None and not user.is_provisional:
        raise ConflictError('User with this email already exists')

    if user is None:
        user = User(email=email)
        db.session.add(user)
    else:
        logger.info('Claiming provisional account %s', user.id)

    user.set_password(password)
    user.first_name = first_name.strip()
    user.last_name = (last_name or '').strip()
    if phone:
        user.phone = phone
    user.is_provisional = False
    user.is_active = True
    user.last_login_at = utcnow()

    try:
        db.session.flush()
        session = _issue_user_session(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('User with this email already exists')

    logger.info('Registered user %s', user.id)
    return user, session


def login(email, password):
    """
    Returns:
        tuple: (User, UserSession)

    Unknown email, wrong password, inactive and provisional accounts all
    fail the same way.
    """
    missing = [field_error(name, 'is required')
               for name, value in (('email', email), ('password', password)) if not value]
    if missing:
        raise ValidationError('Email and password are required', details=missing)

    user = User.query.filter_by(email=normalize_email(email)).first()
    if user is None or user.is_provisional or not user.is_active or not user.check_password(password):
        raise AuthError(INVALID_CREDENTIALS)

    user.last_login_at = utcnow()
    session = _issue_user_session(user)
    db.session.commit()
    return user, session


def verify_session(token):
    """
    Resolve a client session token to its user. Read-only.

    Raises:
        AuthError: token missing, unknown, inactive, expired, or user inactive
    """
    if not token:
        raise AuthError('Session token is required')
    session = UserSession.query.filter_by(token=token).first()
    if session is None or not session.is_valid():
        raise AuthError(INVALID_SESSION)
    user = session.user
    if user is None or not user.is_active:
        raise AuthError(INVALID_SESSION)
    return user


def logout(token):
    """Invalidate a client session. Unknown or already inactive tokens are fine."""
    if not token:
        return
    session = UserSession.query.filter_by(token=token).first()
    if session is not None and session.is_active:
        session.invalidate()
        db.session.commit()


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def create_admin(username, email, password, role='admin'):
    require_fields({'username': username, 'email': email, 'password': password},
                   ['username', 'email', 'password'])
    email = require_email({'email': email})
    _check_password_strength(password)

    admin = AdminUser(username=username.strip(), email=email, role=role)
    admin.set_password(password)
    db.session.add(admin)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Admin with this username or email already exists')
    logger.info('Created admin %s (%s)', admin.username, admin.role)
    return admin


def admin_login(identifier, password):
    """
    Log an admin in by username or email.

    Returns:
        tuple: (AdminUser, AdminSession)
    """
    if not identifier or not password:
        raise ValidationError('Username and password are required')

    identifier = identifier.strip()
    admin = AdminUser.query.filter(
        or_(AdminUser.username == identifier, AdminUser.email == identifier.lower())
    ).first()
    if admin is None or not admin.is_active or not admin.check_password(password):
        raise AuthError(INVALID_CREDENTIALS)

    admin.last_login_at = utcnow()
    session = AdminSession.issue(current_app.config['ADMIN_SESSION_LIFETIME'], admin_id=admin.id)
    db.session.commit()
    logger.info('Admin %s logged in', admin.username)
    return admin, session


def verify_admin_session(token):
    if not token:
        raise AuthError('Admin token is required')
    session = AdminSession.query.filter_by(token=token).first()
    if session is None or not session.is_valid():
        raise AuthError(INVALID_SESSION)
    admin = session.admin
    if admin is None or not admin.is_active:
        raise AuthError(INVALID_SESSION)
    return admin


def admin_logout(token):
    if not token:
        return
    session = AdminSession.query.filter_by(token=token).first()
    if session is not None and session.is_active:
        session.invalidate()
        db.session.commit()
