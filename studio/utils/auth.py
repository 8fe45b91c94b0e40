"""Route decorators for client and admin authentication"""
from functools import wraps

from flask import g

from studio.errors import AuthError
from studio.services import auth_service
from studio.utils.request import bearer_token


def require_session(f):
    """Decorator to require a valid client session; sets g.current_user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = auth_service.verify_session(bearer_token())
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Decorator to require a valid admin session; sets g.current_admin"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_admin = auth_service.verify_admin_session(bearer_token(data={}))
        return f(*args, **kwargs)

    return decorated_function


def require_client_or_admin(f):
    """
    Accept either an admin token or a client session token. Sets
    g.current_admin or g.current_user (the other is None).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        g.current_admin = None
        g.current_user = None
        try:
            g.current_admin = auth_service.verify_admin_session(token)
        except AuthError:
            g.current_user = auth_service.verify_session(token)
        return f(*args, **kwargs)

    return decorated_function
