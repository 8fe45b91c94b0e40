"""
Password hashing and token helpers
"""
import hashlib
import hmac
import secrets

import bcrypt


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows; the account cannot log in with it"""
    return hash_password(secrets.token_urlsafe(32))


def generate_session_token() -> str:
    """Opaque, fixed-length (64 hex chars) bearer token"""
    return secrets.token_hex(32)


def compute_hmac_sha512(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA512 hex digest of payload"""
    return hmac.new(secret.encode('utf-8'), payload, hashlib.sha512).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode('utf-8'), b.encode('utf-8'))
