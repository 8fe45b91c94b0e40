"""Bearer session models for clients and admins"""
from studio import db
from studio.utils.security import generate_session_token
from .base import BaseModel, utcnow, as_utc


class SessionMixin:
    """Opaque token with a fixed expiry and an active flag"""
    token = db.Column(db.String(64), nullable=False, unique=True, index=True, default=generate_session_token)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def is_expired(self, now=None):
        now = now or utcnow()
        return as_utc(self.expires_at) <= now

    def is_valid(self, now=None):
        return bool(self.is_active) and not self.is_expired(now)

    def invalidate(self):
        self.is_active = False

    @classmethod
    def issue(cls, lifetime, **owner):
        """Create (but do not commit) a new session expiring ``lifetime`` from now"""
        session = cls(token=generate_session_token(), expires_at=utcnow() + lifetime, **owner)
        db.session.add(session)
        return session


class UserSession(BaseModel, SessionMixin):
    """Client login session. Several may be active per user."""
    __tablename__ = 'user_sessions'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    def __repr__(self):
        return f'<UserSession user={self.user_id} active={self.is_active}>'


class AdminSession(BaseModel, SessionMixin):
    """Admin login session, stored apart from client sessions"""
    __tablename__ = 'admin_sessions'

    admin_id = db.Column(db.Integer, db.ForeignKey('admin_users.id', ondelete='CASCADE'), nullable=False, index=True)

    def __repr__(self):
        return f'<AdminSession admin={self.admin_id} active={self.is_active}>'
