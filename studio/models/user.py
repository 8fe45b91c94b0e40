"""User and admin account models"""
from studio import db
from studio.utils.security import hash_password, verify_password, unusable_password_hash
from .base import BaseModel


class User(BaseModel):
    """
    User model - clients who book services and log into the dashboard.

    Rows created implicitly by booking intake are provisional: they carry a
    random unusable password until the person registers.
    """
    __tablename__ = 'users'

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(100), nullable=False, default='')
    last_name = db.Column(db.String(100), nullable=False, default='')
    phone = db.Column(db.String(50))

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_provisional = db.Column(db.Boolean, nullable=False, default=False)

    last_login_at = db.Column(db.DateTime(timezone=True))

    # Relationships
    sessions = db.relationship('UserSession', backref='user', lazy='dynamic', cascade='all, delete-orphan')
    bookings = db.relationship('Booking', backref='user', lazy='dynamic')
    notifications = db.relationship('Notification', backref='user', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User {self.email}>'

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = hash_password(password)

    def set_unusable_password(self):
        self.password_hash = unusable_password_hash()

    def check_password(self, password):
        """Verify password against hash"""
        return verify_password(password, self.password_hash)

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def to_dict(self):
        data = super().to_dict(exclude=['password_hash'])
        data['fullName'] = self.full_name
        return data


class AdminUser(BaseModel):
    """Admin account, kept apart from client users"""
    __tablename__ = 'admin_users'

    username = db.Column(db.String(50), nullable=False, unique=True)
    email = db.Column(db.String(100), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='admin')  # admin, superadmin
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True))

    sessions = db.relationship('AdminSession', backref='admin', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<AdminUser {self.username} ({self.role})>'

    def set_password(self, password):
        self.password_hash = hash_password(password)

    def check_password(self, password):
        return verify_password(password, self.password_hash)

    def to_dict(self):
        return super().to_dict(exclude=['password_hash'])
