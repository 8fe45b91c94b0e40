"""SQLAlchemy models package"""
from .user import User, AdminUser
from .session import UserSession, AdminSession
from .booking import Booking
from .project import Project, ProjectUpdate, Message
from .payment import Transaction, Order, PaymentLog, WebhookEvent
from .notification import Notification
from .content import Contact, Inquiry, SiteSetting

__all__ = [
    'User',
    'AdminUser',
    'UserSession',
    'AdminSession',
    'Booking',
    'Project',
    'ProjectUpdate',
    'Message',
    'Transaction',
    'Order',
    'PaymentLog',
    'WebhookEvent',
    'Notification',
    'Contact',
    'Inquiry',
    'SiteSetting',
]
