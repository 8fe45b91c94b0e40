"""Payment models - gateway-verified transactions, orders and payment logs"""
from studio import db
from .base import BaseModel


class Transaction(BaseModel):
    """
    A payment verified with the gateway. ``reference`` is the gateway's
    idempotency key; a reference is recorded at most once.
    """
    __tablename__ = 'transactions'

    reference = db.Column(db.String(100), nullable=False, unique=True, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)  # major units
    currency = db.Column(db.String(3), nullable=False, default='NGN')
    status = db.Column(db.String(20), nullable=False)
    channel = db.Column(db.String(30))

    service_id = db.Column(db.String(50))
    service_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)

    booking_id = db.Column(db.Integer, db.ForeignKey('bookings.id', ondelete='SET NULL'), index=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='SET NULL'))

    paid_at = db.Column(db.DateTime(timezone=True))
    gateway_metadata = db.Column('metadata', db.JSON)

    order = db.relationship('Order', backref='transaction', uselist=False, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Transaction {self.reference} {self.currency} {self.amount}>'

    def summary(self):
        """Shape returned by payment verification"""
        return {
            'reference': self.reference,
            'amount': float(self.amount),
            'currency': self.currency,
            'service': self.service_name,
            'customerEmail': self.customer_email,
            'bookingId': self.booking_id,
            'projectId': self.project_id,
        }

    def to_dict(self, include_order=False):
        data = super().to_dict()
        if include_order:
            data['order'] = self.order.to_dict() if self.order else None
        return data


class Order(BaseModel):
    """Order created for each verified transaction"""
    __tablename__ = 'orders'

    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id', ondelete='CASCADE'),
                               nullable=False, unique=True)
    booking_id = db.Column(db.Integer, db.ForeignKey('bookings.id', ondelete='SET NULL'))

    status = db.Column(db.String(20), nullable=False, default='pending')
    customer_email = db.Column(db.String(255), nullable=False)
    service_id = db.Column(db.String(50))
    service_name = db.Column(db.String(100), nullable=False)

    def __repr__(self):
        return f'<Order {self.id} {self.status}>'


class PaymentLog(BaseModel):
    """Client-facing payment history row, one per verified reference"""
    __tablename__ = 'payment_logs'

    reference = db.Column(db.String(100), nullable=False, unique=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey('bookings.id', ondelete='SET NULL'))
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='SET NULL'))

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='NGN')
    status = db.Column(db.String(20), nullable=False)
    source = db.Column(db.String(20), nullable=False, default='verify')  # verify, webhook
    description = db.Column(db.String(255))

    def __repr__(self):
        return f'<PaymentLog {self.reference} {self.status}>'


class WebhookEvent(BaseModel):
    """Audit log for all incoming gateway webhook events"""
    __tablename__ = 'webhook_events'

    event_type = db.Column(db.String(100), nullable=False)
    reference = db.Column(db.String(100), index=True)
    payload = db.Column(db.JSON)
    status = db.Column(db.String(20), nullable=False, default='processed')  # processed, ignored, failed
    error_message = db.Column(db.Text)

    def __repr__(self):
        return f'<WebhookEvent {self.event_type} {self.status}>'
