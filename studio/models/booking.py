"""Booking model"""
from studio import db
from .base import BaseModel


class Booking(BaseModel):
    """
    Booking model - a prospective client's service request.

    ``payment_status`` is advisory; Transaction/PaymentLog rows are the
    authoritative payment record.
    """
    __tablename__ = 'bookings'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), index=True)

    # Requester contact
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(50))

    # Request details
    service = db.Column(db.String(100), nullable=False)
    project_type = db.Column(db.String(100))
    budget = db.Column(db.String(50))
    timeline = db.Column(db.String(100))
    message = db.Column(db.Text)

    # Payment
    payment_status = db.Column(db.String(20), nullable=False, default='pending')
    payment_reference = db.Column(db.String(100), index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id', ondelete='SET NULL',
                                                         use_alter=True, name='fk_bookings_transaction_id'))

    __table_args__ = (
        db.Index('idx_bookings_payment_status', 'payment_status'),
    )

    project = db.relationship('Project', backref='booking', uselist=False,
                              foreign_keys='Project.booking_id')
    transaction = db.relationship('Transaction', foreign_keys=[transaction_id])

    def __repr__(self):
        return f'<Booking {self.id} {self.service} - {self.payment_status}>'

    def to_dict(self, include_project=False):
        from studio.services.lifecycle import booking_lifecycle_state

        data = super().to_dict()
        data['lifecycleState'] = booking_lifecycle_state(self.payment_status).value
        if include_project:
            data['project'] = self.project.to_dict() if self.project else None
        return data
