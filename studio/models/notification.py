"""Notification model"""
from studio import db
from .base import BaseModel, utcnow


class Notification(BaseModel):
    """
    Notification model - in-app notifications for users
    """
    __tablename__ = 'notifications'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    type = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    # Related entities
    related_entity_type = db.Column(db.String(100))
    related_entity_id = db.Column(db.Integer)

    read_at = db.Column(db.DateTime(timezone=True))

    __table_args__ = (
        db.Index('idx_notifications_user_id', 'user_id', 'created_at'),
        db.Index('idx_notifications_unread', 'user_id', 'read_at'),
    )

    def __repr__(self):
        return f'<Notification {self.type} - user={self.user_id}>'

    @property
    def is_read(self):
        return self.read_at is not None

    def mark_read(self):
        """Mark notification as read"""
        if not self.read_at:
            self.read_at = utcnow()

    def to_dict(self):
        data = super().to_dict()
        data['isRead'] = self.is_read
        return data

    @classmethod
    def create_notification(cls, user_id, notification_type, title, message,
                            related_entity_type=None, related_entity_id=None):
        """
        Create a new notification (added to the session, not committed)

        Args:
            user_id: id of user to notify
            notification_type: Type of notification
            title: Notification title
            message: Notification message
            related_entity_type: Type of related entity (optional)
            related_entity_id: id of related entity (optional)

        Returns:
            Notification: Created notification
        """
        notification = cls(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id
        )
        db.session.add(notification)
        return notification
