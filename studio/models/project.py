"""Project, project timeline and message models"""
from studio import db
from .base import BaseModel


class Project(BaseModel):
    """
    Project model - the unit of delivery work, usually derived 1:1 from a
    booking but also creatable standalone by an admin.
    """
    __tablename__ = 'projects'

    booking_id = db.Column(db.Integer, db.ForeignKey('bookings.id', ondelete='SET NULL'), unique=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default='planning')
    priority = db.Column(db.String(20), nullable=False, default='medium')
    progress = db.Column(db.Integer, nullable=False, default=0)

    budget = db.Column(db.String(50), default='TBD')
    start_date = db.Column(db.Date)
    due_date = db.Column(db.Date)
    assigned_to = db.Column(db.String(100))
    client_email = db.Column(db.String(255), nullable=False, index=True)

    __table_args__ = (
        db.CheckConstraint('progress >= 0 AND progress <= 100', name='ck_projects_progress_range'),
        db.Index('idx_projects_status', 'status'),
    )

    updates = db.relationship('ProjectUpdate', backref='project', lazy='dynamic',
                              cascade='all, delete-orphan', order_by='ProjectUpdate.created_at.desc()')
    messages = db.relationship('Message', backref='project', lazy='dynamic',
                               cascade='all, delete-orphan', order_by='Message.created_at')

    def __repr__(self):
        return f'<Project {self.id} {self.name} - {self.status}>'

    def is_owned_by(self, user):
        if user is None:
            return False
        if self.user_id is not None and self.user_id == user.id:
            return True
        return (self.client_email or '').lower() == user.email.lower()


class ProjectUpdate(BaseModel):
    """Timeline entry; client-visible rows feed the client dashboard"""
    __tablename__ = 'project_updates'

    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    update_type = db.Column(db.String(30), nullable=False, default='note')  # created, status_change, progress, payment, note
    is_client_visible = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<ProjectUpdate {self.update_type} project={self.project_id}>'


class Message(BaseModel):
    """Admin <-> client message on a project"""
    __tablename__ = 'messages'

    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))

    sender_type = db.Column(db.String(10), nullable=False)  # admin, client
    subject = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self):
        return f'<Message {self.sender_type} project={self.project_id}>'
