"""
Projects, their timeline, messages and notifications.

Status and progress changes go through ``lifecycle.change_project_status``;
nothing here assigns a status string directly.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from studio import db
from studio.errors import ConflictError, ForbiddenError, NotFoundError, PersistenceError
from studio.models import Booking, Message, Notification, Project, User
from studio.notifications import send_new_message_email, send_project_update_email
from studio.services import lifecycle
from studio.utils.helpers import paginate_query, parse_date, safe_int
from studio.utils.validators import normalize_email, require_email, require_fields

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ['name', 'description', 'budget', 'assigned_to', 'client_email']


def get_project(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError('Project not found')
    return project


def get_project_for(project_id, user=None, admin=None):
    """Load a project the caller may see: any project for admins, own projects for clients"""
    project = get_project(project_id)
    if admin is None and not project.is_owned_by(user):
        raise ForbiddenError('You do not have access to this project')
    return project


def _commit(action, project_id=None):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('This booking already has a project')
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to %s project %s', action, project_id)
        raise PersistenceError(f'Failed to {action} project')


def list_projects(status=None, client_email=None, page=1, per_page=None):
    query = Project.query
    if status and status != 'all':
        query = query.filter(Project.status == lifecycle.parse_project_status(status).value)
    if client_email:
        query = query.filter(Project.client_email == normalize_email(client_email))
    query = query.order_by(Project.created_at.desc(), Project.id.desc())
    return paginate_query(query, page, per_page)


def projects_for_user(user):
    """Projects linked to the user by id or by the booking email"""
    return Project.query.filter(
        or_(Project.user_id == user.id, Project.client_email == user.email)
    ).order_by(Project.created_at.desc()).all()


def create_project(data):
    """
    Admin: create a standalone project, or one for a booking that has none.
    """
    require_fields(data, ['name', 'clientEmail'])
    client_email = require_email(data, 'clientEmail')

    booking_id = data.get('bookingId')
    if booking_id not in (None, ''):
        booking = db.session.get(Booking, safe_int(booking_id, default=-1))
        if booking is None:
            raise NotFoundError('Booking not found')
        if booking.project is not None:
            raise ConflictError('This booking already has a project')
        booking_id = booking.id
    else:
        booking_id = None

    user = User.query.filter_by(email=client_email).first()
    project = Project(
        booking_id=booking_id,
        user_id=user.id if user else None,
        name=data['name'].strip(),
        description=data.get('description'),
        status=lifecycle.ProjectStatus.PLANNING.value,
        priority=lifecycle.parse_priority(data.get('priority') or 'medium').value,
        progress=0,
        budget=data.get('budget') or 'TBD',
        start_date=parse_date(data.get('startDate'), 'startDate'),
        due_date=parse_date(data.get('dueDate'), 'dueDate'),
        assigned_to=data.get('assignedTo'),
        client_email=client_email,
    )
    db.session.add(project)
    db.session.flush()
    lifecycle.add_project_update(project, 'Project created', project.description, update_type='created')
    if user is not None:
        Notification.create_notification(
            user_id=user.id,
            notification_type='project_created',
            title='Project created',
            message=f'Your project "{project.name}" has been created and is in planning.',
            related_entity_type='project',
            related_entity_id=project.id,
        )
    _commit('create')
    logger.info('Project %s created for %s', project.id, client_email)
    return project


def update_project(project_id, data):
    """
    Admin edit of descriptive fields. ``status`` and ``progress`` in the
    same payload are routed through the lifecycle.
    """
    project = get_project(project_id)

    if 'clientEmail' in data:
        data = dict(data, clientEmail=require_email(data, 'clientEmail'))
    changed = project.update_from(data, EDITABLE_FIELDS)

    if 'priority' in data:
        priority = lifecycle.parse_priority(data['priority']).value
        if priority != project.priority:
            project.priority = priority
            changed.append('priority')
    for key, field in (('startDate', 'start_date'), ('dueDate', 'due_date')):
        if key in data:
            value = parse_date(data[key], key)
            if value != getattr(project, field):
                setattr(project, field, value)
                changed.append(field)

    updates = []
    if 'status' in data or 'progress' in data:
        updates = lifecycle.change_project_status(project, data.get('status'), data.get('progress'))

    _commit('update', project_id)
    logger.info('Project %s updated: %s', project.id, ', '.join(changed) or 'no field changes')
    for update in updates:
        send_project_update_email(project, update)
    return project


def change_status(project_id, status=None, progress=None, note=None):
    """Admin status/progress change; the client is notified of each timeline entry"""
    project = get_project(project_id)
    updates = lifecycle.change_project_status(project, status, progress, note)

    if updates and project.user_id:
        latest = updates[-1]
        Notification.create_notification(
            user_id=project.user_id,
            notification_type='project_update',
            title=latest.title,
            message=f'{project.name}: {latest.title}',
            related_entity_type='project',
            related_entity_id=project.id,
        )
    _commit('update', project_id)

    for update in updates:
        send_project_update_email(project, update)
    return project, updates


def delete_project(project_id):
    project = get_project(project_id)
    db.session.delete(project)
    _commit('delete', project_id)
    logger.info('Project %s deleted', project_id)


def list_updates(project, include_internal=False):
    query = project.updates
    if not include_internal:
        query = query.filter_by(is_client_visible=True)
    return query.all()


def add_note(project_id, title, description=None, client_visible=True):
    """Admin timeline note"""
    project = get_project(project_id)
    require_fields({'title': title}, ['title'])
    update = lifecycle.add_project_update(project, title.strip(), description, 'note', client_visible)
    _commit('update', project_id)
    if client_visible:
        send_project_update_email(project, update)
    return update


def list_messages(project):
    return project.messages.all()


def post_message(project, data, user=None, admin=None):
    """
    Add a message to a project thread. An admin message notifies the
    project's client in-app and by email.
    """
    require_fields(data, ['message'])
    sender_type = 'admin' if admin is not None else 'client'
    message = Message(
        project_id=project.id,
        user_id=user.id if user else project.user_id,
        sender_type=sender_type,
        subject=(data.get('subject') or '').strip() or f'Re: {project.name}',
        message=data['message'].strip(),
    )
    db.session.add(message)

    if admin is not None and project.user_id:
        Notification.create_notification(
            user_id=project.user_id,
            notification_type='new_message',
            title='New message',
            message=f'New message on {project.name}: {message.subject}',
            related_entity_type='project',
            related_entity_id=project.id,
        )

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to post message on project %s', project.id)
        raise PersistenceError('Failed to send message')

    logger.info('%s message %s posted on project %s', sender_type.title(), message.id, project.id)
    if admin is not None:
        send_new_message_email(project, message)
    return message


def mark_message_read(message_id, user=None, admin=None):
    """Mark a message from the other party as read"""
    message = db.session.get(Message, message_id)
    if message is None:
        raise NotFoundError('Message not found')
    get_project_for(message.project_id, user=user, admin=admin)

    reader = 'admin' if admin is not None else 'client'
    if message.sender_type == reader:
        raise ForbiddenError('You cannot mark your own message as read')
    if not message.is_read:
        message.is_read = True
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception('Failed to mark message %s read', message_id)
            raise PersistenceError('Failed to update message')
    return message


def unread_message_count(projects):
    """Admin messages the client has not read yet"""
    ids = [project.id for project in projects]
    if not ids:
        return 0
    return Message.query.filter(
        Message.project_id.in_(ids),
        Message.sender_type == 'admin',
        Message.is_read.is_(False),
    ).count()


def mark_notification_read(notification_id, user):
    notification = db.session.get(Notification, notification_id)
    if notification is None or notification.user_id != user.id:
        raise NotFoundError('Notification not found')
    if not notification.is_read:
        notification.mark_read()
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception('Failed to mark notification %s read', notification_id)
            raise PersistenceError('Failed to update notification')
    return notification
