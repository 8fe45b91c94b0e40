"""
Booking intake and admin booking management.

Intake writes user (if new), booking, project, notification and timeline
entry in one transaction: either all of them exist afterwards or none do.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from studio import db
from studio.errors import NotFoundError, PersistenceError
from studio.models import Booking, Notification, Project, User
from studio.models.base import to_camel
from studio.notifications import send_booking_received_email
from studio.services import lifecycle
from studio.utils.helpers import paginate_query, split_name
from studio.utils.validators import check_phone, require_email, require_fields

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ['name', 'email', 'service']
OPTIONAL_FIELDS = ['phone', 'project_type', 'budget', 'timeline', 'message']
ADMIN_EDITABLE_FIELDS = ['name', 'email', 'phone', 'service', 'project_type', 'budget', 'timeline', 'message']
DEFAULT_PLACEHOLDER = 'TBD'


def _optional(data, field):
    value = data.get(to_camel(field), data.get(field))
    if isinstance(value, str):
        value = value.strip()
    return value or None


def get_or_create_user(email, name, phone=None):
    """
    Find the user for ``email`` or add a provisional one to the current
    transaction (flushed, not committed).

    Returns:
        tuple: (User, created)
    """
    user = User.query.filter_by(email=email).first()
    if user is not None:
        return user, False

    first_name, last_name = split_name(name)
    user = User(email=email, first_name=first_name, last_name=last_name, phone=phone,
                is_provisional=True, is_verified=False)
    user.set_unusable_password()
    db.session.add(user)
    db.session.flush()
    return user, True


def submit_booking(data):
    """
    Public booking intake.

    Returns:
        dict: {bookingId, projectId, userId}
    """
    require_fields(data, REQUIRED_FIELDS)
    email = require_email(data)
    check_phone(data)
    name = data['name'].strip()
    service = data['service'].strip()
    fields = {field: _optional(data, field) for field in OPTIONAL_FIELDS}

    # A concurrent intake may insert the same email between our lookup and
    # our insert. The unique constraint rejects ours; the second attempt
    # finds and reuses the other row.
    for attempt in (1, 2):
        try:
            user, created = get_or_create_user(email, name, fields['phone'])

            booking = Booking(
                user_id=user.id,
                name=name,
                email=email,
                service=service,
                payment_status=lifecycle.PaymentStatus.PENDING.value,
                **fields,
            )
            db.session.add(booking)
            db.session.flush()

            project = create_project_for_booking(booking, user)

            db.session.commit()
            break
        except IntegrityError:
            db.session.rollback()
            if attempt == 2:
                logger.exception('Booking intake failed for %s', email)
                raise PersistenceError('Failed to save booking. Please try again.')
            logger.info('Concurrent user creation for %s; retrying intake', email)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception('Booking intake failed for %s', email)
            raise PersistenceError('Failed to save booking. Please try again.')

    if created:
        logger.info('Provisioned user %s from booking email', user.id)
    logger.info('Booking %s submitted (project %s, user %s)', booking.id, project.id, user.id)
    send_booking_received_email(booking)

    return {'bookingId': booking.id, 'projectId': project.id, 'userId': user.id}


def create_project_for_booking(booking, user=None):
    """
    Create the project derived from a booking, with its creation timeline
    entry and a notification for the user. Flushed, not committed.
    """
    user = user or booking.user
    project = Project(
        booking_id=booking.id,
        user_id=user.id if user else booking.user_id,
        name=f'{booking.service} - {booking.name}',
        description=booking.message or f'{booking.service} project for {booking.name}',
        status=lifecycle.ProjectStatus.PLANNING.value,
        priority=lifecycle.ProjectPriority.MEDIUM.value,
        progress=0,
        budget=booking.budget or DEFAULT_PLACEHOLDER,
        client_email=booking.email,
    )
    db.session.add(project)
    db.session.flush()

    lifecycle.add_project_update(
        project,
        title='Project created',
        description=f'Your {booking.service} request has been received. Timeline: {booking.timeline or DEFAULT_PLACEHOLDER}.',
        update_type='created',
    )
    if project.user_id:
        Notification.create_notification(
            user_id=project.user_id,
            notification_type='project_created',
            title='Project created',
            message=f'Your project "{project.name}" has been created and is in planning.',
            related_entity_type='project',
            related_entity_id=project.id,
        )
    return project


def get_booking(booking_id):
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError('Booking not found')
    return booking


def list_bookings(search=None, payment_status=None, page=1, per_page=None):
    """Admin listing, newest first, with search over name/email/service/project type"""
    query = Booking.query

    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(
            Booking.name.ilike(term),
            Booking.email.ilike(term),
            Booking.service.ilike(term),
            Booking.project_type.ilike(term),
        ))

    if payment_status and payment_status != 'all':
        status = lifecycle.parse_payment_status(payment_status)
        query = query.filter(Booking.payment_status == status.value)

    query = query.order_by(Booking.created_at.desc(), Booking.id.desc())
    return paginate_query(query, page, per_page)


def update_booking(booking_id, data):
    """Admin edit. A paymentStatus change is checked against the lifecycle."""
    booking = get_booking(booking_id)

    present = [field for field in REQUIRED_FIELDS if field in data]
    require_fields(data, present)
    if 'email' in data:
        data = dict(data, email=require_email(data))
    changed = booking.update_from(data, ADMIN_EDITABLE_FIELDS)

    status = data.get('paymentStatus', data.get('payment_status'))
    if status is not None:
        target = lifecycle.parse_payment_status(status)
        if lifecycle.set_payment_status(booking, target):
            changed.append('payment_status')

    if booking.project is not None and 'email' in changed:
        booking.project.client_email = booking.email

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to update booking %s', booking_id)
        raise PersistenceError('Failed to update booking')

    logger.info('Booking %s updated: %s', booking.id, ', '.join(changed) or 'no changes')
    return booking


def delete_booking(booking_id):
    """Delete a booking; its project stays and is detached"""
    booking = get_booking(booking_id)
    if booking.project is not None:
        booking.project.booking_id = None
    try:
        db.session.delete(booking)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to delete booking %s', booking_id)
        raise PersistenceError('Failed to delete booking')
    logger.info('Booking %s deleted', booking_id)
