"""Contact form, service inquiries and site settings"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from studio import db
from studio.errors import NotFoundError, PersistenceError, ValidationError, field_error
from studio.models import Contact, Inquiry, SiteSetting
from studio.utils.helpers import paginate_query
from studio.utils.validators import require_email, require_fields

logger = logging.getLogger(__name__)


def _save(instance, action):
    try:
        if instance is not None:
            db.session.add(instance)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to %s', action)
        raise PersistenceError(f'Failed to {action}')


def submit_contact(data):
    require_fields(data, ['firstName', 'lastName', 'email', 'subject', 'message'])
    contact = Contact(
        first_name=data['firstName'].strip(),
        last_name=data['lastName'].strip(),
        email=require_email(data),
        subject=data['subject'].strip(),
        message=data['message'].strip(),
    )
    _save(contact, 'save contact message')
    logger.info('Contact message %s from %s', contact.id, contact.email)
    return contact


def list_contacts(page=1, per_page=None):
    return paginate_query(Contact.query.order_by(Contact.created_at.desc()), page, per_page)


def delete_contact(contact_id):
    contact = db.session.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError('Contact not found')
    db.session.delete(contact)
    _save(None, 'delete contact')


def submit_inquiry(data):
    require_fields(data, ['name', 'email', 'service', 'message'])
    inquiry = Inquiry(
        name=data['name'].strip(),
        email=require_email(data),
        phone=(data.get('phone') or '').strip() or None,
        service=data['service'].strip(),
        message=data['message'].strip(),
    )
    _save(inquiry, 'save inquiry')
    logger.info('Inquiry %s for %s', inquiry.id, inquiry.service)
    return inquiry


def _inquiry_status(value):
    if value not in Inquiry.STATUSES:
        allowed = ', '.join(Inquiry.STATUSES)
        raise ValidationError(f'Invalid status. Must be one of: {allowed}',
                              details=[field_error('status', f'must be one of: {allowed}')])
    return value


def list_inquiries(search=None, status=None, page=1, per_page=None):
    query = Inquiry.query
    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(
            Inquiry.name.ilike(term),
            Inquiry.email.ilike(term),
            Inquiry.service.ilike(term),
            Inquiry.message.ilike(term),
        ))
    if status and status != 'all':
        query = query.filter(Inquiry.status == _inquiry_status(status))
    return paginate_query(query.order_by(Inquiry.created_at.desc()), page, per_page)


def get_inquiry(inquiry_id):
    inquiry = db.session.get(Inquiry, inquiry_id)
    if inquiry is None:
        raise NotFoundError('Inquiry not found')
    return inquiry


def update_inquiry(inquiry_id, data):
    inquiry = get_inquiry(inquiry_id)
    if 'status' in data:
        inquiry.status = _inquiry_status(data['status'])
    if 'email' in data:
        data = dict(data, email=require_email(data))
    inquiry.update_from(data, ['name', 'email', 'phone', 'service', 'message'])
    _save(None, 'update inquiry')
    return inquiry


def delete_inquiry(inquiry_id):
    db.session.delete(get_inquiry(inquiry_id))
    _save(None, 'delete inquiry')


def public_settings():
    """Key -> value map for the public site"""
    return {setting.key: setting.value for setting in SiteSetting.query.all()}


def list_settings():
    return SiteSetting.query.order_by(SiteSetting.category, SiteSetting.key).all()


def update_settings(data):
    """
    Upsert settings. Accepts ``{"settings": [{key, value, category?}, ...]}``
    or a single ``{key, value, category?}``.
    """
    entries = data.get('settings')
    if entries is None:
        entries = [data]
    if not isinstance(entries, list):
        raise ValidationError('settings must be a list')

    saved = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError('Each setting must be an object')
        require_fields(entry, ['key'])
        if 'value' not in entry:
            raise ValidationError('Missing required fields: value', details=[field_error('value', 'is required')])
        saved.append(SiteSetting.upsert(
            entry['key'].strip(),
            entry['value'],
            category=entry.get('category'),
            description=entry.get('description'),
        ))
    _save(None, 'save settings')
    logger.info('Site settings updated: %s', ', '.join(setting.key for setting in saved))
    return saved
