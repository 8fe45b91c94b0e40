"""
Validation utilities
"""
import re

from studio.errors import ValidationError, field_error

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(email):
    """
    Validate email format (local@domain.tld)

    Args:
        email (str): Email address to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not email or not isinstance(email, str):
        return False

    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_phone(phone):
    """
    Validate phone number format (international, 7-15 digits)

    Args:
        phone (str): Phone number to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not phone or not isinstance(phone, str):
        return False

    # Remove common separators
    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)
    return bool(re.match(r'^\+?\d{7,15}$', cleaned))


def normalize_email(email):
    return email.strip().lower()


def require_fields(data, fields):
    """
    Raise ValidationError listing every required field that is missing or blank.

    Args:
        data (dict): Request payload
        fields (iterable): (key, label) pairs or plain keys
    """
    missing = []
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field_error(field, 'is required'))
    if missing:
        names = ', '.join(entry['field'] for entry in missing)
        raise ValidationError(f'Missing required fields: {names}', details=missing)


def require_email(data, field='email'):
    """Validate the email field and return it normalised"""
    email = data.get(field)
    if not validate_email(email):
        raise ValidationError('Invalid email address', details=[field_error(field, 'must be a valid email address')])
    return normalize_email(email)


def check_phone(data, field='phone'):
    """Reject a supplied phone number that is not 7-15 digits; absent is fine"""
    phone = data.get(field)
    if phone in (None, ''):
        return
    if not validate_phone(phone):
        raise ValidationError('Invalid phone number', details=[field_error(field, 'must be 7-15 digits')])
