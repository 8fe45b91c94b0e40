"""
Helper utilities
"""
from datetime import date, datetime
from decimal import Decimal

from flask import current_app

from studio.errors import ValidationError, field_error


def split_name(name):
    """
    Split a single "name" field into first and last name on the first
    whitespace run. A single token becomes the first name.

    Returns:
        tuple: (first_name, last_name)
    """
    parts = (name or '').strip().split(None, 1)
    if not parts:
        return '', ''
    if len(parts) == 1:
        return parts[0], ''
    return parts[0], parts[1].strip()


def format_currency(amount, currency='NGN'):
    """
    Format amount as currency

    Args:
        amount: Numeric amount
        currency (str): Currency code

    Returns:
        str: Formatted currency string
    """
    if isinstance(amount, (Decimal, float, int)):
        amount = float(amount)
        symbols = {'NGN': '₦', 'USD': '$', 'GBP': '£'}
        if currency in symbols:
            return f'{symbols[currency]}{amount:,.2f}'
        return f'{amount:,.2f} {currency}'

    return str(amount)


def parse_date(value, field='date'):
    """
    Parse an ISO date string (YYYY-MM-DD) to a date.

    Returns None for empty input; raises ValidationError on bad format.
    """
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('Invalid date format. Use YYYY-MM-DD',
                              details=[field_error(field, 'must be YYYY-MM-DD')])


def safe_int(value, default=0):
    """
    Safely convert value to int

    Args:
        value: Value to convert
        default (int): Default value if conversion fails

    Returns:
        int: Converted value or default
    """
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def paginate_query(query, page=1, per_page=None):
    """Helper to paginate Flask-SQLAlchemy queries"""
    max_per_page = current_app.config.get('MAX_ITEMS_PER_PAGE', 100)
    per_page = per_page or current_app.config.get('ITEMS_PER_PAGE', 20)
    page = max(1, page)
    per_page = min(max_per_page, max(1, per_page))

    paginated = query.paginate(page=page, per_page=per_page, error_out=False)

    return {
        'items': paginated.items,
        'total': paginated.total,
        'page': page,
        'perPage': per_page,
        'pages': paginated.pages,
        'hasNext': paginated.has_next,
        'hasPrev': paginated.has_prev,
    }
