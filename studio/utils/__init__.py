"""Utilities package"""
from .validators import validate_email, validate_phone, check_phone, require_fields, require_email
from .helpers import split_name, format_currency, paginate_query, parse_date

__all__ = [
    'validate_email',
    'validate_phone',
    'check_phone',
    'require_fields',
    'require_email',
    'split_name',
    'format_currency',
    'paginate_query',
    'parse_date',
]
