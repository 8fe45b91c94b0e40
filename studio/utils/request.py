"""Request parsing helpers"""
from flask import request

from studio.errors import ValidationError
from studio.utils.sanitize import sanitize_dict


def json_body(sanitize=True):
    """
    Parsed JSON object from the request body.

    Raises ValidationError when the body is not a JSON object. String values
    are HTML-escaped unless ``sanitize`` is False.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return sanitize_dict(data) if sanitize else data


def bearer_token(data=None):
    """
    Token from ``Authorization: Bearer <token>``, falling back to a
    ``sessionToken`` field in the JSON body.
    """
    auth_header = request.headers.get('Authorization', '')
    if auth_header:
        scheme, _, token = auth_header.partition(' ')
        if scheme.lower() == 'bearer' and token.strip():
            return token.strip()
    if data is None:
        data = request.get_json(silent=True) or {}
    token = data.get('sessionToken') if isinstance(data, dict) else None
    return token.strip() if isinstance(token, str) and token.strip() else None
