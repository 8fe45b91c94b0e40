"""Input sanitization utilities to prevent XSS and injection attacks."""

import html

# Values under these keys are compared or hashed, never rendered
SKIP_KEYS = frozenset({'password', 'currentPassword', 'newPassword', 'sessionToken', 'token', 'secret'})


def sanitize_string(value):
    """Escape HTML entities in a string.

    Converts < > & " ' to their HTML entity equivalents so that
    user-supplied strings cannot inject markup or script tags.
    """
    if not isinstance(value, str):
        return value
    return html.escape(value.strip(), quote=True)


def sanitize_dict(data):
    """Recursively walk a dict/list structure and sanitize all string values.

    Non-string leaves (int, float, bool, None) are returned unchanged, as
    are values under SKIP_KEYS.
    """
    if isinstance(data, dict):
        return {
            key: value if key in SKIP_KEYS else sanitize_dict(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize_dict(item) for item in data]
    if isinstance(data, str):
        return sanitize_string(data)
    return data
