"""
Shared Flask extension instances.

Created as a separate module to avoid circular imports when route
blueprints need access to extensions that are initialised in create_app().
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Storage URI, default limits and the enabled flag come from app config
# (RATELIMIT_STORAGE_URI, RATELIMIT_DEFAULT, RATELIMIT_ENABLED).
limiter = Limiter(key_func=get_remote_address)
