"""
Configuration settings for different environments
"""
import logging
import os
import secrets
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _database_url():
    """Read DATABASE_URL, fixing postgres:// for SQLAlchemy 2.x"""
    url = os.environ.get('DATABASE_URL', '')
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url or 'sqlite:///studio.db'


def _require_in_production(var_name, default):
    """Return env var value. Outside development, warn loudly if still using default."""
    value = os.environ.get(var_name, '')
    if value:
        return value
    env = os.environ.get('FLASK_ENV', 'development')
    if env != 'development' and default:
        logging.getLogger(__name__).warning(
            '%s is using an insecure default. Set it via environment variable!', var_name
        )
    return default


class Config:
    """Base configuration"""
    SECRET_KEY = _require_in_production('SECRET_KEY', 'dev-only-' + secrets.token_hex(16))

    API_PREFIX = '/api'

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }

    # Sessions
    SESSION_LIFETIME = timedelta(days=30)
    ADMIN_SESSION_LIFETIME = timedelta(hours=12)
    ADMIN_SEED_SECRET = os.environ.get('ADMIN_SEED_SECRET', '')
    MIN_PASSWORD_LENGTH = 8

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Pagination
    ITEMS_PER_PAGE = 20
    MAX_ITEMS_PER_PAGE = 100

    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1MB, JSON bodies only

    # Paystack
    PAYSTACK_SECRET_KEY = os.environ.get('PAYSTACK_SECRET_KEY', '')
    PAYSTACK_WEBHOOK_SECRET = os.environ.get('PAYSTACK_WEBHOOK_SECRET') or os.environ.get('PAYSTACK_SECRET_KEY', '')
    PAYSTACK_BASE_URL = os.environ.get('PAYSTACK_BASE_URL', 'https://api.paystack.co')
    PAYSTACK_CALLBACK_URL = os.environ.get('PAYSTACK_CALLBACK_URL', '')
    PAYSTACK_TIMEOUT = float(os.environ.get('PAYSTACK_TIMEOUT', '10'))
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'NGN')

    # Email (Resend)
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY', '')
    EMAIL_FROM = os.environ.get('EMAIL_FROM', 'hello@example.com')
    EMAIL_FROM_NAME = os.environ.get('EMAIL_FROM_NAME', 'Freelance Studio')
    EMAIL_ASYNC = True

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = '200 per minute'

    # Error monitoring
    SENTRY_DSN = os.environ.get('SENTRY_DSN', '')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 10,
        'max_overflow': 20,
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }


# Configuration dictionary; 'testing' is added by the config package
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}
