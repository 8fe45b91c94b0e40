"""
Testing configuration for the studio backend
"""
import os
from datetime import timedelta

from config.settings import Config


class TestingConfig(Config):
    """Testing configuration with isolated database and safe defaults"""

    TESTING = True
    DEBUG = False

    SECRET_KEY = 'test-secret-key'

    # Use in-memory SQLite for fast tests
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}

    SESSION_LIFETIME = timedelta(days=30)
    ADMIN_SESSION_LIFETIME = timedelta(hours=12)
    ADMIN_SEED_SECRET = 'test-seed-secret'

    # Test Paystack keys; the HTTP client is replaced by a fake in tests
    PAYSTACK_SECRET_KEY = 'sk_test_mock'
    PAYSTACK_WEBHOOK_SECRET = 'sk_test_mock'
    PAYSTACK_BASE_URL = 'https://paystack.test'

    # Disable email sending
    RESEND_API_KEY = ''
    EMAIL_ASYNC = False

    # Disable rate limiting in tests
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    SENTRY_DSN = ''

    # Logging
    LOG_LEVEL = 'WARNING'

    CORS_ORIGINS = ['http://localhost:5173', 'http://localhost:3000']
