import logging
import os
import time

from flask import Flask, g, request
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    from config import config
    app.config.from_object(config.get(config_name, config['default']))

    _configure_logging(app)
    _init_sentry(app)

    # Initialize extensions
    from studio.extensions import limiter
    from studio.services.paystack import PaystackClient

    db.init_app(app)
    CORS(app, resources={r'/api/*': {'origins': app.config['CORS_ORIGINS']}})
    limiter.init_app(app)
    app.extensions['paystack'] = PaystackClient.from_config(app.config)

    from studio.middleware import RequestIdMiddleware
    app.wsgi_app = RequestIdMiddleware(app.wsgi_app)

    # Register blueprints
    from studio.routes.auth import auth_bp
    from studio.routes.admin import admin_bp
    from studio.routes.bookings import bookings_bp
    from studio.routes.content import content_bp
    from studio.routes.dashboard import dashboard_bp
    from studio.routes.payments import payments_bp
    from studio.routes.projects import projects_bp

    api_prefix = app.config['API_PREFIX']
    app.register_blueprint(auth_bp, url_prefix=f'{api_prefix}/auth')
    app.register_blueprint(admin_bp, url_prefix=api_prefix)
    app.register_blueprint(bookings_bp, url_prefix=api_prefix)
    app.register_blueprint(content_bp, url_prefix=api_prefix)
    app.register_blueprint(dashboard_bp, url_prefix=f'{api_prefix}/user')
    app.register_blueprint(payments_bp, url_prefix=f'{api_prefix}/paystack')
    app.register_blueprint(projects_bp, url_prefix=api_prefix)

    from studio.errors import register_error_handlers
    register_error_handlers(app)

    from studio.cli import register_commands
    register_commands(app)

    _register_request_hooks(app)

    # Health check endpoint
    @app.route('/health')
    @limiter.exempt
    def health():
        return {'status': 'healthy', 'service': 'studio-backend'}, 200

    return app


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('studio').setLevel(level)


def _init_sentry(app):
    """Sentry error monitoring, only active when SENTRY_DSN is set"""
    dsn = app.config.get('SENTRY_DSN')
    if not dsn:
        if not app.debug and not app.testing:
            logger.warning('SENTRY_DSN is not set -- error monitoring is disabled.')
        return
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.1,
    )


def _register_request_hooks(app):
    access_logger = logging.getLogger('studio.access')

    @app.before_request
    def start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Content-Security-Policy'] = "default-src 'none'"
        if not app.debug and not app.testing:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    @app.after_request
    def log_request(response):
        if request.path.startswith(app.config['API_PREFIX']):
            started = g.get('request_started')
            duration_ms = int((time.monotonic() - started) * 1000) if started else 0
            access_logger.info(
                '%s %s %s in %dms [%s]',
                request.method, request.path, response.status_code, duration_ms,
                request.environ.get('request_id', '-'),
            )
        return response
