"""
Pytest configuration and fixtures for studio backend tests
"""
import json
from itertools import count

import pytest

from studio import create_app, db
from studio.errors import GatewayError
from studio.models import AdminSession, Booking, User, UserSession
from studio.services import auth_service, booking_service
from studio.services.paystack import compute_signature


class FakePaystack:
    """
    Stands in for PaystackClient. ``initialize_transaction`` hands out
    references; ``settle`` decides what a later verify of a reference
    reports.
    """

    def __init__(self):
        self.initialized = []
        self.verify_calls = []
        self.results = {}
        self.verify_error = None
        self._refs = count(1)

    def initialize_transaction(self, email, amount_minor, metadata=None, reference=None, currency=None):
        reference = reference or f'ref_test_{next(self._refs)}'
        self.initialized.append({
            'email': email,
            'amount': amount_minor,
            'metadata': metadata or {},
            'reference': reference,
            'currency': currency,
        })
        return {
            'authorization_url': f'https://checkout.paystack.test/{reference}',
            'access_code': f'access_{reference}',
            'reference': reference,
        }

    def settle(self, reference, amount_minor, status='success', email='jane@example.com', metadata=None):
        self.results[reference] = {
            'reference': reference,
            'status': status,
            'amount': amount_minor,
            'currency': 'NGN',
            'channel': 'card',
            'customer': {'email': email},
            'metadata': metadata if metadata is not None else '',
        }

    def verify_transaction(self, reference):
        self.verify_calls.append(reference)
        if self.verify_error is not None:
            raise self.verify_error
        if reference not in self.results:
            raise GatewayError('Transaction reference not found', status_code=404)
        return self.results[reference]


@pytest.fixture(scope='function')
def app():
    """Create application instance with a fresh in-memory database"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        app.extensions['paystack'] = FakePaystack()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def db_session(app):
    return db.session


@pytest.fixture
def gateway(app):
    return app.extensions['paystack']


@pytest.fixture
def sign(app):
    """Sign a webhook payload the way Paystack does; returns (body, headers)"""
    def _sign(payload):
        body = json.dumps(payload).encode('utf-8')
        signature = compute_signature(app.config['PAYSTACK_WEBHOOK_SECRET'], body)
        return body, {'x-paystack-signature': signature, 'Content-Type': 'application/json'}

    return _sign


@pytest.fixture
def user(db_session):
    """A registered client"""
    user = User(
        email='client@example.com',
        first_name='Ada',
        last_name='Client',
        phone='+2348012345678',
        is_active=True,
        is_provisional=False,
    )
    user.set_password('ClientPass123!')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def user_session(app, user, db_session):
    session = UserSession.issue(app.config['SESSION_LIFETIME'], user_id=user.id)
    db_session.commit()
    return session


@pytest.fixture
def auth_headers(user_session):
    """Bearer headers for the client"""
    return {
        'Authorization': f'Bearer {user_session.token}',
        'Content-Type': 'application/json',
    }


@pytest.fixture
def admin(app):
    return auth_service.create_admin('admin', 'admin@example.com', 'AdminPass123!')


@pytest.fixture
def admin_headers(app, admin, db_session):
    """Bearer headers for the admin"""
    session = AdminSession.issue(app.config['ADMIN_SESSION_LIFETIME'], admin_id=admin.id)
    db_session.commit()
    return {
        'Authorization': f'Bearer {session.token}',
        'Content-Type': 'application/json',
    }


@pytest.fixture
def booking_factory(app, db_session):
    """Submit bookings through the intake service"""
    def _create_booking(**kwargs):
        data = {
            'name': 'Jane Doe',
            'email': 'jane@example.com',
            'service': 'web-app',
            'budget': '₦150,000',
            'timeline': '4 weeks',
        }
        data.update(kwargs)
        result = booking_service.submit_booking(data)
        return db_session.get(Booking, result['bookingId'])

    return _create_booking


@pytest.fixture
def booking(booking_factory):
    return booking_factory()


@pytest.fixture
def client_booking(booking_factory, user):
    """A booking made with the registered client's email"""
    return booking_factory(name='Ada Client', email=user.email)
