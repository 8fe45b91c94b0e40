"""
Paystack payment tests: initiation, verification, webhooks and idempotency
"""
import json
from decimal import Decimal

import pytest
import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio.errors import GatewayConfigError, GatewayError, PersistenceError
from studio.models import Notification, Order, PaymentLog, Project, Transaction, WebhookEvent
from studio.services import payment_service
from studio.services.paystack import (
    PaystackClient,
    compute_signature,
    from_minor_units,
    to_minor_units,
    verify_signature,
)


def _initiate(client, booking, amount=150000):
    response = client.post('/api/paystack/initiate', json={
        'email': booking.email,
        'amount': amount,
        'serviceId': 'web-app',
        'serviceName': 'Web Application',
        'bookingId': booking.id,
    })
    assert response.status_code == 200
    return json.loads(response.data)['data']['reference']


class TestMinorUnits:
    """Test the major/minor unit conversion boundary"""

    @pytest.mark.parametrize('amount, minor', [
        (150000, 15000000),
        ('150000', 15000000),
        (Decimal('99.99'), 9999),
        (0.1, 10),
        ('1234.565', 123457),
    ])
    def test_to_minor_units(self, amount, minor):
        assert to_minor_units(amount) == minor

    @pytest.mark.parametrize('amount', ['150000', '0.01', '99.99', '1234567.89'])
    def test_round_trip(self, amount):
        assert from_minor_units(to_minor_units(amount)) == Decimal(amount)

    def test_from_minor_units_has_two_places(self):
        assert str(from_minor_units(15000000)) == '150000.00'


class TestSignature:
    """Test webhook signature helpers"""

    def test_valid_signature(self):
        body = b'{"event":"charge.success"}'
        signature = compute_signature('secret', body)

        assert len(signature) == 128
        assert verify_signature('secret', body, signature)

    def test_tampered_body_fails(self):
        signature = compute_signature('secret', b'{"amount":100}')

        assert not verify_signature('secret', b'{"amount":999}', signature)

    def test_missing_signature_fails(self):
        assert not verify_signature('secret', b'{}', None)
        assert not verify_signature('secret', b'{}', '')


class TestInitiatePayment:
    """Test starting a checkout"""

    def test_initiate_sends_minor_units(self, client, booking, gateway, db_session):
        response = client.post('/api/paystack/initiate', json={
            'email': booking.email,
            'amount': 150000,
            'serviceId': 'web-app',
            'serviceName': 'Web Application',
            'bookingId': booking.id,
        })

        assert response.status_code == 200
        data = json.loads(response.data)['data']
        assert data['authorizationUrl'].startswith('https://checkout.paystack.test/')
        assert data['accessCode']

        sent = gateway.initialized[0]
        assert sent['amount'] == 15000000
        assert sent['currency'] == 'NGN'
        assert sent['metadata'] == {
            'service_id': 'web-app',
            'service_name': 'Web Application',
            'booking_id': booking.id,
        }

        db_session.refresh(booking)
        assert booking.payment_status == 'initiated'
        assert booking.payment_reference == data['reference']

    def test_initiate_without_booking(self, client, gateway):
        response = client.post('/api/paystack/initiate', json={
            'email': 'buyer@example.com',
            'amount': '2500.50',
            'serviceId': 'audit',
            'serviceName': 'Code Audit',
        })

        assert response.status_code == 200
        assert gateway.initialized[0]['amount'] == 250050
        assert gateway.initialized[0]['metadata']['booking_id'] is None

    @pytest.mark.parametrize('payload', [
        {'amount': 100, 'serviceId': 'a', 'serviceName': 'A'},
        {'email': 'a@b.co', 'serviceId': 'a', 'serviceName': 'A'},
        {'email': 'a@b.co', 'amount': 0, 'serviceId': 'a', 'serviceName': 'A'},
        {'email': 'a@b.co', 'amount': -5, 'serviceId': 'a', 'serviceName': 'A'},
        {'email': 'a@b.co', 'amount': 'lots', 'serviceId': 'a', 'serviceName': 'A'},
        {'email': 'a@b.co', 'amount': 100, 'serviceName': 'A'},
    ])
    def test_initiate_validation(self, client, gateway, payload):
        response = client.post('/api/paystack/initiate', json=payload)

        assert response.status_code == 400
        assert gateway.initialized == []

    def test_initiate_unknown_booking(self, client):
        response = client.post('/api/paystack/initiate', json={
            'email': 'a@b.co', 'amount': 100, 'serviceId': 'a', 'serviceName': 'A', 'bookingId': 999,
        })

        assert response.status_code == 404

    def test_initiate_rejects_paid_booking(self, client, booking, db_session):
        booking.payment_status = 'completed'
        db_session.commit()

        response = client.post('/api/paystack/initiate', json={
            'email': booking.email, 'amount': 100, 'serviceId': 'a', 'serviceName': 'A',
            'bookingId': booking.id,
        })

        assert response.status_code == 409

    def test_failed_booking_can_retry(self, client, booking, db_session):
        booking.payment_status = 'failed'
        db_session.commit()

        _initiate(client, booking)

        db_session.refresh(booking)
        assert booking.payment_status == 'initiated'

    def test_gateway_failure_surfaces_message(self, client, booking, gateway, monkeypatch, db_session):
        def fail(**kwargs):
            raise GatewayError('Invalid key')

        monkeypatch.setattr(gateway, 'initialize_transaction', fail)

        response = client.post('/api/paystack/initiate', json={
            'email': booking.email, 'amount': 100, 'serviceId': 'a', 'serviceName': 'A',
            'bookingId': booking.id,
        })

        assert response.status_code == 502
        assert json.loads(response.data)['message'] == 'Invalid key'
        db_session.refresh(booking)
        assert booking.payment_status == 'pending'


class TestVerifyPayment:
    """Test verify-and-record"""

    def test_verify_records_payment(self, client, booking, gateway, db_session):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, email=booking.email,
                       metadata={'service_id': 'web-app', 'service_name': 'Web Application',
                                 'booking_id': booking.id})

        response = client.post('/api/paystack/verify', json={
            'reference': reference, 'service': 'Web Application', 'amount': 150000,
        })

        assert response.status_code == 200
        data = json.loads(response.data)['data']
        assert data['reference'] == reference
        assert data['amount'] == 150000.0
        assert data['service'] == 'Web Application'
        assert data['customerEmail'] == booking.email
        assert data['bookingId'] == booking.id
        assert data['projectId'] == booking.project.id

        transaction = Transaction.query.filter_by(reference=reference).one()
        assert transaction.amount == Decimal('150000.00')
        assert Order.query.filter_by(transaction_id=transaction.id).one().status == 'paid'
        log = PaymentLog.query.filter_by(reference=reference).one()
        assert log.user_id == booking.user_id
        assert log.source == 'verify'

        db_session.refresh(booking)
        assert booking.payment_status == 'completed'
        assert booking.transaction_id == transaction.id
        update_types = [u.update_type for u in booking.project.updates]
        assert 'payment' in update_types
        assert Notification.query.filter_by(type='payment_completed').count() == 1

    def test_verify_is_idempotent(self, client, booking, gateway, db_session):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id, 'service_name': 'Web'})

        first = client.post('/api/paystack/verify', json={'reference': reference})
        second = client.post('/api/paystack/verify', json={'reference': reference})

        assert first.status_code == 200
        assert second.status_code == 200
        assert json.loads(first.data)['data'] == json.loads(second.data)['data']
        assert PaymentLog.query.filter_by(reference=reference).count() == 1
        assert Transaction.query.count() == 1
        assert Order.query.count() == 1
        # the recorded reference short-circuits before the gateway
        assert gateway.verify_calls == [reference]
        payment_updates = booking.project.updates.filter_by(update_type='payment').count()
        assert payment_updates == 1

    @pytest.mark.parametrize('expected', [150000.01, 149999.99, '151000', 1])
    def test_amount_mismatch_rejected(self, client, booking, gateway, db_session, expected):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id})

        response = client.post('/api/paystack/verify', json={'reference': reference, 'amount': expected})

        assert response.status_code == 400
        assert json.loads(response.data)['error'] == 'amount_mismatch'
        assert Transaction.query.count() == 0
        assert PaymentLog.query.count() == 0
        db_session.refresh(booking)
        assert booking.payment_status == 'failed'

    def test_amount_check_applies_to_recorded_reference(self, client, booking, gateway):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id})
        assert client.post('/api/paystack/verify', json={'reference': reference}).status_code == 200

        response = client.post('/api/paystack/verify', json={'reference': reference, 'amount': 100})

        assert response.status_code == 400
        assert PaymentLog.query.count() == 1

    def test_unsuccessful_payment_marks_booking_failed(self, client, booking, gateway, db_session):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, status='abandoned', metadata={'booking_id': booking.id})

        response = client.post('/api/paystack/verify', json={'reference': reference})

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data['error'] == 'verification_failed'
        assert 'abandoned' in data['message']
        db_session.refresh(booking)
        assert booking.payment_status == 'failed'
        assert Transaction.query.count() == 0

    def test_unknown_reference(self, client):
        response = client.post('/api/paystack/verify', json={'reference': 'does-not-exist'})

        assert response.status_code == 400
        assert json.loads(response.data)['error'] == 'verification_failed'

    def test_missing_reference(self, client):
        response = client.post('/api/paystack/verify', json={})

        assert response.status_code == 400

    def test_gateway_timeout_is_retryable(self, client, gateway):
        gateway.verify_error = GatewayError('Payment gateway timed out. Please try again.', status_code=504)

        response = client.post('/api/paystack/verify', json={'reference': 'ref_slow'})

        assert response.status_code == 504
        assert json.loads(response.data)['error'] == 'gateway_error'

    def test_payment_without_booking(self, client, gateway):
        gateway.settle('ref_direct', 500000, email='buyer@example.com',
                       metadata={'service_id': 'audit', 'service_name': 'Code Audit'})

        response = client.post('/api/paystack/verify', json={'reference': 'ref_direct'})

        data = json.loads(response.data)['data']
        assert data['bookingId'] is None
        assert data['projectId'] is None
        assert data['amount'] == 5000.0
        assert Project.query.count() == 0

    def test_empty_gateway_metadata(self, client, gateway):
        gateway.settle('ref_bare', 100000)

        response = client.post('/api/paystack/verify', json={'reference': 'ref_bare', 'service': 'Consulting'})

        assert response.status_code == 200
        assert json.loads(response.data)['data']['service'] == 'Consulting'

    def test_creates_project_if_booking_has_none(self, client, booking, gateway, db_session):
        booking.project.booking_id = None
        db_session.commit()
        db_session.expire_all()
        assert booking.project is None

        gateway.settle('ref_np', 100000, metadata={'booking_id': booking.id})
        response = client.post('/api/paystack/verify', json={'reference': 'ref_np'})

        data = json.loads(response.data)['data']
        project = db_session.get(Project, data['projectId'])
        assert project.booking_id == booking.id

    def test_database_failure_after_verification(self, client, booking, gateway, monkeypatch, db_session):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id})

        def failing_commit(self):
            raise SQLAlchemyError('connection lost')

        monkeypatch.setattr(Session, 'commit', failing_commit)

        response = client.post('/api/paystack/verify', json={'reference': reference})

        monkeypatch.undo()
        assert response.status_code == 500
        data = json.loads(response.data)
        assert data['error'] == 'persistence_error'
        assert 'contact support' in data['message']
        assert Transaction.query.count() == 0


class TestWebhook:
    """Test gateway webhooks"""

    def test_rejects_bad_signature(self, client):
        response = client.post('/api/paystack/webhook', data=b'{"event":"charge.success"}',
                               headers={'x-paystack-signature': 'deadbeef',
                                        'Content-Type': 'application/json'})

        assert response.status_code == 401
        assert WebhookEvent.query.count() == 0

    def test_rejects_missing_signature(self, client):
        response = client.post('/api/paystack/webhook', json={'event': 'charge.success'})

        assert response.status_code == 401

    def test_missing_secret_is_config_error(self, app, client, sign):
        body, headers = sign({'event': 'charge.success'})
        app.config['PAYSTACK_WEBHOOK_SECRET'] = ''

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 500

    def test_charge_success_reverifies_and_records(self, client, booking, gateway, sign, db_session):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id})
        # pushed amount is ignored; the gateway verify result is what counts
        body, headers = sign({'event': 'charge.success',
                              'data': {'reference': reference, 'amount': 1, 'status': 'success'}})

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 200
        assert json.loads(response.data) == {'received': True}
        assert gateway.verify_calls == [reference]
        log = PaymentLog.query.filter_by(reference=reference).one()
        assert log.source == 'webhook'
        assert log.amount == Decimal('150000.00')
        db_session.refresh(booking)
        assert booking.payment_status == 'completed'
        event = WebhookEvent.query.one()
        assert event.event_type == 'charge.success'
        assert event.status == 'processed'

    def test_charge_failed_marks_booking(self, client, booking, sign, db_session):
        reference = _initiate(client, booking)
        body, headers = sign({'event': 'charge.failed',
                              'data': {'reference': reference, 'metadata': {'booking_id': booking.id}}})

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 200
        db_session.refresh(booking)
        assert booking.payment_status == 'failed'

    def test_charge_failed_does_not_undo_completed(self, client, booking, sign, db_session):
        booking.payment_status = 'completed'
        db_session.commit()
        body, headers = sign({'event': 'charge.failed',
                              'data': {'reference': 'ref_x', 'metadata': {'booking_id': booking.id}}})

        client.post('/api/paystack/webhook', data=body, headers=headers)

        db_session.refresh(booking)
        assert booking.payment_status == 'completed'

    def test_other_events_ignored(self, client, sign):
        body, headers = sign({'event': 'transfer.success', 'data': {'reference': 'tr_1'}})

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 200
        assert WebhookEvent.query.one().status == 'ignored'

    def test_processing_error_still_acknowledged(self, client, sign):
        body, headers = sign({'event': 'charge.success', 'data': {'reference': 'unknown_ref'}})

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 200
        event = WebhookEvent.query.one()
        assert event.status == 'failed'
        assert event.error_message

    def test_transient_gateway_error_asks_for_redelivery(self, client, gateway, sign):
        gateway.verify_error = GatewayError('Could not reach the payment gateway. Please try again.')
        body, headers = sign({'event': 'charge.success', 'data': {'reference': 'ref_later'}})

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 502
        assert WebhookEvent.query.one().status == 'failed'

    def test_unrecorded_payment_asks_for_redelivery(self, client, booking, gateway, sign, monkeypatch):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id})

        def fail_to_record(*args, **kwargs):
            raise PersistenceError(payment_service.PAYMENT_NOT_RECORDED)

        monkeypatch.setattr(payment_service, '_record_payment', fail_to_record)
        body, headers = sign({'event': 'charge.success', 'data': {'reference': reference}})

        response = client.post('/api/paystack/webhook', data=body, headers=headers)

        assert response.status_code == 500
        assert json.loads(response.data)['error'] == 'persistence_error'
        assert Transaction.query.count() == 0
        event = WebhookEvent.query.one()
        assert event.status == 'failed'
        assert event.error_message == payment_service.PAYMENT_NOT_RECORDED

    def test_invalid_json_with_valid_signature(self, app, client):
        body = b'not json'
        signature = compute_signature(app.config['PAYSTACK_WEBHOOK_SECRET'], body)

        response = client.post('/api/paystack/webhook', data=body,
                               headers={'x-paystack-signature': signature})

        assert response.status_code == 400


class TestVerifyWebhookConvergence:
    """Verify and webhook for the same reference end in one recorded payment"""

    def _settle(self, client, booking, gateway):
        reference = _initiate(client, booking)
        gateway.settle(reference, 15000000, metadata={'booking_id': booking.id, 'service_name': 'Web'})
        return reference

    def _assert_single_payment(self, reference, booking, db_session):
        assert PaymentLog.query.filter_by(reference=reference).count() == 1
        assert Transaction.query.filter_by(reference=reference).count() == 1
        assert Order.query.count() == 1
        db_session.refresh(booking)
        assert booking.payment_status == 'completed'

    def test_verify_then_webhook(self, client, booking, gateway, sign, db_session):
        reference = self._settle(client, booking, gateway)

        assert client.post('/api/paystack/verify', json={'reference': reference}).status_code == 200
        body, headers = sign({'event': 'charge.success', 'data': {'reference': reference}})
        assert client.post('/api/paystack/webhook', data=body, headers=headers).status_code == 200

        self._assert_single_payment(reference, booking, db_session)
        assert WebhookEvent.query.one().status == 'processed'

    def test_webhook_then_verify(self, client, booking, gateway, sign, db_session):
        reference = self._settle(client, booking, gateway)

        body, headers = sign({'event': 'charge.success', 'data': {'reference': reference}})
        assert client.post('/api/paystack/webhook', data=body, headers=headers).status_code == 200
        response = client.post('/api/paystack/verify', json={'reference': reference, 'amount': 150000})

        assert response.status_code == 200
        self._assert_single_payment(reference, booking, db_session)

    def test_concurrent_insert_returns_recorded_summary(self, client, booking, gateway, db_session,
                                                        monkeypatch):
        """
        Simulate the other handler winning the race: the reference is not
        yet recorded when this verify looks, but is by the time it inserts.
        """
        reference = self._settle(client, booking, gateway)
        sent = []
        monkeypatch.setattr(payment_service, 'send_payment_confirmation_email',
                            lambda transaction: sent.append(transaction.reference))
        first = payment_service.verify_payment(reference, source='webhook')

        real_filter_by = Transaction.query.filter_by
        calls = {'n': 0}

        class MissOnce:
            def __init__(self, query):
                self.query = query

            def first(self):
                calls['n'] += 1
                return None if calls['n'] == 1 else self.query.first()

        def filter_by(**kwargs):
            return MissOnce(real_filter_by(**kwargs))

        monkeypatch.setattr(Transaction, 'query', type('Q', (), {'filter_by': staticmethod(filter_by)})())

        second = payment_service.verify_payment(reference)

        monkeypatch.undo()
        assert second == first
        assert sent == [reference]
        self._assert_single_payment(reference, booking, db_session)


class TestPaystackClient:
    """Test the HTTP client against a stubbed requests session"""

    class _Response:
        def __init__(self, status_code, body):
            self.status_code = status_code
            self._body = body

        @property
        def ok(self):
            return self.status_code < 400

        def json(self):
            if self._body is None:
                raise ValueError('no json')
            return self._body

    class _Session:
        def __init__(self, response=None, error=None):
            self.response = response
            self.error = error
            self.calls = []

        def request(self, method, url, **kwargs):
            self.calls.append((method, url, kwargs))
            if self.error is not None:
                raise self.error
            return self.response

    def _client(self, **kwargs):
        session = self._Session(**kwargs)
        return PaystackClient('sk_test', base_url='https://paystack.test', timeout=10,
                              callback_url='https://site.test/callback', session=session), session

    def test_initialize_posts_payload(self):
        client, session = self._client(response=self._Response(200, {
            'status': True, 'data': {'authorization_url': 'https://x', 'reference': 'r1'},
        }))

        data = client.initialize_transaction('a@b.co', 15000000, {'booking_id': 1}, currency='NGN')

        assert data['reference'] == 'r1'
        method, url, kwargs = session.calls[0]
        assert method == 'POST'
        assert url == 'https://paystack.test/transaction/initialize'
        assert kwargs['json']['amount'] == 15000000
        assert kwargs['json']['callback_url'] == 'https://site.test/callback'
        assert kwargs['headers']['Authorization'] == 'Bearer sk_test'
        assert kwargs['timeout'] == 10

    def test_verify_quotes_reference(self):
        client, session = self._client(response=self._Response(200, {'status': True, 'data': {}}))

        client.verify_transaction('ref/with space')

        assert session.calls[0][1] == 'https://paystack.test/transaction/verify/ref%2Fwith%20space'

    def test_not_found_keeps_gateway_status(self):
        client, _ = self._client(response=self._Response(404, {
            'status': False, 'message': 'Transaction reference not found',
        }))

        with pytest.raises(GatewayError) as exc:
            client.verify_transaction('nope')

        assert exc.value.status_code == 404
        assert exc.value.message == 'Transaction reference not found'

    def test_gateway_auth_failure_is_bad_gateway(self):
        client, _ = self._client(response=self._Response(401, {'status': False, 'message': 'Invalid key'}))

        with pytest.raises(GatewayError) as exc:
            client.verify_transaction('r1')

        assert exc.value.status_code == 502

    def test_status_false_on_200(self):
        client, _ = self._client(response=self._Response(200, {'status': False, 'message': 'Declined'}))

        with pytest.raises(GatewayError):
            client.initialize_transaction('a@b.co', 100)

    def test_non_json_error_body(self):
        client, _ = self._client(response=self._Response(500, None))

        with pytest.raises(GatewayError) as exc:
            client.verify_transaction('r1')

        assert exc.value.status_code == 502

    def test_timeout(self):
        client, _ = self._client(error=requests.Timeout())

        with pytest.raises(GatewayError) as exc:
            client.verify_transaction('r1')

        assert exc.value.status_code == 504

    def test_connection_error(self):
        client, _ = self._client(error=requests.ConnectionError())

        with pytest.raises(GatewayError) as exc:
            client.verify_transaction('r1')

        assert exc.value.status_code == 502

    def test_missing_secret(self):
        client = PaystackClient('', session=self._Session())

        with pytest.raises(GatewayConfigError):
            client.verify_transaction('r1')
