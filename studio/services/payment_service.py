"""
Payment initiation, verification and webhook handling.

A payment is recorded only after the gateway confirms it. The gateway
reference is the idempotency key: the synchronous verify call and the
webhook may both fire, in either order or at once, and converge on a
single Transaction / Order / PaymentLog set for that reference.
"""
import json
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from studio import db
from studio.errors import (
    AmountMismatchError,
    APIError,
    AuthError,
    ConflictError,
    GatewayConfigError,
    GatewayError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    VerificationFailedError,
    field_error,
)
from studio.models import Booking, Notification, Order, PaymentLog, Transaction, User, WebhookEvent
from studio.models.base import utcnow
from studio.notifications import send_payment_confirmation_email
from studio.services import lifecycle
from studio.services.booking_service import create_project_for_booking
from studio.services.paystack import from_minor_units, to_decimal, to_minor_units, verify_signature
from studio.utils.helpers import format_currency, paginate_query, safe_int
from studio.utils.validators import require_email, require_fields

logger = logging.getLogger(__name__)

PAYMENT_NOT_RECORDED = 'Payment verified, but we could not record it. Please contact support.'


def get_gateway():
    return current_app.extensions['paystack']


def _positive_amount(value, field='amount'):
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError('Invalid amount', details=[field_error(field, 'must be greater than zero')])
    return amount


def _booking_from_metadata(metadata):
    booking_id = safe_int(metadata.get('booking_id'), default=None) if metadata else None
    if booking_id is None:
        return None
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        logger.warning('Gateway metadata references unknown booking %s', booking_id)
    return booking


def _gateway_metadata(data):
    # Paystack sends "" when a transaction carries no metadata
    metadata = data.get('metadata')
    return metadata if isinstance(metadata, dict) else {}


def initiate_payment(data):
    """
    Start a hosted checkout for a service, optionally tied to a booking.

    Returns:
        dict: {authorizationUrl, accessCode, reference}
    """
    require_fields(data, ['email', 'amount', 'serviceId', 'serviceName'])
    email = require_email(data)
    amount = _positive_amount(data['amount'])

    booking = None
    booking_id = data.get('bookingId')
    if booking_id not in (None, ''):
        booking = db.session.get(Booking, safe_int(booking_id, default=-1))
        if booking is None:
            raise NotFoundError('Booking not found')
        if not lifecycle.can_transition_payment(booking.payment_status, lifecycle.PaymentStatus.INITIATED):
            raise ConflictError('This booking has already been paid')

    metadata = {
        'service_id': str(data['serviceId']),
        'service_name': data['serviceName'],
        'booking_id': booking.id if booking else None,
    }
    gateway_data = get_gateway().initialize_transaction(
        email=email,
        amount_minor=to_minor_units(amount),
        metadata=metadata,
        currency=current_app.config.get('DEFAULT_CURRENCY'),
    )
    reference = gateway_data.get('reference')

    if booking is not None:
        booking.payment_reference = reference
        lifecycle.set_payment_status(booking, lifecycle.PaymentStatus.INITIATED)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception('Failed to mark booking %s as initiated (ref %s)', booking.id, reference)
            raise PersistenceError('Payment started, but the booking could not be updated. Please try again.')

    logger.info('Payment initiated: ref=%s amount=%s service=%s booking=%s',
                reference, amount, data['serviceId'], booking.id if booking else None)

    return {
        'authorizationUrl': gateway_data.get('authorization_url'),
        'accessCode': gateway_data.get('access_code'),
        'reference': reference,
    }


def _check_amount(reference, actual, expected):
    if expected is not None and actual != expected:
        logger.warning('Amount mismatch for reference %s. Expected: %s, Got: %s', reference, expected, actual)
        raise AmountMismatchError()


def _mark_failed(booking, reference=None):
    """Flag a booking's payment as failed; it stays retryable. Completed bookings are left alone."""
    if booking is None:
        return
    if not lifecycle.can_transition_payment(booking.payment_status, lifecycle.PaymentStatus.FAILED):
        return
    if reference:
        booking.payment_reference = reference
    if lifecycle.set_payment_status(booking, lifecycle.PaymentStatus.FAILED):
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception('Failed to mark booking %s payment as failed', booking.id)


def verify_payment(reference, expected_service=None, expected_amount=None, source='verify'):
    """
    Verify a payment with the gateway and record it once.

    Args:
        reference: gateway transaction reference
        expected_service: service name to fall back on when metadata has none
        expected_amount: major-unit amount the caller believes was paid
        source: 'verify' or 'webhook', stored on the PaymentLog

    Returns:
        dict: Transaction.summary()
    """
    if not reference or not isinstance(reference, str):
        raise ValidationError('Reference is required', details=[field_error('reference', 'is required')])
    reference = reference.strip()
    expected = to_decimal(expected_amount) if expected_amount not in (None, '') else None

    existing = Transaction.query.filter_by(reference=reference).first()
    if existing is not None:
        _check_amount(reference, existing.amount, expected)
        logger.info('Reference %s already recorded; %s is a no-op', reference, source)
        return existing.summary()

    try:
        data = get_gateway().verify_transaction(reference)
    except GatewayError as e:
        if e.status_code in (400, 404, 422):
            raise VerificationFailedError(e.message)
        raise

    if not data:
        raise VerificationFailedError('Failed to verify transaction with payment gateway.')

    metadata = _gateway_metadata(data)
    booking = _booking_from_metadata(metadata)

    status = data.get('status')
    if status != 'success':
        _mark_failed(booking, reference)
        raise VerificationFailedError(f'Payment not successful. Status: {status}')

    amount = from_minor_units(data.get('amount') or 0)
    try:
        _check_amount(reference, amount, expected)
    except AmountMismatchError:
        _mark_failed(booking, reference)
        raise

    transaction, created = _record_payment(reference, data, amount, metadata, booking, expected_service, source)
    if created:
        send_payment_confirmation_email(transaction)
    return transaction.summary()


def _record_payment(reference, data, amount, metadata, booking, expected_service, source):
    """
    Write Transaction, Order, PaymentLog and booking/project changes in one
    transaction. Returns (transaction, created); created is False when a
    concurrent request recorded the reference first.
    """
    customer_email = ((data.get('customer') or {}).get('email') or (booking.email if booking else '')).lower()
    service_name = metadata.get('service_name') or expected_service or (booking.service if booking else None) \
        or 'Unknown Service'
    currency = data.get('currency') or current_app.config.get('DEFAULT_CURRENCY', 'NGN')

    try:
        transaction = Transaction(
            reference=reference,
            amount=amount,
            currency=currency,
            status=data.get('status'),
            channel=data.get('channel'),
            service_id=str(metadata['service_id']) if metadata.get('service_id') is not None else None,
            service_name=service_name,
            customer_email=customer_email,
            booking_id=booking.id if booking else None,
            paid_at=utcnow(),
            gateway_metadata=metadata,
        )
        db.session.add(transaction)
        db.session.flush()

        db.session.add(Order(
            transaction_id=transaction.id,
            booking_id=transaction.booking_id,
            status='paid',
            customer_email=customer_email,
            service_id=transaction.service_id,
            service_name=service_name,
        ))

        project = None
        user = None
        if booking is not None:
            lifecycle.set_payment_status(booking, lifecycle.PaymentStatus.COMPLETED)
            booking.transaction_id = transaction.id
            booking.payment_reference = reference
            project = booking.project or create_project_for_booking(booking)
            transaction.project_id = project.id
            user = booking.user
            lifecycle.add_project_update(
                project,
                title='Payment received',
                description=f'{format_currency(amount, currency)} payment confirmed (ref {reference}).',
                update_type='payment',
            )
        if user is None and customer_email:
            user = User.query.filter_by(email=customer_email).first()

        db.session.add(PaymentLog(
            reference=reference,
            transaction_id=transaction.id,
            user_id=user.id if user else None,
            booking_id=transaction.booking_id,
            project_id=transaction.project_id,
            amount=amount,
            currency=currency,
            status=transaction.status,
            source=source,
            description=f'Payment for {service_name}',
        ))
        if user is not None:
            Notification.create_notification(
                user_id=user.id,
                notification_type='payment_completed',
                title='Payment confirmed',
                message=f'Your payment of {format_currency(amount, currency)} for {service_name} was received.',
                related_entity_type='transaction',
                related_entity_id=transaction.id,
            )

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        recorded = Transaction.query.filter_by(reference=reference).first()
        if recorded is None:
            logger.exception('Integrity error recording payment %s', reference)
            raise PersistenceError(PAYMENT_NOT_RECORDED)
        logger.info('Reference %s recorded concurrently; using existing record', reference)
        return recorded, False
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Database error after gateway verification of %s', reference)
        raise PersistenceError(PAYMENT_NOT_RECORDED)

    logger.info('Payment %s recorded via %s: %s %s booking=%s project=%s',
                reference, source, currency, amount, transaction.booking_id, transaction.project_id)
    return transaction, True


def handle_webhook(raw_body, signature):
    """
    Process a gateway push. The signature is checked over the raw body
    before anything is parsed; payment data in the payload is never
    trusted, charge.success is re-verified with the gateway.
    """
    secret = current_app.config.get('PAYSTACK_WEBHOOK_SECRET')
    if not secret:
        raise GatewayConfigError()
    if not verify_signature(secret, raw_body, signature):
        logger.warning('Invalid webhook signature')
        raise AuthError('Invalid signature')

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationError('Invalid payload')
    if not isinstance(payload, dict):
        raise ValidationError('Invalid payload')

    event_type = payload.get('event') or 'unknown'
    data = payload.get('data') if isinstance(payload.get('data'), dict) else {}
    reference = data.get('reference')
    logger.info('Received webhook event: %s (ref %s)', event_type, reference)

    audit = {'status': 'processed', 'error_message': None}
    try:
        if event_type == 'charge.success':
            verify_payment(reference, source='webhook')
        elif event_type == 'charge.failed':
            _mark_failed(_booking_from_metadata(_gateway_metadata(data)), reference)
        else:
            audit['status'] = 'ignored'
            logger.info('Unhandled webhook event type: %s', event_type)
    except (GatewayError, PersistenceError) as e:
        # Transient, or verified but not recorded: record it and let the gateway retry.
        audit.update(status='failed', error_message=e.message)
        _record_webhook_event(event_type, reference, payload, audit)
        raise
    except APIError as e:
        audit.update(status='failed', error_message=e.message)
        logger.warning('Webhook %s for %s not applied: %s', event_type, reference, e.message)

    _record_webhook_event(event_type, reference, payload, audit)
    return {'received': True}


def _record_webhook_event(event_type, reference, payload, audit):
    try:
        db.session.add(WebhookEvent(
            event_type=event_type,
            reference=reference,
            payload=payload,
            status=audit['status'],
            error_message=audit['error_message'],
        ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Failed to store webhook event %s', event_type)


def list_transactions(status=None, page=1, per_page=None):
    """Admin listing of verified transactions, newest first"""
    query = Transaction.query
    if status:
        query = query.filter(Transaction.status == status)
    query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
    return paginate_query(query, page, per_page)
