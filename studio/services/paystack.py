"""
Paystack HTTP client.

Amounts cross this boundary in minor units (kobo); everything above it
works in major units. ``to_minor_units`` / ``from_minor_units`` are the only
places the factor of 100 appears.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

import requests

from studio.errors import GatewayConfigError, GatewayError, ValidationError, field_error
from studio.utils.security import compute_hmac_sha512, constant_time_compare

logger = logging.getLogger(__name__)

MINOR_UNITS_PER_MAJOR = 100
TWO_PLACES = Decimal('0.01')


def to_decimal(amount, field='amount'):
    """Parse a major-unit amount from JSON (number or numeric string)"""
    if isinstance(amount, bool):
        raise ValidationError('Invalid amount', details=[field_error(field, 'must be a number')])
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError('Invalid amount', details=[field_error(field, 'must be a number')])
    if not value.is_finite():
        raise ValidationError('Invalid amount', details=[field_error(field, 'must be a number')])
    return value


def to_minor_units(amount):
    """Major units -> integer minor units, rounding half up (150000 -> 15000000)"""
    value = to_decimal(amount) * MINOR_UNITS_PER_MAJOR
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(minor):
    """Integer minor units -> Decimal major units with two places"""
    return (Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR).quantize(TWO_PLACES)


def compute_signature(secret, raw_body):
    """HMAC-SHA512 hex digest Paystack sends in x-paystack-signature"""
    return compute_hmac_sha512(secret, raw_body)


def verify_signature(secret, raw_body, signature):
    if not secret or not signature:
        return False
    return constant_time_compare(compute_signature(secret, raw_body), signature.strip().lower())


class PaystackClient:
    """Thin wrapper over the Paystack transaction API"""

    def __init__(self, secret_key, base_url='https://api.paystack.co', timeout=10.0,
                 callback_url=None, session=None):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.callback_url = callback_url or None
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            secret_key=config.get('PAYSTACK_SECRET_KEY', ''),
            base_url=config.get('PAYSTACK_BASE_URL', 'https://api.paystack.co'),
            timeout=config.get('PAYSTACK_TIMEOUT', 10.0),
            callback_url=config.get('PAYSTACK_CALLBACK_URL'),
        )

    @property
    def is_configured(self):
        return bool(self.secret_key)

    def initialize_transaction(self, email, amount_minor, metadata=None, reference=None, currency=None):
        """
        Start a hosted checkout.

        Returns:
            dict: gateway ``data`` (authorization_url, access_code, reference)
        """
        payload = {
            'email': email,
            'amount': int(amount_minor),
            'metadata': metadata or {},
        }
        if reference:
            payload['reference'] = reference
        if currency:
            payload['currency'] = currency
        if self.callback_url:
            payload['callback_url'] = self.callback_url
        return self._request('POST', '/transaction/initialize', json=payload)

    def verify_transaction(self, reference):
        """
        Look a transaction up by reference.

        Returns:
            dict: gateway ``data`` (status, amount in minor units, reference,
            currency, customer, metadata, ...)
        """
        return self._request('GET', f'/transaction/verify/{requests.utils.quote(reference, safe="")}')

    def _request(self, method, path, **kwargs):
        if not self.is_configured:
            raise GatewayConfigError()

        headers = {
            'Authorization': f'Bearer {self.secret_key}',
            'Content-Type': 'application/json',
        }
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.Timeout:
            logger.warning('Paystack %s %s timed out after %ss', method, path, self.timeout)
            raise GatewayError('Payment gateway timed out. Please try again.', status_code=504)
        except requests.RequestException as e:
            logger.error('Paystack %s %s failed: %s', method, path, e)
            raise GatewayError('Could not reach the payment gateway. Please try again.')

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or body.get('status') is False:
            message = body.get('message') or 'Payment gateway request failed'
            logger.warning('Paystack %s %s returned %s: %s', method, path, response.status_code, message)
            # Auth and server failures on the gateway side are our 502, not the caller's fault
            status_code = response.status_code if response.status_code in (400, 404, 422) else 502
            raise GatewayError(message, status_code=status_code)

        return body.get('data') or {}
