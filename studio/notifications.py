"""
Email notifications.

Sent through Resend when RESEND_API_KEY is configured, otherwise logged
(dev mode).

IMPORTANT: No function in this module should ever raise an exception.
All errors are caught and logged so that a notification failure never
takes down a booking or payment flow.

Emails are sent on a background thread (EMAIL_ASYNC) so request handlers
are not blocked by network I/O to the email provider.
"""

import logging
import threading

from flask import current_app

from studio.email_templates import (
    booking_received_html,
    new_message_html,
    payment_confirmation_html,
    project_update_html,
)
from studio.utils.helpers import format_currency

logger = logging.getLogger(__name__)


def _send_email_sync(settings, to_email, subject, html_content):
    """Send an email synchronously via Resend. Returns the message id or None. Never raises."""
    try:
        if not settings['api_key']:
            logger.info('[DEV] Email to %s: %s', to_email, subject)
            return None

        import resend
        resend.api_key = settings['api_key']

        params = {
            'from': '{} <{}>'.format(settings['from_name'], settings['from_email']),
            'to': [to_email],
            'subject': subject,
            'html': html_content,
        }
        response = resend.Emails.send(params)
        logger.info('Email sent via Resend to %s (id: %s)', to_email, response.get('id'))
        return response.get('id')
    except Exception:
        logger.exception('Failed to send email to %s', to_email)
        return None


def send_email(to_email, subject, html_content):
    """
    Send an email, on a daemon thread when EMAIL_ASYNC is set.
    Returns immediately in async mode. Never raises.
    """
    try:
        if not to_email:
            return
        # Read config now; the worker thread has no app context.
        settings = {
            'api_key': current_app.config.get('RESEND_API_KEY'),
            'from_email': current_app.config.get('EMAIL_FROM'),
            'from_name': current_app.config.get('EMAIL_FROM_NAME'),
        }
        if not current_app.config.get('EMAIL_ASYNC', True):
            _send_email_sync(settings, to_email, subject, html_content)
            return
        thread = threading.Thread(
            target=_send_email_sync,
            args=(settings, to_email, subject, html_content),
            daemon=True,
        )
        thread.start()
        logger.debug('Email queued (async) to %s: %s', to_email, subject)
    except Exception:
        logger.exception('Failed to queue email to %s', to_email)


def send_booking_received_email(booking):
    """Never raises."""
    try:
        html = booking_received_html(
            name=booking.name,
            booking_id=booking.id,
            service=booking.service,
            budget=booking.budget,
            timeline=booking.timeline,
        )
        send_email(booking.email, 'We received your booking #{}'.format(booking.id), html)
    except Exception:
        logger.exception('Failed in send_booking_received_email for booking %s', booking.id)


def send_payment_confirmation_email(transaction):
    """Never raises."""
    try:
        html = payment_confirmation_html(
            service_name=transaction.service_name,
            amount=format_currency(transaction.amount, transaction.currency),
            reference=transaction.reference,
        )
        send_email(transaction.customer_email, 'Payment Confirmation', html)
    except Exception:
        logger.exception('Failed in send_payment_confirmation_email for %s', transaction.reference)


def send_project_update_email(project, update):
    """Never raises."""
    try:
        html = project_update_html(
            project_name=project.name,
            title=update.title,
            description=update.description,
            progress=project.progress,
        )
        send_email(project.client_email, 'Update on {}'.format(project.name), html)
    except Exception:
        logger.exception('Failed in send_project_update_email for project %s', project.id)


def send_new_message_email(project, message):
    """Never raises."""
    try:
        html = new_message_html(project.name, message.subject, message.message)
        send_email(project.client_email, message.subject, html)
    except Exception:
        logger.exception('Failed in send_new_message_email for project %s', project.id)
