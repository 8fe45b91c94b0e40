"""
HTML email templates.

Every public function returns a complete HTML string ready for sending via
``send_email`` in ``studio.notifications``. All styles are inlined for
email-client compatibility; no external resources are referenced.
"""

from html import escape, unescape


def _esc(value):
    """HTML-escape a value; input that was already escaped on the way in is not escaped twice"""
    return escape(unescape(str(value)))


# ---------------------------------------------------------------------------
# Shared layout helpers
# ---------------------------------------------------------------------------

def _wrap(body_html, site_name='Freelance Studio'):
    """Wrap inner content in the common email shell."""
    return (
        '<!DOCTYPE html>'
        '<html lang="en"><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width,initial-scale=1.0">'
        '<title>{name}</title></head>'
        '<body style="margin:0;padding:0;background-color:#f3f4f6;">'
        '<div style="font-family:Inter,Arial,sans-serif;max-width:600px;margin:0 auto;padding:40px 20px;">'
        '<h1 style="color:#4F46E5;font-size:24px;text-align:center;margin:0 0 24px;">{name}</h1>'
        '<div style="background:#ffffff;border-radius:12px;padding:30px;">'
        '{body}'
        '</div>'
        '<p style="text-align:center;color:#9ca3af;font-size:12px;margin-top:24px;">'
        'You are receiving this email because you booked a service with {name}.</p>'
        '</div></body></html>'
    ).format(name=_esc(site_name), body=body_html)


def _detail_table(rows):
    """Key/value box. *rows* is a list of (label, value) tuples."""
    inner = ''.join(
        '<tr><td style="padding:6px 0;color:#6b7280;font-size:14px;">{}</td>'
        '<td style="padding:6px 0;color:#111827;font-size:14px;font-weight:600;text-align:right;">{}</td></tr>'
        .format(_esc(label), _esc(value))
        for label, value in rows
    )
    return (
        '<div style="background:#EEF2FF;border-radius:8px;padding:16px 20px;margin:20px 0;">'
        '<table style="width:100%;border-collapse:collapse;">' + inner + '</table></div>'
    )


def _paragraph(text):
    return '<p style="color:#4b5563;line-height:1.6;">{}</p>'.format(text)


# ---------------------------------------------------------------------------
# Booking received
# ---------------------------------------------------------------------------

def booking_received_html(name, booking_id, service, budget, timeline):
    """Sent after the public booking form is submitted."""
    body = '<h2 style="color:#111827;margin:0 0 12px;">We received your booking</h2>'
    body += _paragraph('Hi {},'.format(_esc(name) if name else 'there'))
    body += _paragraph('Thanks for reaching out. Your request has been logged and a project '
                       'has been opened for it. We will be in touch shortly to discuss the details.')
    body += _detail_table([
        ('Booking', '#{}'.format(booking_id)),
        ('Service', service or 'N/A'),
        ('Budget', budget or 'TBD'),
        ('Timeline', timeline or 'TBD'),
    ])
    return _wrap(body)


# ---------------------------------------------------------------------------
# Payment confirmation
# ---------------------------------------------------------------------------

def payment_confirmation_html(service_name, amount, reference):
    """Sent once a payment has been verified with the gateway."""
    body = '<h2 style="color:#111827;margin:0 0 12px;">Payment Confirmed</h2>'
    body += _paragraph('Thank you for your payment!')
    body += _detail_table([
        ('Service', service_name or 'Professional Service'),
        ('Amount', amount),
        ('Reference', reference),
    ])
    body += _paragraph('We will contact you shortly to discuss your project details.')
    return _wrap(body)


# ---------------------------------------------------------------------------
# Project updates
# ---------------------------------------------------------------------------

def project_update_html(project_name, title, description=None, progress=None):
    """Sent when an admin moves a project forward."""
    body = '<h2 style="color:#111827;margin:0 0 12px;">{}</h2>'.format(_esc(project_name))
    body += _paragraph(_esc(title))
    if description:
        body += _paragraph(_esc(description))
    if progress is not None:
        body += _detail_table([('Progress', '{}%'.format(progress))])
    return _wrap(body)


def new_message_html(project_name, subject, message):
    """Sent when an admin posts a message on a client's project."""
    body = '<h2 style="color:#111827;margin:0 0 12px;">New message: {}</h2>'.format(_esc(subject))
    body += _paragraph('Regarding <strong>{}</strong>:'.format(_esc(project_name)))
    body += _paragraph(_esc(message))
    return _wrap(body)
