"""Read-only dashboard aggregates for clients and admins"""
import logging
from decimal import Decimal

from sqlalchemy import func, or_

from studio import db
from studio.models import Booking, Contact, Inquiry, Notification, PaymentLog, Project, Transaction
from studio.services import lifecycle
from studio.services.project_service import projects_for_user, unread_message_count

logger = logging.getLogger(__name__)

RECENT_NOTIFICATIONS = 20

OPEN_PROJECT_STATUSES = {
    lifecycle.ProjectStatus.PLANNING.value,
    lifecycle.ProjectStatus.IN_PROGRESS.value,
    lifecycle.ProjectStatus.TESTING.value,
}
UNPAID_STATUSES = {
    lifecycle.PaymentStatus.PENDING.value,
    lifecycle.PaymentStatus.INITIATED.value,
    lifecycle.PaymentStatus.FAILED.value,
}


def client_dashboard(user):
    """
    Everything the client dashboard renders in one payload.

    Projects and bookings match the user by id or by email, so work booked
    before the account was registered shows up too.
    """
    projects = projects_for_user(user)
    bookings = Booking.query.filter(
        or_(Booking.user_id == user.id, Booking.email == user.email)
    ).order_by(Booking.created_at.desc()).all()

    booking_ids = [booking.id for booking in bookings]
    log_filter = PaymentLog.user_id == user.id
    if booking_ids:
        log_filter = or_(log_filter, PaymentLog.booking_id.in_(booking_ids))
    payment_logs = PaymentLog.query.filter(log_filter).order_by(PaymentLog.created_at.desc()).all()

    notifications = Notification.query.filter_by(user_id=user.id) \
        .order_by(Notification.created_at.desc()).limit(RECENT_NOTIFICATIONS).all()

    total_spent = sum((log.amount for log in payment_logs if log.status == 'success'), Decimal('0'))

    return {
        'user': user.to_dict(),
        'projects': [project.to_dict() for project in projects],
        'bookings': [booking.to_dict() for booking in bookings],
        'paymentLogs': [log.to_dict() for log in payment_logs],
        'notifications': [notification.to_dict() for notification in notifications],
        'unreadMessages': unread_message_count(projects),
        'stats': {
            'totalProjects': len(projects),
            'activeProjects': sum(1 for p in projects if p.status in OPEN_PROJECT_STATUSES),
            'completedProjects': sum(1 for p in projects
                                     if p.status == lifecycle.ProjectStatus.COMPLETED.value),
            'totalBookings': len(bookings),
            'totalSpent': float(total_spent),
            'pendingPayments': sum(1 for b in bookings if b.payment_status in UNPAID_STATUSES),
        },
    }


def _counts_by(column):
    return {value: count for value, count in db.session.query(column, func.count()).group_by(column).all()}


def admin_stats():
    """Overview counts for the admin panel"""
    bookings_by_status = {status.value: 0 for status in lifecycle.PaymentStatus}
    bookings_by_status.update(_counts_by(Booking.payment_status))

    projects_by_status = {status.value: 0 for status in lifecycle.ProjectStatus}
    projects_by_status.update(_counts_by(Project.status))

    revenue = db.session.query(func.coalesce(func.sum(Transaction.amount), 0)) \
        .filter(Transaction.status == 'success').scalar()

    return {
        'bookings': {
            'total': sum(bookings_by_status.values()),
            'byPaymentStatus': bookings_by_status,
        },
        'projects': {
            'total': sum(projects_by_status.values()),
            'byStatus': projects_by_status,
        },
        'revenue': float(revenue or 0),
        'transactions': Transaction.query.count(),
        'newInquiries': Inquiry.query.filter_by(status='new').count(),
        'contacts': Contact.query.count(),
    }
