"""
Booking / payment / project lifecycle.

Payment status and project status are closed enums; every write goes
through a transition check here instead of assigning free text.
"""
import enum
import logging

from studio import db
from studio.errors import InvalidTransitionError, ValidationError, field_error
from studio.models import ProjectUpdate

logger = logging.getLogger(__name__)


class PaymentStatus(str, enum.Enum):
    PENDING = 'pending'
    INITIATED = 'initiated'
    COMPLETED = 'completed'
    FAILED = 'failed'


class ProjectStatus(str, enum.Enum):
    PLANNING = 'planning'
    IN_PROGRESS = 'in-progress'
    TESTING = 'testing'
    COMPLETED = 'completed'
    ON_HOLD = 'on-hold'


class ProjectPriority(str, enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


class BookingLifecycle(str, enum.Enum):
    REQUESTED = 'requested'
    PAYMENT_PENDING = 'payment_pending'
    PAYMENT_COMPLETED = 'payment_completed'
    PAYMENT_FAILED = 'payment_failed'


# completed is terminal
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.INITIATED, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.INITIATED: {PaymentStatus.INITIATED, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.INITIATED, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.COMPLETED},
}

PROJECT_ORDER = [
    ProjectStatus.PLANNING,
    ProjectStatus.IN_PROGRESS,
    ProjectStatus.TESTING,
    ProjectStatus.COMPLETED,
]


def _coerce(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationError(
            f'Invalid {field}. Must be one of: {allowed}',
            details=[field_error(field, f'must be one of: {allowed}')],
        )


def parse_payment_status(value):
    return _coerce(PaymentStatus, value, 'paymentStatus')


def parse_project_status(value):
    return _coerce(ProjectStatus, value, 'status')


def parse_priority(value):
    return _coerce(ProjectPriority, value, 'priority')


def can_transition_payment(current, target):
    return PaymentStatus(target) in PAYMENT_TRANSITIONS[PaymentStatus(current)]


def can_transition_project(current, target):
    """
    Forward moves are free, backward moves are limited to one step (rework),
    on-hold is reachable from anywhere and can resume to any open state.
    """
    current, target = ProjectStatus(current), ProjectStatus(target)
    if current == target or target == ProjectStatus.ON_HOLD:
        return True
    if current == ProjectStatus.ON_HOLD:
        return target != ProjectStatus.COMPLETED
    if current == ProjectStatus.COMPLETED:
        return False
    return PROJECT_ORDER.index(target) >= PROJECT_ORDER.index(current) - 1


def booking_lifecycle_state(payment_status):
    status = PaymentStatus(payment_status or PaymentStatus.PENDING)
    return {
        PaymentStatus.PENDING: BookingLifecycle.REQUESTED,
        PaymentStatus.INITIATED: BookingLifecycle.PAYMENT_PENDING,
        PaymentStatus.COMPLETED: BookingLifecycle.PAYMENT_COMPLETED,
        PaymentStatus.FAILED: BookingLifecycle.PAYMENT_FAILED,
    }[status]


def set_payment_status(booking, target):
    """
    Move a booking's payment status. Returns True if the row changed.

    Re-applying the current status is a no-op so repeated gateway events
    do not flip anything twice.
    """
    target = PaymentStatus(target)
    current = PaymentStatus(booking.payment_status or PaymentStatus.PENDING)
    if current == target:
        return False
    if not can_transition_payment(current, target):
        raise InvalidTransitionError(
            f'Cannot change payment status from {current.value} to {target.value}'
        )
    booking.payment_status = target.value
    logger.info('Booking %s payment status %s -> %s', booking.id, current.value, target.value)
    return True


def add_project_update(project, title, description=None, update_type='note', client_visible=True):
    update = ProjectUpdate(
        project=project,
        title=title,
        description=description,
        update_type=update_type,
        is_client_visible=client_visible,
    )
    db.session.add(update)
    return update


def validate_progress(progress):
    try:
        value = int(progress)
    except (TypeError, ValueError):
        raise ValidationError('Progress must be a whole number',
                              details=[field_error('progress', 'must be an integer between 0 and 100')])
    if isinstance(progress, bool) or not 0 <= value <= 100:
        raise ValidationError('Progress must be between 0 and 100',
                              details=[field_error('progress', 'must be an integer between 0 and 100')])
    return value


def change_project_status(project, status=None, progress=None, note=None):
    """
    Apply a status and/or progress change and append a client-visible
    timeline entry for each change. Nothing is committed here.

    Returns:
        list: ProjectUpdate rows created
    """
    created = []
    target_progress = validate_progress(progress) if progress is not None else None

    if status is not None:
        target = parse_project_status(status)
        current = ProjectStatus(project.status)
        if not can_transition_project(current, target):
            raise InvalidTransitionError(
                f'Cannot move project from {current.value} to {target.value}'
            )
        if target != current:
            project.status = target.value
            if target == ProjectStatus.COMPLETED:
                target_progress = 100
            created.append(add_project_update(
                project,
                title=f'Status changed to {target.value}',
                description=note or f'Project moved from {current.value} to {target.value}.',
                update_type='status_change',
            ))

    if target_progress is not None and target_progress != project.progress:
        previous = project.progress or 0
        project.progress = target_progress
        created.append(add_project_update(
            project,
            title=f'Progress updated to {target_progress}%',
            description=note if status is None else None,
            update_type='progress',
        ))
        logger.debug('Project %s progress %s -> %s', project.id, previous, target_progress)

    return created
