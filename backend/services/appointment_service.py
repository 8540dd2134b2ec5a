"""Appointment lifecycle: creation, lookup and terminal transitions.

Status only moves forward from ``scheduled`` to one of the terminal
statuses. This module never touches availability rows; slot bookkeeping is
done by the booking coordinator.
"""

import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.core import errors
from backend.models.appointment import (
    APPOINTMENT_STATUSES,
    CANCELLED,
    CANCELLED_BY_VALUES,
    COMPLETED,
    SCHEDULED,
    Appointment,
)
from backend.models.availability import Availability
from backend.models.user import PROFESSOR_ROLE, STUDENT_ROLE
from backend.services import schedule_rules

logger = logging.getLogger(__name__)


def counterpart_id(appointment: Appointment, viewer_role: str) -> int:
    """Id of the other party of the appointment, as seen by ``viewer_role``."""
    if viewer_role == STUDENT_ROLE:
        return appointment.professor_id
    return appointment.student_id


def counterpart_role(viewer_role: str) -> str:
    return PROFESSOR_ROLE if viewer_role == STUDENT_ROLE else STUDENT_ROLE


def create_appointment(db: Session, student_id: int, slot: Availability,
                       reason: str | None = None, notes: str | None = None) -> Appointment:
    """Add a scheduled appointment for ``slot`` and flush it to obtain an id.

    Does not commit; the caller owns the transaction.
    """
    appointment = Appointment(
        student_id=student_id,
        professor_id=slot.professor_id,
        availability_id=slot.id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        status=SCHEDULED,
        reason=reason,
        notes=notes,
        is_active=True,
    )
    db.add(appointment)
    db.flush()
    return appointment


def find_scheduled_duplicate(db: Session, student_id: int, professor_id: int, slot: Availability) -> Appointment | None:
    return db.query(Appointment).filter(
        Appointment.student_id == student_id,
        Appointment.professor_id == professor_id,
        Appointment.date == slot.date,
        Appointment.start_time == slot.start_time,
        Appointment.status == SCHEDULED,
        Appointment.is_active.is_(True),
    ).first()


def list_for_user(db: Session, user_id: int, role: str, status_filter: str | None = None) -> list[Appointment]:
    query = db.query(Appointment).filter(Appointment.is_active.is_(True))

    if role == STUDENT_ROLE:
        query = query.filter(Appointment.student_id == user_id)
    else:
        query = query.filter(Appointment.professor_id == user_id)

    if status_filter and status_filter != 'all':
        if status_filter not in APPOINTMENT_STATUSES:
            raise errors.ValidationError(
                f"Status must be one of: all, {', '.join(APPOINTMENT_STATUSES)}",
                field='status',
                value=status_filter,
            )
        query = query.filter(Appointment.status == status_filter)

    return query.order_by(Appointment.date.asc(), Appointment.start_time.asc()).all()


def get_by_id(db: Session, appointment_id: int, requesting_user_id: int) -> Appointment:
    # Missing and foreign appointments are reported the same way.
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.is_active.is_(True),
        or_(
            Appointment.student_id == requesting_user_id,
            Appointment.professor_id == requesting_user_id,
        ),
    ).first()

    if not appointment:
        raise errors.NotFoundOrForbiddenError()
    return appointment


def _leave_scheduled(db: Session, appointment: Appointment, changes: dict, message: str) -> Appointment:
    # Only one terminal transition may win; a concurrent one sees zero rows.
    moved = db.query(Appointment).filter(
        Appointment.id == appointment.id,
        Appointment.status == SCHEDULED,
        Appointment.is_active.is_(True),
    ).update(changes, synchronize_session=False)

    if moved != 1:
        db.rollback()
        raise errors.InvalidStateError(message)

    db.commit()
    db.refresh(appointment)
    return appointment


def cancel(db: Session, appointment_id: int, requesting_user_id: int, requesting_role: str,
           now: datetime | None = None) -> Appointment:
    now = now or datetime.now()
    if requesting_role not in CANCELLED_BY_VALUES:
        raise errors.ValidationError(
            f"Cancelled by must be one of: {', '.join(CANCELLED_BY_VALUES)}",
            field='cancelled_by',
            value=requesting_role,
        )

    appointment = get_by_id(db, appointment_id, requesting_user_id)

    if appointment.status != SCHEDULED:
        raise errors.InvalidStateError('Only scheduled appointments can be cancelled')

    if not schedule_rules.can_still_cancel(appointment.date, appointment.start_time, now=now):
        raise errors.TooLateError()

    _leave_scheduled(
        db,
        appointment,
        {
            Appointment.status: CANCELLED,
            Appointment.cancelled_by: requesting_role,
            Appointment.cancelled_at: now,
        },
        'Only scheduled appointments can be cancelled',
    )

    logger.info('Appointment %s cancelled by %s %s', appointment.id, requesting_role, requesting_user_id)
    return appointment


def complete(db: Session, appointment_id: int, requesting_professor_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.professor_id == requesting_professor_id,
        Appointment.is_active.is_(True),
    ).first()

    if not appointment:
        raise errors.NotFoundOrForbiddenError()

    if appointment.status != SCHEDULED:
        raise errors.InvalidStateError('Only scheduled appointments can be completed')

    _leave_scheduled(
        db,
        appointment,
        {Appointment.status: COMPLETED},
        'Only scheduled appointments can be completed',
    )

    logger.info('Appointment %s completed by professor %s', appointment.id, requesting_professor_id)
    return appointment
