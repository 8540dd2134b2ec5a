"""Keeps slot and appointment state in step.

Booking creates the appointment and then claims the slot inside one
transaction; losing the claim rolls the appointment back. Cancellation
commits the cancelled appointment first and releases the slot afterwards,
so an interruption between the two leaves a booked slot behind a cancelled
appointment. ``reconcile_slot_bookings`` repairs that state.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import errors
from backend.models.appointment import CANCELLED, Appointment
from backend.models.availability import Availability
from backend.services import appointment_service, availability_service, schedule_rules

logger = logging.getLogger(__name__)

# Postgres names the index; SQLite lists its columns instead.
SCHEDULED_TIME_CLASH_MARKERS = (
    'uq_appointments_scheduled_time',
    'appointments.student_id, appointments.professor_id, appointments.date, appointments.start_time',
)


def _is_scheduled_time_clash(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in SCHEDULED_TIME_CLASH_MARKERS)


def book_slot(db: Session, student_id: int, availability_id: int, reason: str | None = None,
              now: datetime | None = None) -> Appointment:
    now = now or datetime.now()

    slot = db.query(Availability).filter(
        Availability.id == availability_id,
        Availability.is_active.is_(True),
        Availability.is_booked.is_(False),
    ).first()
    if not slot:
        raise errors.SlotNotFoundError()

    if schedule_rules.is_past_moment(slot.date, slot.start_time, now=now):
        raise errors.PastSlotError()

    if appointment_service.find_scheduled_duplicate(db, student_id, slot.professor_id, slot):
        raise errors.DuplicateBookingError()

    try:
        appointment = appointment_service.create_appointment(db, student_id, slot, reason=reason)
        availability_service.mark_booked(db, slot.id, appointment.id)
        db.commit()
    except errors.AlreadyBookedError:
        db.rollback()
        logger.warning('Student %s lost the race for slot %s', student_id, availability_id)
        raise
    except IntegrityError as exc:
        db.rollback()
        if not _is_scheduled_time_clash(exc):
            logger.exception('Booking slot %s for student %s violated a constraint', availability_id, student_id)
            raise errors.InternalError() from exc
        logger.warning('Student %s already holds a booking matching slot %s', student_id, availability_id)
        raise errors.DuplicateBookingError() from exc

    db.refresh(appointment)
    logger.info('Student %s booked slot %s as appointment %s', student_id, slot.id, appointment.id)
    return appointment


def cancel_appointment(db: Session, appointment_id: int, requesting_user_id: int, requesting_role: str,
                       now: datetime | None = None) -> Appointment:
    appointment = appointment_service.cancel(db, appointment_id, requesting_user_id, requesting_role, now=now)

    try:
        released = availability_service.mark_freed(db, appointment.availability_id, appointment_id=appointment.id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            'Appointment %s was cancelled but slot %s could not be released',
            appointment.id,
            appointment.availability_id,
        )
        return appointment

    if not released:
        logger.warning(
            'Appointment %s was cancelled but slot %s was not held by it',
            appointment.id,
            appointment.availability_id,
        )
    return appointment


def reconcile_slot_bookings(db: Session, dry_run: bool = False) -> list[int]:
    """Free booked slots whose linked appointment no longer holds them.

    Returns the ids of the slots that were (or, with ``dry_run``, would be) freed.
    """
    booked_slots = db.query(Availability).filter(Availability.is_booked.is_(True)).all()

    appointment_ids = {slot.appointment_id for slot in booked_slots if slot.appointment_id}
    holders: dict[int, Appointment] = {}
    if appointment_ids:
        holders = {
            appointment.id: appointment
            for appointment in db.query(Appointment).filter(Appointment.id.in_(appointment_ids)).all()
        }

    stale: list[tuple[int, int | None]] = []
    for slot in booked_slots:
        holder = holders.get(slot.appointment_id)
        if holder is None or not holder.is_active or holder.status == CANCELLED or holder.availability_id != slot.id:
            stale.append((slot.id, slot.appointment_id))

    if dry_run or not stale:
        return [slot_id for slot_id, _ in stale]

    # A slot rebooked since the scan has a new holder and is left alone.
    released_ids = [
        slot_id for slot_id, holder_id in stale
        if availability_service.mark_freed(db, slot_id, appointment_id=holder_id)
    ]
    db.commit()

    skipped = len(stale) - len(released_ids)
    if skipped:
        logger.warning('Skipped %d slot(s) whose holder changed during reconciliation', skipped)
    logger.info('Released %d stale slot bookings: %s', len(released_ids), released_ids)
    return released_ids
