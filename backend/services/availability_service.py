"""Lifecycle of professor availability slots.

Booking state only ever changes through ``mark_booked`` and ``mark_freed``.
``mark_booked`` is a single conditional UPDATE so that concurrent requests,
possibly served by different processes, can never both claim a slot.
"""

import logging
from datetime import date, datetime

from sqlalchemy.orm import Session

from backend.core import errors
from backend.models.appointment import Appointment
from backend.models.availability import Availability
from backend.services import schedule_rules

logger = logging.getLogger(__name__)

SLOT_FILTERS = ('all', 'available', 'booked')


def create_slot(db: Session, professor_id: int, slot_date: date, start: str, end: str,
                today: date | None = None) -> Availability:
    schedule_rules.validate_time_format(start, field='start_time')
    schedule_rules.validate_time_format(end, field='end_time')
    schedule_rules.validate_future_date(slot_date, today=today)
    schedule_rules.validate_time_range(start, end)

    same_day_slots = db.query(Availability).filter(
        Availability.professor_id == professor_id,
        Availability.date == slot_date,
        Availability.is_active.is_(True),
    ).all()
    if any(schedule_rules.overlaps(start, end, slot.start_time, slot.end_time) for slot in same_day_slots):
        raise errors.SlotConflictError()

    slot = Availability(
        professor_id=professor_id,
        date=slot_date,
        start_time=start,
        end_time=end,
        is_booked=False,
        is_active=True,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)

    logger.info('Professor %s created slot %s on %s %s-%s', professor_id, slot.id, slot_date, start, end)
    return slot


def list_open_slots(db: Session, professor_id: int, date_filter: date | None = None,
                    now: datetime | None = None) -> list[Availability]:
    now = now or datetime.now()
    query = db.query(Availability).filter(
        Availability.professor_id == professor_id,
        Availability.is_active.is_(True),
        Availability.is_booked.is_(False),
    )

    if date_filter is not None:
        query = query.filter(Availability.date == date_filter)
    else:
        query = query.filter(Availability.date >= now.date())

    slots = query.order_by(Availability.date.asc(), Availability.start_time.asc()).all()

    if date_filter is None:
        slots = [
            slot for slot in slots
            if not schedule_rules.is_past_moment(slot.date, slot.start_time, now=now)
        ]
    return slots


def list_own_slots(db: Session, professor_id: int,
                   status_filter: str = 'all') -> list[tuple[Availability, Appointment | None]]:
    """Return the professor's active slots paired with the appointment holding each booked one."""
    if status_filter not in SLOT_FILTERS:
        raise errors.ValidationError(
            f"Status must be one of: {', '.join(SLOT_FILTERS)}",
            field='status',
            value=status_filter,
        )

    query = db.query(Availability).filter(
        Availability.professor_id == professor_id,
        Availability.is_active.is_(True),
    )
    if status_filter == 'available':
        query = query.filter(Availability.is_booked.is_(False))
    elif status_filter == 'booked':
        query = query.filter(Availability.is_booked.is_(True))

    slots = query.order_by(Availability.date.asc(), Availability.start_time.asc()).all()

    appointment_ids = {slot.appointment_id for slot in slots if slot.is_booked and slot.appointment_id}
    appointments_by_id: dict[int, Appointment] = {}
    if appointment_ids:
        appointments = db.query(Appointment).filter(Appointment.id.in_(appointment_ids)).all()
        appointments_by_id = {appointment.id: appointment for appointment in appointments}

    return [
        (slot, appointments_by_id.get(slot.appointment_id) if slot.is_booked else None)
        for slot in slots
    ]


def mark_booked(db: Session, slot_id: int, appointment_id: int) -> None:
    """Claim the slot for ``appointment_id``.

    Does not commit; the caller owns the transaction.
    """
    claimed = db.query(Availability).filter(
        Availability.id == slot_id,
        Availability.is_booked.is_(False),
        Availability.is_active.is_(True),
    ).update(
        {Availability.is_booked: True, Availability.appointment_id: appointment_id},
        synchronize_session=False,
    )

    if claimed != 1:
        raise errors.AlreadyBookedError()


def mark_freed(db: Session, slot_id: int, appointment_id: int | None = None) -> bool:
    """Release the slot. Freeing an already free slot is a no-op.

    When ``appointment_id`` is given the slot is only released if that
    appointment still holds it. Returns whether a row changed. Does not commit.
    """
    query = db.query(Availability).filter(Availability.id == slot_id)
    if appointment_id is not None:
        query = query.filter(Availability.appointment_id == appointment_id)

    released = query.update(
        {Availability.is_booked: False, Availability.appointment_id: None},
        synchronize_session=False,
    )
    return released > 0


def soft_delete(db: Session, slot_id: int, requesting_professor_id: int) -> None:
    slot = db.query(Availability).filter(
        Availability.id == slot_id,
        Availability.is_active.is_(True),
    ).first()

    if not slot:
        raise errors.SlotNotFoundError('Availability slot not found')

    if slot.professor_id != requesting_professor_id:
        raise errors.NotOwnerError()

    if slot.is_booked:
        raise errors.AlreadyBookedError('Cannot delete a booked slot')

    deleted = db.query(Availability).filter(
        Availability.id == slot_id,
        Availability.is_booked.is_(False),
        Availability.is_active.is_(True),
    ).update({Availability.is_active: False}, synchronize_session=False)

    if deleted != 1:
        db.rollback()
        raise errors.AlreadyBookedError('Cannot delete a booked slot')

    db.commit()
    logger.info('Professor %s deleted slot %s', requesting_professor_id, slot_id)
