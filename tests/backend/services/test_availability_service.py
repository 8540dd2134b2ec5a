from datetime import date, datetime, timedelta

import pytest

from backend.core import errors
from backend.models.availability import Availability
from backend.services import availability_service, booking_service


def test_create_slot_persists_unbooked_active_slot(db, professor, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '10:00', '11:00')

    assert slot.id is not None
    assert slot.professor_id == professor.id
    assert slot.is_booked is False
    assert slot.is_active is True
    assert slot.appointment_id is None


def test_create_slot_rejects_overlap_but_allows_touching_boundary(db, professor, next_week: date) -> None:
    availability_service.create_slot(db, professor.id, next_week, '10:00', '11:00')

    with pytest.raises(errors.SlotConflictError):
        availability_service.create_slot(db, professor.id, next_week, '10:30', '11:30')

    touching = availability_service.create_slot(db, professor.id, next_week, '11:00', '12:00')
    assert touching.start_time == '11:00'


@pytest.mark.parametrize('start, end', [('10:15', '10:45'), ('09:00', '12:00'), ('10:00', '11:00')])
def test_create_slot_rejects_nested_and_enclosing_slots(db, professor, next_week: date, start: str, end: str) -> None:
    availability_service.create_slot(db, professor.id, next_week, '10:00', '11:00')

    with pytest.raises(errors.SlotConflictError):
        availability_service.create_slot(db, professor.id, next_week, start, end)


def test_create_slot_overlap_is_scoped_to_professor_date_and_active_slots(
    db, professor, other_professor, next_week: date,
) -> None:
    first = availability_service.create_slot(db, professor.id, next_week, '10:00', '11:00')

    availability_service.create_slot(db, other_professor.id, next_week, '10:00', '11:00')
    availability_service.create_slot(db, professor.id, next_week + timedelta(days=1), '10:00', '11:00')

    availability_service.soft_delete(db, first.id, professor.id)
    replacement = availability_service.create_slot(db, professor.id, next_week, '10:15', '11:15')
    assert replacement.is_active is True


def test_create_slot_validates_inputs(db, professor, next_week: date) -> None:
    with pytest.raises(errors.FormatError):
        availability_service.create_slot(db, professor.id, next_week, '9:00', '10:00')

    with pytest.raises(errors.OrderError):
        availability_service.create_slot(db, professor.id, next_week, '11:00', '10:00')

    with pytest.raises(errors.TooShortError):
        availability_service.create_slot(db, professor.id, next_week, '10:00', '10:15')

    with pytest.raises(errors.PastDateError):
        availability_service.create_slot(db, professor.id, date.today() - timedelta(days=1), '10:00', '11:00')

    assert db.query(Availability).count() == 0


def test_list_open_slots_orders_by_date_then_start_time(db, professor, next_week: date) -> None:
    later_day = availability_service.create_slot(db, professor.id, next_week + timedelta(days=1), '08:00', '09:00')
    afternoon = availability_service.create_slot(db, professor.id, next_week, '14:00', '15:00')
    morning = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')

    slots = availability_service.list_open_slots(db, professor.id)

    assert [slot.id for slot in slots] == [morning.id, afternoon.id, later_day.id]


def test_list_open_slots_excludes_booked_deleted_and_past_slots(db, professor, student, next_week: date) -> None:
    open_slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')
    booked = availability_service.create_slot(db, professor.id, next_week, '10:00', '11:00')
    deleted = availability_service.create_slot(db, professor.id, next_week, '11:00', '12:00')
    booking_service.book_slot(db, student.id, booked.id)
    availability_service.soft_delete(db, deleted.id, professor.id)

    earlier_today = Availability(
        professor_id=professor.id,
        date=date.today(),
        start_time='00:00',
        end_time='00:30',
    )
    db.add(earlier_today)
    db.commit()

    now = datetime.combine(date.today(), datetime.min.time()) + timedelta(minutes=1)
    slots = availability_service.list_open_slots(db, professor.id, now=now)

    assert [slot.id for slot in slots] == [open_slot.id]


def test_list_open_slots_with_date_filter_restricts_to_that_day(db, professor, next_week: date) -> None:
    same_day = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')
    availability_service.create_slot(db, professor.id, next_week + timedelta(days=2), '09:00', '10:00')

    slots = availability_service.list_open_slots(db, professor.id, date_filter=next_week)

    assert [slot.id for slot in slots] == [same_day.id]


def test_list_own_slots_filters_and_attaches_appointment(db, professor, student, next_week: date) -> None:
    free = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')
    taken = availability_service.create_slot(db, professor.id, next_week, '10:00', '11:00')
    appointment = booking_service.book_slot(db, student.id, taken.id, reason='Midterm review')

    all_slots = availability_service.list_own_slots(db, professor.id, 'all')
    assert [(slot.id, linked.id if linked else None) for slot, linked in all_slots] == [
        (free.id, None),
        (taken.id, appointment.id),
    ]

    booked = availability_service.list_own_slots(db, professor.id, 'booked')
    assert len(booked) == 1
    slot, linked = booked[0]
    assert slot.id == taken.id
    assert linked.student_id == student.id
    assert linked.reason == 'Midterm review'

    available = availability_service.list_own_slots(db, professor.id, 'available')
    assert [slot.id for slot, _ in available] == [free.id]


def test_list_own_slots_rejects_unknown_filter(db, professor) -> None:
    with pytest.raises(errors.ValidationError):
        availability_service.list_own_slots(db, professor.id, 'pending')


def test_mark_booked_is_a_compare_and_set(db, professor, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')

    availability_service.mark_booked(db, slot.id, 101)
    db.commit()

    with pytest.raises(errors.AlreadyBookedError):
        availability_service.mark_booked(db, slot.id, 202)
    db.rollback()

    db.refresh(slot)
    assert slot.is_booked is True
    assert slot.appointment_id == 101


def test_mark_booked_refuses_inactive_slot(db, professor, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')
    availability_service.soft_delete(db, slot.id, professor.id)

    with pytest.raises(errors.AlreadyBookedError):
        availability_service.mark_booked(db, slot.id, 101)


def test_mark_freed_is_idempotent(db, professor, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')
    availability_service.mark_booked(db, slot.id, 101)
    db.commit()

    availability_service.mark_freed(db, slot.id)
    db.commit()
    availability_service.mark_freed(db, slot.id)
    db.commit()

    db.refresh(slot)
    assert slot.is_booked is False
    assert slot.appointment_id is None


def test_mark_freed_with_holder_leaves_slot_held_by_someone_else(db, professor, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')
    availability_service.mark_booked(db, slot.id, 101)
    db.commit()

    assert availability_service.mark_freed(db, slot.id, appointment_id=999) is False
    db.commit()

    db.refresh(slot)
    assert slot.is_booked is True


def test_soft_delete_checks_owner_and_booking(db, professor, other_professor, student, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')

    with pytest.raises(errors.NotOwnerError):
        availability_service.soft_delete(db, slot.id, other_professor.id)

    booking_service.book_slot(db, student.id, slot.id)
    with pytest.raises(errors.AlreadyBookedError):
        availability_service.soft_delete(db, slot.id, professor.id)

    with pytest.raises(errors.SlotNotFoundError):
        availability_service.soft_delete(db, 12345, professor.id)


def test_soft_delete_keeps_the_row(db, professor, next_week: date) -> None:
    slot = availability_service.create_slot(db, professor.id, next_week, '09:00', '10:00')

    availability_service.soft_delete(db, slot.id, professor.id)

    stored = db.query(Availability).filter(Availability.id == slot.id).one()
    assert stored.is_active is False
    assert availability_service.list_open_slots(db, professor.id) == []
