from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_db, require_professor
from backend.core import errors
from backend.models.user import PROFESSOR_ROLE, User
from backend.routes.common import (
    ProfessorSummary,
    database_unavailable,
    ensure_database_ready,
    success,
)
from backend.services import availability_service

router = APIRouter(tags=['availability'])


class CreateAvailabilityRequest(BaseModel):
    date: date
    start_time: str
    end_time: str

    @field_validator('start_time', 'end_time')
    @classmethod
    def strip_time(cls, value: str) -> str:
        return value.strip()


class AvailabilitySlotResponse(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    is_booked: bool

    class Config:
        from_attributes = True


class OpenSlotResponse(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str

    class Config:
        from_attributes = True


class SlotAppointmentSummary(BaseModel):
    id: int
    student_id: int
    reason: str | None = None

    class Config:
        from_attributes = True


class OwnSlotResponse(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    is_booked: bool
    appointment: SlotAppointmentSummary | None = None


@router.post('', status_code=status.HTTP_201_CREATED)
def create_availability(
    data: CreateAvailabilityRequest,
    current_user: User = Depends(require_professor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slot = availability_service.create_slot(db, current_user.id, data.date, data.start_time, data.end_time)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Create availability') from exc

    return success(
        {'availability': AvailabilitySlotResponse.model_validate(slot)},
        message='Availability slot created successfully',
    )


@router.get('/professor/{professor_id}')
def list_professor_availability(
    professor_id: int,
    date_filter: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        professor = db.query(User).filter(
            User.id == professor_id,
            User.role == PROFESSOR_ROLE,
            User.is_active.is_(True),
        ).first()
        if not professor:
            raise errors.NotFoundError('Professor not found')

        slots = availability_service.list_open_slots(db, professor_id, date_filter=date_filter)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'List professor availability') from exc

    return success(
        {
            'professor': ProfessorSummary.model_validate(professor),
            'availabilities': [OpenSlotResponse.model_validate(slot) for slot in slots],
        },
        count=len(slots),
    )


@router.get('/my-slots')
def list_my_slots(
    status_filter: str = Query(default='all', alias='status'),
    current_user: User = Depends(require_professor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = availability_service.list_own_slots(db, current_user.id, status_filter.strip().lower())
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'List own availability') from exc

    availabilities = [
        OwnSlotResponse(
            id=slot.id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_booked=slot.is_booked,
            appointment=SlotAppointmentSummary.model_validate(appointment) if appointment else None,
        )
        for slot, appointment in slots
    ]
    return success({'availabilities': availabilities}, count=len(availabilities))


@router.delete('/{slot_id}')
def delete_availability(
    slot_id: int,
    current_user: User = Depends(require_professor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability_service.soft_delete(db, slot_id, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Delete availability') from exc

    return success(message='Availability slot deleted successfully')
