from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, get_db, require_professor, require_student
from backend.core import config
from backend.models.user import User
from backend.routes.common import (
    ProfessorSummary,
    UserSummary,
    database_unavailable,
    ensure_database_ready,
    load_users,
    success,
    summarize_user,
)
from backend.services import appointment_service, booking_service

router = APIRouter(tags=['appointments'])


class BookAppointmentRequest(BaseModel):
    availability_id: int = Field(gt=0)
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_REASON_LENGTH:
            raise ValueError(f'Reason cannot exceed {config.MAX_REASON_LENGTH} characters')

        return normalized


class BookedAppointmentResponse(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    status: str
    reason: str | None = None
    professor: ProfessorSummary


class AppointmentListItem(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    status: str
    reason: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class AppointmentDetailResponse(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    status: str
    reason: str | None = None
    notes: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    student: UserSummary
    professor: UserSummary


class CancelledAppointmentResponse(BaseModel):
    id: int
    status: str
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None

    class Config:
        from_attributes = True


class CompletedAppointmentResponse(BaseModel):
    id: int
    status: str

    class Config:
        from_attributes = True


@router.post('', status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking_service.book_slot(db, current_user.id, data.availability_id, reason=data.reason)
        professor = db.query(User).filter(User.id == appointment.professor_id).first()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Book appointment') from exc

    booked = BookedAppointmentResponse(
        id=appointment.id,
        date=appointment.date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        reason=appointment.reason,
        professor=ProfessorSummary.model_validate(professor) if professor else ProfessorSummary(id=appointment.professor_id),
    )
    return success({'appointment': booked}, message='Appointment booked successfully')


@router.get('/my-appointments')
def list_my_appointments(
    status_filter: str = Query(default='all', alias='status'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointments = appointment_service.list_for_user(
            db,
            current_user.id,
            current_user.role,
            status_filter.strip().lower(),
        )
        counterparts = load_users(
            db,
            (appointment_service.counterpart_id(appointment, current_user.role) for appointment in appointments),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'List appointments') from exc

    counterpart_field = appointment_service.counterpart_role(current_user.role)
    items = []
    for appointment in appointments:
        other_id = appointment_service.counterpart_id(appointment, current_user.role)
        item = AppointmentListItem.model_validate(appointment).model_dump()
        item[counterpart_field] = summarize_user(counterparts.get(other_id), other_id).model_dump()
        items.append(item)

    return success({'appointments': items}, count=len(items))


@router.get('/{appointment_id}')
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.get_by_id(db, appointment_id, current_user.id)
        parties = load_users(db, (appointment.student_id, appointment.professor_id))
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Get appointment') from exc

    detail = AppointmentDetailResponse(
        id=appointment.id,
        date=appointment.date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        reason=appointment.reason,
        notes=appointment.notes,
        cancelled_by=appointment.cancelled_by,
        cancelled_at=appointment.cancelled_at,
        student=summarize_user(parties.get(appointment.student_id), appointment.student_id),
        professor=summarize_user(parties.get(appointment.professor_id), appointment.professor_id),
    )
    return success({'appointment': detail})


@router.put('/{appointment_id}/cancel')
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking_service.cancel_appointment(db, appointment_id, current_user.id, current_user.role)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Cancel appointment') from exc

    return success(
        {'appointment': CancelledAppointmentResponse.model_validate(appointment)},
        message='Appointment cancelled successfully',
    )


@router.put('/{appointment_id}/complete')
def complete_appointment(
    appointment_id: int,
    current_user: User = Depends(require_professor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.complete(db, appointment_id, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Complete appointment') from exc

    return success(
        {'appointment': CompletedAppointmentResponse.model_validate(appointment)},
        message='Appointment marked as completed',
    )
