"""Appointment model definitions."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, func, text
from backend.database import Base

SCHEDULED = "scheduled"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no-show"
APPOINTMENT_STATUSES = (SCHEDULED, COMPLETED, CANCELLED, NO_SHOW)
CANCELLED_BY_VALUES = ("student", "professor", "system")


class Appointment(Base):
    """Represents a student's reservation of one availability slot.

    Date and times are copied from the slot at booking time and never
    re-derived from it afterwards.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_student_status", "student_id", "status", "is_active"),
        Index("idx_appointments_professor_status", "professor_id", "status", "is_active"),
        Index(
            "uq_appointments_scheduled_time",
            "student_id",
            "professor_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    professor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    availability_id = Column(Integer, ForeignKey("availability.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(16), default=SCHEDULED, nullable=False)
    reason = Column(String(500), nullable=True)
    notes = Column(String(1000), nullable=True)
    cancelled_by = Column(String(16), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
