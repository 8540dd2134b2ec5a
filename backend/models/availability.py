"""Availability model definitions."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, func
from backend.database import Base


class Availability(Base):
    """Represents a bookable time slot published by a professor.

    ``start_time`` and ``end_time`` are zero-padded 24-hour "HH:MM" strings,
    so lexical order matches chronological order within a day.
    ``appointment_id`` points at the appointment holding the slot by id only.
    """
    __tablename__ = "availability"
    __table_args__ = (
        Index("idx_availability_professor_date", "professor_id", "date", "is_active"),
        Index("idx_availability_professor_booked", "professor_id", "is_booked", "is_active"),
    )

    id = Column(Integer, primary_key=True)
    professor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    appointment_id = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
