"""User model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from backend.database import Base

STUDENT_ROLE = "student"
PROFESSOR_ROLE = "professor"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    role = Column(String)  # student/professor
    department = Column(String, nullable=True)
    student_number = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
