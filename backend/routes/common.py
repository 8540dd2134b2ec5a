import logging
from typing import Any, Iterable

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import errors
from backend.database import ensure_appointment_schema, ensure_availability_schema
from backend.models.user import User

logger = logging.getLogger(__name__)


class ProfessorSummary(BaseModel):
    id: int
    name: str | None = None
    department: str | None = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None
    department: str | None = None
    student_number: str | None = None

    class Config:
        from_attributes = True


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        logger.exception('Database schema check failed.')
        raise errors.InternalError() from exc


def database_unavailable(db: Session, action: str) -> errors.InternalError:
    db.rollback()
    logger.exception('%s failed.', action)
    return errors.InternalError()


def success(data: Any = None, message: str | None = None, count: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {'status': 'success'}
    if message:
        payload['message'] = message
    if count is not None:
        payload['count'] = count
    payload['data'] = data if data is not None else {}
    return payload


def load_users(db: Session, user_ids: Iterable[int]) -> dict[int, User]:
    ids = {user_id for user_id in user_ids if user_id is not None}
    if not ids:
        return {}
    return {user.id: user for user in db.query(User).filter(User.id.in_(ids)).all()}


def summarize_user(user: User | None, user_id: int) -> UserSummary:
    if user is None:
        return UserSummary(id=user_id)
    return UserSummary.model_validate(user)
