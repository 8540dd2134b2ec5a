from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_db
from backend.core import errors
from backend.models.user import PROFESSOR_ROLE, User
from backend.routes.common import database_unavailable, success

router = APIRouter(tags=['users'])


class ProfessorDirectoryEntry(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None
    department: str | None = None

    class Config:
        from_attributes = True


def _active_professors(db: Session):
    return db.query(User).filter(User.role == PROFESSOR_ROLE, User.is_active.is_(True))


@router.get('/professors')
def list_professors(db: Session = Depends(get_db)):
    try:
        professors = _active_professors(db).order_by(User.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'List professors') from exc

    return success(
        {'professors': [ProfessorDirectoryEntry.model_validate(professor) for professor in professors]},
        count=len(professors),
    )


@router.get('/professors/{professor_id}')
def get_professor(professor_id: int, db: Session = Depends(get_db)):
    try:
        professor = _active_professors(db).filter(User.id == professor_id).first()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, 'Get professor') from exc

    if not professor:
        raise errors.NotFoundError('Professor not found')

    return success({'professor': ProfessorDirectoryEntry.model_validate(professor)})
