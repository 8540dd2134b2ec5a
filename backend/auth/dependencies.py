import logging

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.core import errors
from backend.database import SessionLocal
from backend.models.user import PROFESSOR_ROLE, STUDENT_ROLE, User

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is deactivated")
    return user


def require_professor(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != PROFESSOR_ROLE:
        raise errors.WrongRoleError("Only professors can access this resource")
    return current_user


def require_student(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != STUDENT_ROLE:
        raise errors.WrongRoleError("Only students can access this resource")
    return current_user
