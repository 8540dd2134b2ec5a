import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.availability import Availability  # noqa: E402
from backend.models.user import User  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[User.__table__, Availability.__table__, Appointment.__table__])
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, Availability.__table__, User.__table__])
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str, name: str | None = None, department: str | None = None) -> User:
        user = User(email=email, name=name or email.split('@')[0].title(), role=role, department=department)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def professor(make_user) -> User:
    return make_user('turing@example.edu', 'professor', name='Alan Turing', department='Computer Science')


@pytest.fixture
def other_professor(make_user) -> User:
    return make_user('hopper@example.edu', 'professor', name='Grace Hopper', department='Mathematics')


@pytest.fixture
def student(make_user) -> User:
    return make_user('ada@example.edu', 'student', name='Ada Lovelace')


@pytest.fixture
def other_student(make_user) -> User:
    return make_user('charles@example.edu', 'student', name='Charles Babbage')


@pytest.fixture
def next_week() -> date:
    return date.today() + timedelta(days=7)
