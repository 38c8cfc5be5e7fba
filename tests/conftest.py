"""
Shared fixtures: an in-memory SQLite database wired into the FastAPI app,
plus helpers for building attempt records and issuing session tokens.
Zero network calls.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from progress_api import models  # noqa: F401  (registers tables)
from progress_api.db import Base, get_db
from progress_api.main import app
from progress_api.models import AuthSession, ClassRoom, Student, TeacherAccount, VocabularyList
from progress_api.routers.auth import create_access_token
from progress_api.schemas import AttemptRecord

BASE_TIME = datetime(2024, 9, 2, 8, 0, tzinfo=timezone.utc)


def make_attempt(list_id="list-a", correct=True, stars=None, minutes=0, word="kucing", student_id="stu-1", **extra):
    """Build a canonical AttemptRecord; stars default to 3 for correct answers, 0 otherwise."""
    if stars is None:
        stars = 3 if correct else 0
    return AttemptRecord(
        student_id=student_id,
        list_id=list_id,
        word=word,
        correct=correct,
        stars_earned=stars,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        **extra,
    )


def issue_token(db, subject, role="teacher"):
    """Open a server-side session and return a bearer header for it."""
    session_id = uuid.uuid4().hex
    db.add(AuthSession(session_id=session_id, username=subject, role=role))
    db.commit()
    token = create_access_token({"sub": subject, "jti": session_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def classroom(db):
    """One teacher with one class, two students and two vocabulary lists."""
    db.add(TeacherAccount(username="bu_sari", password_hash="x", email="sari@example.com"))
    db.add(ClassRoom(id="class-1", name="Year 7 Indonesian", teacher_id="bu_sari"))
    db.add(Student(id="stu-1", name="Ava", code="AVA234", class_id="class-1"))
    db.add(Student(id="stu-2", name="Ben", code="BEN234", class_id="class-1"))
    db.add(VocabularyList(id="list-a", title="Animals", teacher_id="bu_sari", words_json='["kucing", "anjing"]'))
    db.add(VocabularyList(id="list-b", title="Food", teacher_id="bu_sari", words_json='["nasi"]'))
    db.commit()
    return {
        "teacher": "bu_sari",
        "class_id": "class-1",
        "students": ["stu-1", "stu-2"],
        "lists": ["list-a", "list-b"],
    }


@pytest.fixture
def teacher_headers(db, classroom):
    return issue_token(db, classroom["teacher"], "teacher")
