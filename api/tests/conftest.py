import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from api.main import app, SERVICES
from api.models import db
from api.models.db import Base, get_session
from common_lib.service import running


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def services(session_factory):
    with running(*SERVICES, session_factory=session_factory) as instances:
        yield instances


@pytest.fixture
def client(engine, services):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    # Not entering the client keeps the lifespan from creating services bound to the real database.
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def data(session_factory):
    """A teacher with one student, an unrelated student and teacher, and one assignment of the first student."""
    teacher = db.Profile(id=uuid.uuid4(), role=db.Role.teacher, display_name="Ms. Kim")
    other_teacher = db.Profile(id=uuid.uuid4(), role=db.Role.teacher, display_name="Mr. Lee")
    student = db.Profile(id=uuid.uuid4(), role=db.Role.student, display_name="Minji", teacher_id=teacher.id)
    other_student = db.Profile(id=uuid.uuid4(), role=db.Role.student, display_name="Joon",
                               teacher_id=other_teacher.id)
    video = db.Video(id=uuid.uuid4(), video_id="dQw4w9WgXcQ", title="Lesson 1")
    assignment = db.Assignment(id=uuid.uuid4(), user_id=student.id, video_id=video.id)

    with session_factory() as session:
        session.add_all([teacher, other_teacher, student, other_student, video])
        session.flush()
        session.add(assignment)
        session.add_all([
            db.AccessToken(token="teacher-token", profile_id=teacher.id),
            db.AccessToken(token="other-teacher-token", profile_id=other_teacher.id),
            db.AccessToken(token="student-token", profile_id=student.id),
            db.AccessToken(token="other-student-token", profile_id=other_student.id),
        ])
        session.commit()

    return SimpleNamespace(teacher=teacher, other_teacher=other_teacher, student=student,
                           other_student=other_student, video=video, assignment=assignment)