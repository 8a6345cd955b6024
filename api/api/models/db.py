import datetime
import os
import uuid
from enum import StrEnum
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, DateTime, ForeignKey, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, Session, sessionmaker, relationship

load_dotenv()
pg_url = os.path.expandvars(os.getenv("PG_URL", "sqlite:///academy.db"))
engine = create_engine(pg_url, pool_recycle=600)
DbSession = sessionmaker(engine)


def get_session():
    with Session(engine) as session:
        yield session


class Base(DeclarativeBase):
    def as_dict(self):
        return {
            c.key: getattr(self, c.key)
            for c in self.__mapper__.columns
            if not c.primary_key
        }


class Role(StrEnum):
    student = "student"
    teacher = "teacher"
    admin = "admin"


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(default=Role.student.value)
    display_name: Mapped[Optional[str]]
    # Teacher in charge of a student. Only set for students.
    teacher_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("profiles.id"))


class AccessToken(Base):
    __tablename__ = "access_tokens"

    token: Mapped[str] = mapped_column(primary_key=True)
    profile_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profiles.id"))
    created_time: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    # YouTube video ID.
    video_id: Mapped[str]
    title: Mapped[str]


class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profiles.id"))
    video_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("videos.id"))

    # Progress fields are nullable, rows created before progress tracking have them unset.
    progress_percent: Mapped[Optional[float]] = mapped_column(default=0.0)
    is_completed: Mapped[Optional[bool]] = mapped_column(default=False)
    last_position: Mapped[Optional[float]] = mapped_column(default=0.0)
    watched_seconds: Mapped[Optional[float]]

    last_watched_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True))

    prevent_skip: Mapped[bool] = mapped_column(default=True)

    video: Mapped[Video] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (f"Assignment(id={self.id}, user_id={self.user_id}, progress_percent={self.progress_percent}, "
                f"is_completed={self.is_completed}, last_position={self.last_position})")


class WatchStart(Base):
    """Audit log of playback sessions. One row every time a student opens the video."""
    __tablename__ = "watch_starts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assignment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("assignments.id"))
    started_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))


class WatchSegment(Base):
    __tablename__ = "watch_segments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assignment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("assignments.id"))
    start_sec: Mapped[float]
    end_sec: Mapped[float]
