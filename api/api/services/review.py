import uuid
from typing import Annotated

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import sessionmaker

from api import get_logger
from api.models import db
from api.models.db import DbSession
from common_lib.models.progress import WatchSegment
from common_lib.service import Service

LOG = get_logger(__name__)

# Segments separated by a gap of at most this many seconds are shown as one.
MERGE_GAP_SEC = 1.0


class ReviewService(Service):
    """Read side of the watch audit trail, for teachers reviewing their students."""

    def __init__(self, session_factory: sessionmaker = DbSession):
        self.session_factory = session_factory

    def is_teacher_of(self, teacher_id: uuid.UUID, student_id: uuid.UUID) -> bool:
        with self.session_factory() as session:
            stmt = select(db.Profile.id).where(db.Profile.id == student_id,
                                               db.Profile.role == db.Role.student,
                                               db.Profile.teacher_id == teacher_id)
            return session.scalar(stmt) is not None

    def watch_segments(self, assignment_id: uuid.UUID) -> list[WatchSegment]:
        with self.session_factory() as session:
            stmt = (select(db.WatchSegment)
                    .where(db.WatchSegment.assignment_id == assignment_id)
                    .order_by(db.WatchSegment.start_sec))
            try:
                rows = session.scalars(stmt).all()
            except (OperationalError, ProgrammingError):
                LOG.warning("watch_segments table is not available, reporting no segments.", exc_info=True)
                return []

        return merge_segments([WatchSegment(start_sec=r.start_sec, end_sec=r.end_sec) for r in rows])

    def watch_starts(self, assignment_id: uuid.UUID) -> list[db.WatchStart]:
        with self.session_factory() as session:
            stmt = (select(db.WatchStart)
                    .where(db.WatchStart.assignment_id == assignment_id)
                    .order_by(db.WatchStart.started_at.desc(), db.WatchStart.id.desc()))
            return list(session.scalars(stmt).all())


def merge_segments(segments: list[WatchSegment], gap: float = MERGE_GAP_SEC) -> list[WatchSegment]:
    """Merges overlapping and adjacent segments. The result is sorted by start."""
    merged: list[WatchSegment] = []
    for segment in sorted(segments, key=lambda s: s.start_sec):
        if merged and segment.start_sec <= merged[-1].end_sec + gap:
            last = merged[-1]
            merged[-1] = WatchSegment(start_sec=last.start_sec, end_sec=max(last.end_sec, segment.end_sec))
        else:
            merged.append(segment.model_copy())
    return merged


ReviewServiceDep = Annotated[ReviewService, ReviewService.dep()]
