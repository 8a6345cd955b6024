import uuid
from datetime import datetime, UTC
from typing import Annotated

from sqlalchemy import update, case, func
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import sessionmaker

from api import get_logger
from api.models import db
from api.models.db import DbSession
from common_lib.models.progress import ProgressUpdate, WatchSegment
from common_lib.service import Service

LOG = get_logger(__name__)


class AuditLogUnavailable(Exception):
    """The watch_starts table is missing. The schema migration has not been applied yet."""


def _mentions(error: Exception, name: str) -> bool:
    message = str(getattr(error, "orig", error)).lower()
    return name in message


class PlaybackProgressService(Service):

    def __init__(self, session_factory: sessionmaker = DbSession):
        self.session_factory = session_factory

    def update_progress(self, progress: ProgressUpdate):
        """Stores the progress reported by the player.

        Applied as a single statement that never moves progress backwards: the stored percent and watched seconds
        only grow, completion is never unset, and the last position only moves along with a non-decreasing percent
        (at an equal percent it keeps the larger one).
        Out-of-order saves can't clobber newer progress. Null legacy fields are treated as their defaults.
        """
        now = datetime.now(UTC)
        percent = 100.0 if progress.is_completed else progress.progress_percent

        stored_percent = func.coalesce(db.Assignment.progress_percent, 0.0)
        stored_position = func.coalesce(db.Assignment.last_position, 0.0)
        new_position = progress.last_position if progress.last_position is not None else stored_position

        values = {
            "progress_percent": case((stored_percent > percent, stored_percent), else_=percent),
            "is_completed": (True if progress.is_completed
                             else func.coalesce(db.Assignment.is_completed, False)),
            "last_position": case((stored_percent > percent, stored_position),
                                  (stored_percent == percent,
                                   case((stored_position > new_position, stored_position), else_=new_position)),
                                  else_=new_position),
            "last_watched_at": progress.last_watched_at or now,
            "updated_at": now,
        }
        if progress.watched_seconds is not None:
            stored_seconds = func.coalesce(db.Assignment.watched_seconds, 0.0)
            values["watched_seconds"] = case((stored_seconds > progress.watched_seconds, stored_seconds),
                                               else_=progress.watched_seconds)

        try:
            self._update_assignment(progress.assignment_id, values)
        except (OperationalError, ProgrammingError) as e:
            if "watched_seconds" not in values or not _mentions(e, "watched_seconds"):
                raise
            LOG.warning("watched_seconds column is missing, storing progress of %s without it.",
                        progress.assignment_id)
            del values["watched_seconds"]
            self._update_assignment(progress.assignment_id, values)

    def _update_assignment(self, assignment_id: uuid.UUID, values: dict):
        with self.session_factory() as session:
            try:
                stmt = (update(db.Assignment)
                        .where(db.Assignment.id == assignment_id)
                        .values(values)
                        .execution_options(synchronize_session=False))
                session.execute(stmt)
                session.commit()
            except Exception:
                session.rollback()
                raise

    def record_watch_start(self, assignment_id: uuid.UUID):
        """Sets started_at the first time only and appends one audit row per call."""
        now = datetime.now(UTC)
        with self.session_factory() as session:
            stmt = (update(db.Assignment)
                    .where(db.Assignment.id == assignment_id, db.Assignment.started_at.is_(None))
                    .values(started_at=now)
                    .execution_options(synchronize_session=False))
            first_start = session.execute(stmt).rowcount > 0
            session.commit()
        if first_start:
            LOG.info("Assignment %s started for the first time", assignment_id)

        with self.session_factory() as session:
            try:
                session.add(db.WatchStart(assignment_id=assignment_id, started_at=now))
                session.commit()
            except (OperationalError, ProgrammingError) as e:
                session.rollback()
                if _mentions(e, "watch_starts"):
                    raise AuditLogUnavailable() from e
                raise

    def add_segments(self, assignment_id: uuid.UUID, segments: list[WatchSegment]) -> int:
        rows = [
            db.WatchSegment(assignment_id=assignment_id, start_sec=segment.start_sec, end_sec=segment.end_sec)
            for segment in segments
            if segment.is_valid()
        ]
        if not rows:
            return 0

        with self.session_factory() as session:
            session.add_all(rows)
            session.commit()

        LOG.debug("Stored %s watch segments for assignment %s", len(rows), assignment_id)
        return len(rows)


PlaybackProgressServiceDep = Annotated[PlaybackProgressService, PlaybackProgressService.dep()]
