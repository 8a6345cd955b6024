import uuid
from typing import Annotated, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.orm import sessionmaker

from api import get_logger
from api.models import db
from api.models.db import DbSession
from common_lib.models.progress import WatchAssignment, VideoInfo
from common_lib.service import Service

LOG = get_logger(__name__)


class AssignmentService(Service):

    def __init__(self, session_factory: sessionmaker = DbSession):
        self.session_factory = session_factory

    def get(self, assignment_id: uuid.UUID) -> Optional[db.Assignment]:
        with self.session_factory() as session:
            return session.get(db.Assignment, assignment_id)

    def get_owned(self, assignment_id: uuid.UUID, user_id: uuid.UUID) -> Optional[db.Assignment]:
        with self.session_factory() as session:
            stmt = select(db.Assignment).where(db.Assignment.id == assignment_id, db.Assignment.user_id == user_id)
            return session.scalar(stmt)

    def owns(self, assignment_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Ownership check that only touches the key columns, so it keeps working on partially migrated schemas."""
        with self.session_factory() as session:
            stmt = select(db.Assignment.id).where(db.Assignment.id == assignment_id, db.Assignment.user_id == user_id)
            return session.scalar(stmt) is not None

    def ensure_progress(self, assignment: db.Assignment) -> bool:
        """Replaces null progress fields with their defaults. Returns True if anything had to be fixed.

        started_at and last_watched_at are left untouched, so the assignment still reads as "not watched yet".
        """
        if (assignment.progress_percent is not None
                and assignment.last_position is not None
                and assignment.is_completed is not None):
            return False

        with self.session_factory() as session:
            stmt = (update(db.Assignment)
                    .where(db.Assignment.id == assignment.id,
                           or_(db.Assignment.progress_percent.is_(None),
                               db.Assignment.last_position.is_(None),
                               db.Assignment.is_completed.is_(None)))
                    .values(progress_percent=assignment.progress_percent or 0.0,
                            last_position=assignment.last_position or 0.0,
                            is_completed=assignment.is_completed or False)
                    .execution_options(synchronize_session=False))
            session.execute(stmt)
            session.commit()

        LOG.info("Normalized progress fields of assignment %s", assignment.id)
        return True


def watch_view(assignment: db.Assignment) -> WatchAssignment:
    video = assignment.video
    return WatchAssignment(
        id=assignment.id,
        is_completed=assignment.is_completed,
        progress_percent=assignment.progress_percent,
        last_position=assignment.last_position,
        prevent_skip=assignment.prevent_skip,
        watched_seconds=assignment.watched_seconds,
        video=VideoInfo(video_id=video.video_id, title=video.title) if video else None,
    )


AssignmentServiceDep = Annotated[AssignmentService, AssignmentService.dep()]
