import uuid

from fastapi import APIRouter, HTTPException

from api import get_logger
from api.auth import CurrentTeacherDep
from api.models import api
from api.services.assignments import AssignmentServiceDep
from api.services.review import ReviewServiceDep
from common_lib.models.progress import WatchSegment

LOG = get_logger(__name__)

review_router = APIRouter()


def _check_access(assignment_id: uuid.UUID, teacher_id: uuid.UUID,
                  assignment_service: AssignmentServiceDep, review_service: ReviewServiceDep):
    assignment = assignment_service.get(assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    if not review_service.is_teacher_of(teacher_id, assignment.user_id):
        raise HTTPException(status_code=403, detail="Not a teacher of this student")


@review_router.get("/{assignment_id}/watch-segments")
def get_watch_segments(assignment_id: uuid.UUID,
                       teacher: CurrentTeacherDep,
                       assignment_service: AssignmentServiceDep,
                       review_service: ReviewServiceDep) -> list[WatchSegment]:
    """Ranges of the video the student played, merged. Only recorded for assignments that allow skipping."""
    _check_access(assignment_id, teacher.id, assignment_service, review_service)
    return review_service.watch_segments(assignment_id)


@review_router.get("/{assignment_id}/watch-starts")
def get_watch_starts(assignment_id: uuid.UUID,
                     teacher: CurrentTeacherDep,
                     assignment_service: AssignmentServiceDep,
                     review_service: ReviewServiceDep) -> list[api.WatchStartRecord]:
    _check_access(assignment_id, teacher.id, assignment_service, review_service)
    return [api.WatchStartRecord.model_validate(start) for start in review_service.watch_starts(assignment_id)]
