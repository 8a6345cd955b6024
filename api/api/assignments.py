import uuid

from fastapi import APIRouter, HTTPException

from api import get_logger
from api.auth import CurrentUserDep
from api.services.assignments import AssignmentServiceDep, watch_view
from common_lib.models.progress import WatchAssignment, OkResponse

LOG = get_logger(__name__)

assignments_router = APIRouter()


@assignments_router.get("/{assignment_id}")
def get_assignment(assignment_id: uuid.UUID,
                   user: CurrentUserDep,
                   assignment_service: AssignmentServiceDep) -> WatchAssignment:
    assignment = assignment_service.get_owned(assignment_id, user.id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")

    return watch_view(assignment)


@assignments_router.post("/{assignment_id}/ensure-progress")
def ensure_progress(assignment_id: uuid.UUID,
                    user: CurrentUserDep,
                    assignment_service: AssignmentServiceDep) -> OkResponse:
    """Called when the watch page opens. Repairs assignments whose progress fields were never initialized."""
    assignment = assignment_service.get_owned(assignment_id, user.id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")

    return OkResponse(normalized=assignment_service.ensure_progress(assignment))
