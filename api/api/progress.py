from fastapi import APIRouter, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from api import get_logger
from api.auth import CurrentUserDep
from api.services.assignments import AssignmentServiceDep
from api.services.progress import PlaybackProgressServiceDep, AuditLogUnavailable
from common_lib.models.progress import ProgressUpdate, WatchStartRequest, WatchSegmentsRequest, OkResponse

LOG = get_logger(__name__)

progress_router = APIRouter()


@progress_router.post("/progress", response_model_exclude_none=True)
def update_progress(request: ProgressUpdate,
                    user: CurrentUserDep,
                    assignment_service: AssignmentServiceDep,
                    progress_service: PlaybackProgressServiceDep) -> OkResponse:
    if not assignment_service.owns(request.assignment_id, user.id):
        raise HTTPException(status_code=404, detail="Assignment not found")

    try:
        progress_service.update_progress(request)
    except SQLAlchemyError:
        LOG.exception("Failed to store progress of assignment %s", request.assignment_id)
        raise HTTPException(status_code=500, detail="Failed to store progress")
    return OkResponse()


@progress_router.post("/watch-start", response_model_exclude_none=True)
def record_watch_start(request: WatchStartRequest,
                       user: CurrentUserDep,
                       assignment_service: AssignmentServiceDep,
                       progress_service: PlaybackProgressServiceDep) -> OkResponse:
    if not assignment_service.owns(request.assignment_id, user.id):
        raise HTTPException(status_code=403, detail="Assignment not found")

    try:
        progress_service.record_watch_start(request.assignment_id)
    except AuditLogUnavailable:
        LOG.error("watch_starts table is missing. Apply the database migrations.")
        raise HTTPException(status_code=503, detail="watch_starts table is missing, apply the database migrations")
    except SQLAlchemyError:
        LOG.exception("Failed to record watch start of assignment %s", request.assignment_id)
        raise HTTPException(status_code=500, detail="Failed to record watch start")
    return OkResponse()


@progress_router.post("/watch-segments", response_model_exclude_none=True)
def record_watch_segments(request: WatchSegmentsRequest,
                          user: CurrentUserDep,
                          assignment_service: AssignmentServiceDep,
                          progress_service: PlaybackProgressServiceDep) -> OkResponse:
    if not assignment_service.owns(request.assignment_id, user.id):
        raise HTTPException(status_code=404, detail="Assignment not found")

    if not request.segments:
        return OkResponse()

    try:
        progress_service.add_segments(request.assignment_id, request.segments)
    except SQLAlchemyError:
        LOG.exception("Failed to store watch segments of assignment %s", request.assignment_id)
        raise HTTPException(status_code=500, detail="Failed to store watch segments")
    return OkResponse()
