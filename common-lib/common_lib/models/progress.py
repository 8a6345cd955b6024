"""Wire models of the progress endpoints. Shared by the api service and the watch client."""
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VideoInfo(BaseModel):
    video_id: str
    title: str


class WatchAssignment(BaseModel):
    """The state of an assignment needed to start a playback session."""

    id: uuid.UUID
    is_completed: bool = False
    progress_percent: float = 0.0
    last_position: float = 0.0
    prevent_skip: bool = True
    watched_seconds: Optional[float] = None
    video: Optional[VideoInfo] = None

    @field_validator("video", mode="before")
    @classmethod
    def _single_video(cls, value: Any) -> Any:
        # Joined records come back either as an object or as a list with at most one element.
        if isinstance(value, (list, tuple)):
            return value[0] if value else None
        return value

    @field_validator("is_completed", "prevent_skip", mode="before")
    @classmethod
    def _null_flag(cls, value: Any, info) -> Any:
        if value is None:
            return info.field_name == "prevent_skip"
        return value

    @field_validator("progress_percent", "last_position", mode="before")
    @classmethod
    def _null_number(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class ProgressUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_id: uuid.UUID = Field(alias="assignmentId")
    progress_percent: float = Field(ge=0, le=100, allow_inf_nan=False)
    is_completed: bool = False
    last_position: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    last_watched_at: Optional[datetime] = None
    watched_seconds: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class WatchStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_id: uuid.UUID = Field(alias="assignmentId")


class WatchSegment(BaseModel):
    start_sec: float
    end_sec: float

    def is_valid(self) -> bool:
        return 0 <= self.start_sec < self.end_sec < float("inf")


class WatchSegmentsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_id: uuid.UUID = Field(alias="assignmentId")
    segments: list[WatchSegment] = []


class OkResponse(BaseModel):
    ok: bool = True
    # Only set by the ensure-progress endpoint.
    normalized: Optional[bool] = None
