import re
from enum import IntEnum
from typing import Optional

VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")

_URL_PATTERNS = [
    re.compile(r"youtube\.com/watch\?(?:.*&)?v=([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]{11})"),
]


class PlayerError(IntEnum):
    """Error codes reported by the YouTube IFrame player through its onError event."""

    INVALID_PARAMETER = 2
    HTML5_ERROR = 5
    NOT_FOUND = 100
    EMBED_NOT_ALLOWED = 101
    EMBED_NOT_ALLOWED_DISGUISED = 150

    @property
    def embedding_disabled(self) -> bool:
        return self in (PlayerError.EMBED_NOT_ALLOWED, PlayerError.EMBED_NOT_ALLOWED_DISGUISED)


def extract_video_id(value: str) -> Optional[str]:
    """Returns the 11 character video ID of a bare ID or a watch?v=, youtu.be/ or embed/ URL."""
    value = value.strip()
    if VIDEO_ID_RE.match(value):
        return value

    for pattern in _URL_PATTERNS:
        match = pattern.search(value)
        if match:
            return match.group(1)
    return None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
