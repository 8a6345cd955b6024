from typing import Protocol

from watch_client import get_logger

LOG = get_logger(__name__)

# How long transient notifications stay visible.
TOAST_SECONDS = 5.0

SKIP_BLOCKED = "Skipping ahead is not allowed. Returning to the furthest point you have watched."
PLAYBACK_RATE_RESET = "Changing the playback speed is not allowed. Speed has been reset to 1x."
WATCH_START_FAILED = "Could not record that you started this video. Please let your teacher know."
EMBED_FALLBACK = "This video can't be played here. Progress is not saved when watching on YouTube: %s"


class Notifier(Protocol):
    """User facing notifications of the watch page."""

    def alert(self, message: str) -> None:
        """Informational message the user has to acknowledge."""

    def toast(self, message: str, duration: float = TOAST_SECONDS) -> None:
        """Message that dismisses itself after the duration."""


class LogNotifier:
    """Notifier for headless sessions. Writes notifications to the log."""

    def alert(self, message: str) -> None:
        LOG.info("Alert: %s", message)

    def toast(self, message: str, duration: float = TOAST_SECONDS) -> None:
        LOG.warning("Notice (%.0fs): %s", duration, message)
