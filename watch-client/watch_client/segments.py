from typing import Optional

from common_lib.models.progress import WatchSegment
from watch_client.guard import SKIP_TOLERANCE_SEC


class SegmentRecorder:
    """Audit trail of a session where skipping is allowed.

    Collects the ranges the playhead went through and the seconds actually played. A forward jump extends the
    current range, so the teacher sees which part of the video was passed over. Seeking back starts a new range.
    Only steady progress (forward steps within the tolerance) counts as watched time.
    """

    def __init__(self, watched_seconds: float = 0.0, tolerance: float = SKIP_TOLERANCE_SEC):
        self.watched_seconds = watched_seconds
        self.tolerance = tolerance
        self._start: Optional[float] = None
        self._end: Optional[float] = None
        self._pending: list[WatchSegment] = []

    def observe(self, position: float):
        if self._start is None:
            self._start = self._end = position
            return

        step = position - self._end
        if 0 < step <= self.tolerance:
            self.watched_seconds += step

        if step < -self.tolerance:
            self._close()
            self._start = self._end = position
        elif step > 0:
            self._end = position

    def _close(self):
        if self._start is not None and self._end > self._start:
            self._pending.append(WatchSegment(start_sec=self._start, end_sec=self._end))

    def drain(self) -> list[WatchSegment]:
        """Returns the ranges recorded since the last drain. The open range continues from where it ended."""
        self._close()
        if self._end is not None:
            self._start = self._end

        pending, self._pending = self._pending, []
        return pending
