from watch_client import get_logger
from watch_client.notify import Notifier, SKIP_BLOCKED, PLAYBACK_RATE_RESET
from watch_client.player import PlayerAdapter

LOG = get_logger(__name__)

# Reported time and actual playback drift apart a little, jumps within this margin are not skips.
SKIP_TOLERANCE_SEC = 2.0

NORMAL_PLAYBACK_RATE = 1.0
PLAYBACK_RATE_TOLERANCE = 0.01


class SkipGuard:
    """Stops the viewer from seeking past the furthest point reached by watching.

    A heuristic, not a security boundary: anybody controlling the page can get around it.
    """

    def __init__(self, enabled: bool = True, tolerance: float = SKIP_TOLERANCE_SEC):
        self.enabled = enabled
        self.tolerance = tolerance

    def is_skip(self, position: float, max_watched: float) -> bool:
        return self.enabled and position > max_watched + self.tolerance

    def enforce(self, adapter: PlayerAdapter, notifier: Notifier, position: float, max_watched: float) -> bool:
        """Seeks back to max_watched if the position is a skip. Returns True if it was."""
        if not self.is_skip(position, max_watched):
            return False

        LOG.info("Skip from %.1fs to %.1fs blocked, seeking back.", max_watched, position)
        adapter.seek_to(max_watched, True)
        notifier.alert(SKIP_BLOCKED)
        return True


class PlaybackRateGuard:
    """Resets playback faster than the allowed rate."""

    def __init__(self, max_rate: float = NORMAL_PLAYBACK_RATE):
        self.max_rate = max_rate

    def enforce(self, adapter: PlayerAdapter, notifier: Notifier) -> bool:
        rate = adapter.get_playback_rate()
        if rate <= self.max_rate + PLAYBACK_RATE_TOLERANCE:
            return False

        LOG.info("Playback rate %.2f is not allowed, resetting it.", rate)
        adapter.set_playback_rate(NORMAL_PLAYBACK_RATE)
        notifier.alert(PLAYBACK_RATE_RESET)
        return True
