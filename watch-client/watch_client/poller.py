import time
from dataclasses import dataclass
from enum import StrEnum
from threading import Event, RLock, Thread
from typing import Callable, Optional

from watch_client import get_logger
from watch_client.client import ProgressClient
from watch_client.guard import SkipGuard, PlaybackRateGuard, SKIP_TOLERANCE_SEC, NORMAL_PLAYBACK_RATE
from watch_client.notify import Notifier
from watch_client.player import PlayerAdapter, PlayerState
from watch_client.segments import SegmentRecorder

LOG = get_logger(__name__)

POLL_INTERVAL_SEC = 0.5
SAVE_INTERVAL_SEC = 5.0
# Below 1.0 so trailing credits and rounding don't keep a video from completing.
COMPLETION_THRESHOLD = 0.95
RATE_CHECK_INTERVAL_SEC = 1.0


@dataclass
class PollerConfig:
    poll_interval: float = POLL_INTERVAL_SEC
    save_interval: float = SAVE_INTERVAL_SEC
    completion_threshold: float = COMPLETION_THRESHOLD
    skip_tolerance: float = SKIP_TOLERANCE_SEC
    rate_check_interval: float = RATE_CHECK_INTERVAL_SEC
    max_playback_rate: float = NORMAL_PLAYBACK_RATE


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    POLLING = "polling"
    COMPLETED = "completed"
    EMBED_ERROR = "embed_error"
    TORN_DOWN = "torn_down"


# The player is still watched over in these states.
GUARDED_STATES = (SessionState.POLLING, SessionState.COMPLETED)


class TickOutcome(StrEnum):
    IDLE = "idle"
    SKIP_BLOCKED = "skip_blocked"
    PROGRESSED = "progressed"
    SAVED = "saved"
    COMPLETED = "completed"


@dataclass
class PlaybackSession:
    max_watched_position: float = 0.0
    last_saved_percent: float = 0.0
    last_save_time: Optional[float] = None
    duration_seconds: float = 0.0
    state: SessionState = SessionState.UNINITIALIZED
    first_watch_recorded: bool = False


class ProgressPoller:
    """Samples the player at a fixed interval and turns the samples into saved progress.

    Ticks run on a daemon thread once start() is called. tick() can also be driven directly, with an explicit
    timestamp, which is what the tests do.
    """

    def __init__(self,
                 adapter: PlayerAdapter,
                 client: ProgressClient,
                 notifier: Notifier,
                 prevent_skip: bool = True,
                 start_position: float = 0.0,
                 saved_percent: float = 0.0,
                 watched_seconds: Optional[float] = None,
                 config: Optional[PollerConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.adapter = adapter
        self.client = client
        self.notifier = notifier
        self.prevent_skip = prevent_skip
        self.config = config or PollerConfig()
        self.clock = clock

        self.session = PlaybackSession(max_watched_position=max(0.0, start_position or 0.0),
                                       last_saved_percent=saved_percent or 0.0)
        self.skip_guard = SkipGuard(enabled=prevent_skip, tolerance=self.config.skip_tolerance)
        self.rate_guard = PlaybackRateGuard(max_rate=self.config.max_playback_rate)
        self.segments = SegmentRecorder(watched_seconds=watched_seconds or 0.0, tolerance=self.config.skip_tolerance)

        self._last_rate_check: Optional[float] = None
        self._lock = RLock()
        self._stop = Event()
        self._thread: Optional[Thread] = None

    @property
    def state(self) -> SessionState:
        return self.session.state

    def activate(self) -> bool:
        """Moves a fresh session to polling. Returns False if the session is already past that point."""
        with self._lock:
            if self.session.state != SessionState.UNINITIALIZED:
                return False
            self.session.state = SessionState.POLLING
            return True

    def start(self):
        if not self.activate():
            LOG.debug("Poller not started, session is %s.", self.session.state)
            return
        self._thread = Thread(name="progress-poller", target=self._run, daemon=True)
        self._thread.start()

    def _run(self):
        while not self._stop.wait(self.config.poll_interval):
            if self.session.state not in GUARDED_STATES:
                break
            try:
                self.tick()
            except Exception:
                LOG.exception("Progress tick failed.")

    def tick(self, now: Optional[float] = None) -> TickOutcome:
        now = self.clock() if now is None else now
        with self._lock:
            if self.session.state not in GUARDED_STATES:
                return TickOutcome.IDLE

            self._check_playback_rate(now)

            # Paused or buffering samples say nothing about progress, and seeking while paused is not a skip.
            if self.adapter.get_player_state() != PlayerState.PLAYING:
                return TickOutcome.IDLE

            current = self.adapter.get_current_time()
            duration = self.adapter.get_duration()
            if duration > 0:
                self.session.duration_seconds = duration
            else:
                duration = self.session.duration_seconds

            if self.prevent_skip:
                if self.skip_guard.enforce(self.adapter, self.notifier, current, self.session.max_watched_position):
                    return TickOutcome.SKIP_BLOCKED
            else:
                self.segments.observe(current)

            self.session.max_watched_position = max(self.session.max_watched_position, current)

            # A completed session keeps its guards, it just has nothing left to save.
            if self.session.state == SessionState.COMPLETED:
                return TickOutcome.IDLE
            percent = current / duration if duration > 0 else 0.0

            if percent > 0 and not self.session.first_watch_recorded:
                self.session.first_watch_recorded = True
                self.client.record_first_watch()

            if percent >= self.config.completion_threshold:
                self._complete(current, now)
                return TickOutcome.COMPLETED

            return self._save_if_due(percent, current, now)

    def _check_playback_rate(self, now: float):
        if self._last_rate_check is not None and now - self._last_rate_check < self.config.rate_check_interval:
            return
        self._last_rate_check = now
        self.rate_guard.enforce(self.adapter, self.notifier)

    def _save_if_due(self, percent: float, position: float, now: float) -> TickOutcome:
        session = self.session
        if session.last_save_time is not None and now - session.last_save_time < self.config.save_interval:
            return TickOutcome.PROGRESSED

        to_save = min(100.0, round(percent * 100, 2))
        if to_save <= session.last_saved_percent:
            return TickOutcome.PROGRESSED

        self.client.persist(to_save, False, position, self._watched_seconds())
        session.last_saved_percent = to_save
        session.last_save_time = now
        self._flush_segments()
        return TickOutcome.SAVED

    def _complete(self, position: float, now: float):
        session = self.session
        session.state = SessionState.COMPLETED
        session.last_saved_percent = 100.0
        session.last_save_time = now

        LOG.info("Assignment %s completed at %.1fs.", self.client.assignment_id, position)
        self.client.persist(100.0, True, position, self._watched_seconds())
        self._flush_segments()

    def _watched_seconds(self) -> Optional[float]:
        # Only measured when skipping is allowed, otherwise the position says it all.
        return None if self.prevent_skip else round(self.segments.watched_seconds, 2)

    def _flush_segments(self):
        if not self.prevent_skip:
            self.client.record_segments(self.segments.drain())

    def mark_embed_error(self):
        with self._lock:
            if self.session.state in (SessionState.TORN_DOWN, SessionState.EMBED_ERROR):
                return
            self.session.state = SessionState.EMBED_ERROR
        self._stop.set()
        LOG.warning("Player of assignment %s failed, progress is not tracked.", self.client.assignment_id)

    def teardown(self):
        with self._lock:
            if self.session.state == SessionState.TORN_DOWN:
                return
            previous, self.session.state = self.session.state, SessionState.TORN_DOWN

        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(self.config.poll_interval * 4)

        if previous in (SessionState.POLLING, SessionState.COMPLETED):
            self._flush_segments()
