import math
from enum import IntEnum, StrEnum
from threading import Lock, RLock, Event
from typing import Any, Callable, Optional, Protocol
from weakref import WeakKeyDictionary

from tenacity import retry, retry_if_result, stop_after_delay, wait_fixed, RetryError

from common_lib.youtube import PlayerError, extract_video_id, watch_url
from watch_client import get_logger

LOG = get_logger(__name__)

# How long a caller waits for a script load started by somebody else.
SCRIPT_LOAD_TIMEOUT_SEC = 10


class PlayerState(IntEnum):
    """Player states as reported by the YouTube IFrame API."""
    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


class EmbeddedPlayer(Protocol):
    def get_current_time(self) -> float: ...

    def get_duration(self) -> float: ...

    def get_player_state(self) -> int: ...

    def get_playback_rate(self) -> float: ...

    def set_playback_rate(self, rate: float) -> None: ...

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None: ...

    def destroy(self) -> None: ...


class PlayerHost(Protocol):
    """The page the player is embedded into."""

    def load_script(self) -> None:
        """Adds the player API script to the page and blocks until it is loaded. Raises if it fails to load."""

    def create_player(self, container: Any, video_id: str,
                      on_ready: Callable[[], None],
                      on_error: Callable[[int], None]) -> EmbeddedPlayer:
        """Creates a player inside the container. Events are delivered through the callbacks."""


class ScriptLoadError(Exception):
    pass


class ScriptState(StrEnum):
    missing = "missing"
    loading = "loading"
    loaded = "loaded"
    failed = "failed"


class ScriptLoader:
    """Loads the player API script at most once per host, no matter how many players the host embeds."""

    _loaders: WeakKeyDictionary = WeakKeyDictionary()
    _registry_lock = Lock()

    @classmethod
    def for_host(cls, host: PlayerHost) -> "ScriptLoader":
        with cls._registry_lock:
            loader = cls._loaders.get(host)
            if loader is None:
                loader = ScriptLoader(host)
                cls._loaders[host] = loader
            return loader

    def __init__(self, host: PlayerHost):
        self.host = host
        self.state = ScriptState.missing
        self._lock = Lock()

    def ensure_loaded(self):
        with self._lock:
            if self.state == ScriptState.loaded:
                return
            owner = self.state != ScriptState.loading
            if owner:
                self.state = ScriptState.loading

        if not owner:
            # Somebody else is adding the script, wait for them instead of adding a second one.
            try:
                self._poll_loaded()
            except RetryError:
                raise ScriptLoadError("Timed out waiting for the player script to load.")
            return

        LOG.debug("Loading player script...")
        try:
            self.host.load_script()
        except Exception as e:
            with self._lock:
                self.state = ScriptState.failed
            raise ScriptLoadError("Failed to load the player script.") from e

        with self._lock:
            self.state = ScriptState.loaded

    @retry(
        wait=wait_fixed(0.05),
        stop=stop_after_delay(SCRIPT_LOAD_TIMEOUT_SEC),
        retry=retry_if_result(lambda loaded: not loaded)
    )
    def _poll_loaded(self) -> bool:
        if self.state == ScriptState.failed:
            raise ScriptLoadError("Failed to load the player script.")
        return self.state == ScriptState.loaded


class AdapterStatus(StrEnum):
    new = "new"
    loading = "loading"
    ready = "ready"
    embed_error = "embed_error"
    destroyed = "destroyed"


class PlayerAdapter:
    """Wraps the embedded player, hiding its loading and lifecycle quirks.

    Accessors are safe to call at any time. Until the player reports it is ready they return defaults
    instead of failing, so a poller racing the initialization simply sees an idle player.
    """

    def __init__(self, host: PlayerHost):
        self.host = host
        self.status = AdapterStatus.new
        self.video_id: Optional[str] = None
        self.error: Optional[PlayerError] = None

        self.on_ready: Optional[Callable[[], Any]] = None
        self.on_embed_error: Optional[Callable[[Optional[PlayerError]], Any]] = None

        self._player: Optional[EmbeddedPlayer] = None
        self._start_position = 0.0
        self._ready_received = False
        self._lock = RLock()
        self._ready = Event()

    def initialize(self, container: Any, video: str, start_position: float = 0.0):
        with self._lock:
            if self.status != AdapterStatus.new:
                LOG.debug("Player is already initialized (%s).", self.status)
                return
            self.status = AdapterStatus.loading
            self._start_position = max(0.0, start_position or 0.0)

        self.video_id = extract_video_id(video)
        if self.video_id is None:
            LOG.warning("Not a YouTube video: %s", video)
            self._fail(PlayerError.INVALID_PARAMETER)
            return

        try:
            ScriptLoader.for_host(self.host).ensure_loaded()
        except ScriptLoadError:
            LOG.exception("Player script is not available.")
            self._fail(None)
            return

        player = self.host.create_player(container, self.video_id, self._handle_ready, self._handle_error)
        with self._lock:
            if self.status == AdapterStatus.destroyed:
                # Torn down while the player was being created.
                player.destroy()
                return
            self._player = player
            ready_received = self._ready_received

        if ready_received:
            self._complete_ready()

    def _handle_ready(self):
        with self._lock:
            self._ready_received = True
            if self._player is None:
                # Reported from within create_player, initialize() finishes the job.
                return
        self._complete_ready()

    def _complete_ready(self):
        with self._lock:
            if self.status != AdapterStatus.loading:
                return
            self.status = AdapterStatus.ready

        if self._start_position > 0:
            self.seek_to(self._start_position, True)
        LOG.info("Player of video %s is ready.", self.video_id)
        self._ready.set()

        if self.on_ready:
            self.on_ready()

    def _handle_error(self, code: int):
        try:
            error = PlayerError(code)
        except ValueError:
            error = None
        LOG.warning("Player of video %s reported error %s.", self.video_id, code)
        self._fail(error)

    def _fail(self, error: Optional[PlayerError]):
        with self._lock:
            if self.status in (AdapterStatus.embed_error, AdapterStatus.destroyed):
                return
            self.status = AdapterStatus.embed_error
            self.error = error

        if self.on_embed_error:
            self.on_embed_error(error)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    @property
    def is_ready(self) -> bool:
        return self.status == AdapterStatus.ready

    @property
    def embed_failed(self) -> bool:
        return self.status == AdapterStatus.embed_error

    @property
    def fallback_url(self) -> Optional[str]:
        return watch_url(self.video_id) if self.video_id else None

    def _call(self, method: str, default, *args):
        player = self._player
        if not self.is_ready or player is None:
            return default
        try:
            return getattr(player, method)(*args)
        except Exception:
            LOG.debug("Player call %s failed.", method, exc_info=True)
            return default

    def get_current_time(self) -> float:
        return _number(self._call("get_current_time", 0.0))

    def get_duration(self) -> float:
        return _number(self._call("get_duration", 0.0))

    def get_player_state(self) -> PlayerState:
        try:
            return PlayerState(self._call("get_player_state", PlayerState.UNSTARTED))
        except ValueError:
            return PlayerState.UNSTARTED

    def get_playback_rate(self) -> float:
        return _number(self._call("get_playback_rate", 0.0))

    def set_playback_rate(self, rate: float):
        self._call("set_playback_rate", None, rate)

    def seek_to(self, seconds: float, allow_seek_ahead: bool):
        self._call("seek_to", None, seconds, allow_seek_ahead)

    def destroy(self):
        with self._lock:
            if self.status == AdapterStatus.destroyed:
                return
            self.status = AdapterStatus.destroyed
            player, self._player = self._player, None
            self.on_ready = None
            self.on_embed_error = None

        if player is not None:
            try:
                player.destroy()
            except Exception:
                LOG.exception("Failed to destroy the player of video %s.", self.video_id)
        LOG.debug("Player of video %s destroyed.", self.video_id)


def _number(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0
