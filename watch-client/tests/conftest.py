import json
import uuid
from typing import Optional

import pytest

from watch_client.client import ProgressClient, InlineDispatcher
from watch_client.player import PlayerAdapter, PlayerState
from watch_client.poller import ProgressPoller, PollerConfig

VIDEO_ID = "dQw4w9WgXcQ"


class FakePlayer:
    def __init__(self, duration: float = 100.0):
        self.current_time = 0.0
        self.duration = duration
        self.state = PlayerState.PLAYING
        self.rate = 1.0
        self.seeks = []
        self.destroyed = 0

    def get_current_time(self):
        return self.current_time

    def get_duration(self):
        return self.duration

    def get_player_state(self):
        return self.state

    def get_playback_rate(self):
        return self.rate

    def set_playback_rate(self, rate):
        self.rate = rate

    def seek_to(self, seconds, allow_seek_ahead):
        self.seeks.append((seconds, allow_seek_ahead))
        self.current_time = seconds

    def destroy(self):
        self.destroyed += 1


class FakeHost:
    def __init__(self, ready_immediately: bool = True, error: Optional[int] = None, fail_script: bool = False):
        self.ready_immediately = ready_immediately
        self.error = error
        self.fail_script = fail_script
        self.script_loads = 0
        self.players: list[FakePlayer] = []
        self.on_ready = None
        self.on_error = None

    def load_script(self):
        self.script_loads += 1
        if self.fail_script:
            raise ConnectionError("script blocked")

    def create_player(self, container, video_id, on_ready, on_error):
        player = FakePlayer()
        player.video_id = video_id
        self.players.append(player)
        self.on_ready, self.on_error = on_ready, on_error

        if self.error is not None:
            on_error(self.error)
        elif self.ready_immediately:
            on_ready()
        return player

    @property
    def player(self) -> FakePlayer:
        return self.players[-1]


class RecordingNotifier:
    def __init__(self):
        self.alerts = []
        self.toasts = []

    def alert(self, message):
        self.alerts.append(message)

    def toast(self, message, duration=5.0):
        self.toasts.append(message)


class RecordingClient:
    """Stands in for the progress client, remembers what the poller asked it to send."""

    def __init__(self):
        self.assignment_id = uuid.uuid4()
        self.saves = []
        self.first_watch_calls = 0
        self.segments = []

    def persist(self, percent, completed, position, watched_seconds=None):
        self.saves.append((percent, completed, position, watched_seconds))

    def record_first_watch(self):
        self.first_watch_calls += 1
        return True

    def record_segments(self, segments):
        self.segments.extend(segments)


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {"ok": True}

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return json.dumps(self._body)

    def json(self):
        return self._body


class FakeHttp:
    """Minimal stand-in for requests.Session. Responses are keyed by the path after the base URL."""

    def __init__(self, base_url: str = "http://api.test/api"):
        self.base_url = base_url
        self.headers = {}
        self.requests = []
        self.responses: dict[str, FakeResponse] = {}
        self.error: Optional[Exception] = None

    def _respond(self, method, url, data=None):
        path = url[len(self.base_url):]
        self.requests.append((method, path, json.loads(data) if data else None))
        if self.error is not None:
            raise self.error
        return self.responses.get(path, FakeResponse())

    def get(self, url, timeout=None):
        return self._respond("GET", url)

    def post(self, url, data=None, headers=None, timeout=None):
        return self._respond("POST", url, data)

    def posts(self, path: str) -> list:
        return [body for method, p, body in self.requests if method == "POST" and p == path]


@pytest.fixture
def make_host():
    return FakeHost


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def recording_client():
    return RecordingClient()


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def progress_client(http, notifier):
    client = ProgressClient(http.base_url, "student-token", uuid.uuid4(), notifier=notifier,
                            dispatcher=InlineDispatcher(), session=http, timeout=1)
    return client


@pytest.fixture
def make_poller(host, notifier, recording_client):
    """Builds a poller over a ready player. The player is host.player."""

    def _make(**kwargs) -> ProgressPoller:
        adapter = PlayerAdapter(host)
        adapter.initialize("player-div", VIDEO_ID)
        poller = ProgressPoller(adapter, recording_client, notifier, config=PollerConfig(poll_interval=3600),
                                **kwargs)
        poller.activate()
        return poller

    return _make
