import os
import threading
import uuid
from datetime import datetime, UTC
from queue import Queue
from typing import Callable, Optional, Protocol

import requests
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from common_lib.models.progress import ProgressUpdate, WatchAssignment, WatchSegment, WatchSegmentsRequest, \
    WatchStartRequest
from watch_client import get_logger
from watch_client.notify import Notifier, LogNotifier, WATCH_START_FAILED

LOG = get_logger(__name__)

load_dotenv()


class AssignmentUnavailable(Exception):
    """The assignment can't be loaded, so there is nothing to watch."""


class Dispatcher(Protocol):
    def submit(self, fn: Callable, *args) -> None: ...

    def close(self) -> None: ...


class RequestQueue:
    """Runs requests one by one on a background thread, so the caller never waits for the network."""

    _stop = object()

    def __init__(self, name: str = "progress-requests"):
        self.queue = Queue()
        self.thread = threading.Thread(name=name, target=self._thread_target, daemon=True)
        self.thread.start()

    def submit(self, fn: Callable, *args):
        self.queue.put((fn, args))

    def _thread_target(self):
        while True:
            item = self.queue.get()
            try:
                if item is self._stop:
                    return
                fn, args = item
                fn(*args)
            except Exception:
                LOG.exception("Background request failed.")
            finally:
                self.queue.task_done()

    def join(self):
        """Blocks until all submitted requests are done."""
        self.queue.join()

    def close(self):
        # Requests already queued still go out.
        self.queue.put(self._stop)


class InlineDispatcher:
    """Runs requests in the calling thread."""

    def submit(self, fn: Callable, *args):
        try:
            fn(*args)
        except Exception:
            LOG.exception("Request failed.")

    def close(self):
        pass


class ProgressClient:
    """Talks to the progress endpoints on behalf of one student and one assignment.

    Writes are fire-and-forget: they are handed to the dispatcher and failures are only logged. Progress is
    best effort, a lost save is superseded by the next one.
    """

    def __init__(self,
                 base_url: str,
                 token: str,
                 assignment_id: uuid.UUID,
                 notifier: Optional[Notifier] = None,
                 dispatcher: Optional[Dispatcher] = None,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.assignment_id = assignment_id
        self.notifier = notifier or LogNotifier()
        self.dispatcher = dispatcher or RequestQueue()
        self.timeout = timeout if timeout is not None else float(os.getenv("WATCH_HTTP_TIMEOUT", "10"))

        self.session = session or requests.Session()
        self.session.headers["Authorization"] = f"Bearer {token}"

        self._first_watch_lock = threading.Lock()
        self._first_watch_sent = False

    @classmethod
    def from_env(cls, token: str, assignment_id: uuid.UUID, **kwargs) -> "ProgressClient":
        return cls(os.getenv("WATCH_API_URL", "http://localhost:8000/api"), token, assignment_id, **kwargs)

    def load_assignment(self) -> WatchAssignment:
        """Loads the assignment to watch. Runs synchronously, the page has nothing to show without it."""
        url = f"{self.base_url}/assignments/{self.assignment_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise AssignmentUnavailable(f"Failed to load assignment {self.assignment_id}") from e

        if response.status_code != 200:
            raise AssignmentUnavailable(
                f"Failed to load assignment {self.assignment_id}: {response.status_code} {_detail(response)}")
        try:
            return WatchAssignment.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise AssignmentUnavailable(f"Unexpected assignment payload of {self.assignment_id}") from e

    def ensure_progress(self):
        self.dispatcher.submit(self._post, f"/assignments/{self.assignment_id}/ensure-progress", None, "ensure-progress")

    def persist(self, percent: float, completed: bool, position: float, watched_seconds: Optional[float] = None):
        payload = ProgressUpdate(
            assignment_id=self.assignment_id,
            progress_percent=100.0 if completed else min(100.0, max(0.0, round(percent, 2))),
            is_completed=completed,
            last_position=max(0.0, position),
            last_watched_at=datetime.now(UTC),
            watched_seconds=watched_seconds,
        )
        self.dispatcher.submit(self._post, "/progress", payload, "progress")

    def record_first_watch(self) -> bool:
        """Records that the student started watching. Only the first call of a session sends anything."""
        with self._first_watch_lock:
            if self._first_watch_sent:
                return False
            self._first_watch_sent = True

        self.dispatcher.submit(self._send_watch_start)
        return True

    def _send_watch_start(self):
        payload = WatchStartRequest(assignment_id=self.assignment_id)
        if not self._post("/watch-start", payload, "watch start"):
            self.notifier.toast(WATCH_START_FAILED)

    def record_segments(self, segments: list[WatchSegment]):
        if not segments:
            return
        payload = WatchSegmentsRequest(assignment_id=self.assignment_id, segments=segments)
        self.dispatcher.submit(self._post, "/watch-segments", payload, "watch segments")

    def _post(self, path: str, payload: Optional[BaseModel], what: str) -> bool:
        url = f"{self.base_url}{path}"
        body = payload.model_dump_json(by_alias=True, exclude_none=True) if payload else None
        try:
            response = self.session.post(url, data=body, headers={"Content-Type": "application/json"},
                                         timeout=self.timeout)
        except requests.RequestException:
            LOG.warning("Failed to send %s of assignment %s.", what, self.assignment_id, exc_info=True)
            return False

        if not response.ok:
            LOG.warning("Failed to send %s of assignment %s: %s %s",
                        what, self.assignment_id, response.status_code, _detail(response))
            return False
        return True

    def close(self):
        self.dispatcher.close()


def _detail(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    return str(data.get("detail", "")) if isinstance(data, dict) else str(data)
