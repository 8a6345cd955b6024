import threading
import uuid

import pytest
import requests

from common_lib.models.progress import WatchSegment
from watch_client.client import ProgressClient, AssignmentUnavailable, RequestQueue
from watch_client.notify import WATCH_START_FAILED


def _response(status_code, body=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    return response


def test_persist(progress_client, http):
    progress_client.persist(12.3456, False, 30.5)

    assert http.headers["Authorization"] == "Bearer student-token"
    [body] = http.posts("/progress")
    assert body["assignmentId"] == str(progress_client.assignment_id)
    assert body["progress_percent"] == 12.35
    assert body["is_completed"] is False
    assert body["last_position"] == 30.5
    assert "last_watched_at" in body
    assert "watched_seconds" not in body


def test_persist_completed(progress_client, http):
    progress_client.persist(97.1, True, 96, watched_seconds=80)

    [body] = http.posts("/progress")
    assert (body["progress_percent"], body["is_completed"], body["last_position"]) == (100.0, True, 96.0)
    assert body["watched_seconds"] == 80


def test_persist_clamps(progress_client, http):
    progress_client.persist(100.4, False, -1)

    [body] = http.posts("/progress")
    assert body["progress_percent"] == 100.0
    assert body["last_position"] == 0.0


def test_persist_failures_are_swallowed(progress_client, http, notifier):
    http.error = requests.ConnectionError("offline")
    progress_client.persist(10, False, 10)

    http.error = None
    http.responses["/progress"] = _response(500, b'{"detail": "Failed to store progress"}')
    progress_client.persist(11, False, 11)

    assert len(http.posts("/progress")) == 2
    assert notifier.toasts == []


def test_first_watch_is_sent_once(progress_client, http):
    assert progress_client.record_first_watch()
    assert not progress_client.record_first_watch()

    assert http.posts("/watch-start") == [{"assignmentId": str(progress_client.assignment_id)}]


def test_first_watch_failure_is_shown(progress_client, http, notifier):
    http.responses["/watch-start"] = _response(503, b'{"detail": "watch_starts table is missing"}')

    progress_client.record_first_watch()

    assert notifier.toasts == [WATCH_START_FAILED]


def test_record_segments(progress_client, http):
    progress_client.record_segments([])
    assert http.requests == []

    progress_client.record_segments([WatchSegment(start_sec=10, end_sec=90)])
    assert http.posts("/watch-segments") == [{"assignmentId": str(progress_client.assignment_id),
                                              "segments": [{"start_sec": 10.0, "end_sec": 90.0}]}]


def test_ensure_progress(progress_client, http):
    progress_client.ensure_progress()
    assert http.posts(f"/assignments/{progress_client.assignment_id}/ensure-progress") == [None]


def test_load_assignment(progress_client, http):
    path = f"/assignments/{progress_client.assignment_id}"
    http.responses[path] = _response(200, ('{"id": "%s", "progress_percent": null, "last_position": 12.5, '
                                           '"video": [{"video_id": "dQw4w9WgXcQ", "title": "Lesson 1"}]}'
                                           % progress_client.assignment_id).encode())

    assignment = progress_client.load_assignment()

    assert assignment.id == progress_client.assignment_id
    assert assignment.progress_percent == 0.0
    assert assignment.last_position == 12.5
    assert assignment.prevent_skip is True
    assert assignment.video.video_id == "dQw4w9WgXcQ"


def test_load_assignment_failures(progress_client, http):
    path = f"/assignments/{progress_client.assignment_id}"

    http.responses[path] = _response(404, b'{"detail": "Assignment not found"}')
    with pytest.raises(AssignmentUnavailable, match="404 Assignment not found"):
        progress_client.load_assignment()

    http.responses[path] = _response(200, b"<html>maintenance</html>")
    with pytest.raises(AssignmentUnavailable):
        progress_client.load_assignment()

    http.error = requests.Timeout("slow")
    with pytest.raises(AssignmentUnavailable):
        progress_client.load_assignment()


def test_from_env(monkeypatch, http):
    monkeypatch.setenv("WATCH_API_URL", "https://academy.local/api/")
    monkeypatch.setenv("WATCH_HTTP_TIMEOUT", "2.5")

    client = ProgressClient.from_env("token", uuid.uuid4(), session=http)
    try:
        assert client.base_url == "https://academy.local/api"
        assert client.timeout == 2.5
    finally:
        client.close()


def test_request_queue_keeps_order():
    queue = RequestQueue()
    done = []
    for i in range(20):
        queue.submit(done.append, i)
    queue.submit(lambda: 1 / 0)
    queue.submit(done.append, "after failure")
    queue.join()
    queue.close()
    queue.thread.join(1)

    assert done == list(range(20)) + ["after failure"]
    assert not queue.thread.is_alive()


def test_request_queue_does_not_block_caller():
    queue = RequestQueue()
    release = threading.Event()
    queue.submit(release.wait, 1)
    queue.submit(lambda: None)

    assert not release.is_set()
    release.set()
    queue.join()
    queue.close()
