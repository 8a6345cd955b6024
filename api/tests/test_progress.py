import uuid

from sqlalchemy import select

from api.models import db


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _stored(session_factory, assignment_id) -> db.Assignment:
    with session_factory() as session:
        return session.get(db.Assignment, assignment_id)


def test_update_progress(client, session_factory, data):
    payload = {"assignmentId": str(data.assignment.id), "progress_percent": 42.5, "is_completed": False,
               "last_position": 85.0, "last_watched_at": "2026-03-01T10:00:00Z"}

    response = client.post("/api/progress", json=payload, headers=_auth("student-token"))

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    stored = _stored(session_factory, data.assignment.id)
    assert stored.progress_percent == 42.5
    assert stored.last_position == 85.0


def test_update_progress_is_monotonic(client, session_factory, data):
    headers = _auth("student-token")
    assignment_id = str(data.assignment.id)

    client.post("/api/progress", json={"assignmentId": assignment_id, "progress_percent": 60, "last_position": 60},
                headers=headers)
    # A delayed save arriving after a newer one.
    client.post("/api/progress", json={"assignmentId": assignment_id, "progress_percent": 55, "last_position": 55},
                headers=headers)

    stored = _stored(session_factory, data.assignment.id)
    assert stored.progress_percent == 60.0
    assert stored.last_position == 60.0


def test_update_progress_completion(client, session_factory, data):
    payload = {"assignmentId": str(data.assignment.id), "progress_percent": 100, "is_completed": True,
               "last_position": 96}

    assert client.post("/api/progress", json=payload, headers=_auth("student-token")).status_code == 200

    stored = _stored(session_factory, data.assignment.id)
    assert (stored.progress_percent, stored.is_completed, stored.last_position) == (100.0, True, 96.0)


def test_update_progress_invalid(client, data):
    headers = _auth("student-token")
    assignment_id = str(data.assignment.id)

    for payload in [{"assignmentId": assignment_id, "progress_percent": 101},
                    {"assignmentId": assignment_id, "progress_percent": -1},
                    {"assignmentId": assignment_id, "progress_percent": 10, "last_position": -5},
                    {"assignmentId": "not-a-uuid", "progress_percent": 10},
                    {"progress_percent": 10}]:
        assert client.post("/api/progress", json=payload, headers=headers).status_code == 422


def test_update_progress_not_owned(client, session_factory, data):
    payload = {"assignmentId": str(data.assignment.id), "progress_percent": 80}

    response = client.post("/api/progress", json=payload, headers=_auth("other-student-token"))

    assert response.status_code == 404
    assert _stored(session_factory, data.assignment.id).progress_percent == 0.0


def test_update_progress_unknown_assignment(client, data):
    payload = {"assignmentId": str(uuid.uuid4()), "progress_percent": 80}
    assert client.post("/api/progress", json=payload, headers=_auth("student-token")).status_code == 404


def test_watch_start(client, session_factory, data):
    headers = _auth("student-token")
    payload = {"assignmentId": str(data.assignment.id)}

    assert client.post("/api/watch-start", json=payload, headers=headers).json() == {"ok": True}
    started_at = _stored(session_factory, data.assignment.id).started_at
    assert client.post("/api/watch-start", json=payload, headers=headers).status_code == 200

    assert started_at is not None
    assert _stored(session_factory, data.assignment.id).started_at == started_at
    with session_factory() as session:
        starts = session.scalars(select(db.WatchStart).where(db.WatchStart.assignment_id == data.assignment.id))
        assert len(starts.all()) == 2


def test_watch_start_not_owned(client, session_factory, data):
    payload = {"assignmentId": str(data.assignment.id)}

    response = client.post("/api/watch-start", json=payload, headers=_auth("other-student-token"))

    assert response.status_code == 403
    assert _stored(session_factory, data.assignment.id).started_at is None


def test_watch_start_without_audit_table(client, engine, session_factory, data):
    db.WatchStart.__table__.drop(engine)
    payload = {"assignmentId": str(data.assignment.id)}

    response = client.post("/api/watch-start", json=payload, headers=_auth("student-token"))

    assert response.status_code == 503
    assert _stored(session_factory, data.assignment.id).started_at is not None


def test_watch_segments(client, session_factory, data):
    payload = {"assignmentId": str(data.assignment.id),
               "segments": [{"start_sec": 10, "end_sec": 90},
                            {"start_sec": 95, "end_sec": 95},
                            {"start_sec": -3, "end_sec": 4}]}

    response = client.post("/api/watch-segments", json=payload, headers=_auth("student-token"))

    assert response.status_code == 200
    with session_factory() as session:
        rows = session.scalars(select(db.WatchSegment)).all()
        assert [(r.start_sec, r.end_sec) for r in rows] == [(10.0, 90.0)]


def test_watch_segments_empty(client, data):
    payload = {"assignmentId": str(data.assignment.id), "segments": []}
    assert client.post("/api/watch-segments", json=payload, headers=_auth("student-token")).json() == {"ok": True}


def test_watch_segments_empty_not_owned(client, data):
    payload = {"assignmentId": str(data.assignment.id), "segments": []}
    response = client.post("/api/watch-segments", json=payload, headers=_auth("other-student-token"))
    assert response.status_code == 404


def test_watch_segments_not_owned(client, data):
    payload = {"assignmentId": str(data.assignment.id), "segments": [{"start_sec": 0, "end_sec": 5}]}
    response = client.post("/api/watch-segments", json=payload, headers=_auth("other-student-token"))
    assert response.status_code == 404
