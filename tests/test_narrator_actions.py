import uuid

import pytest

from actions import narrator_actions
from app_errors import SchemaError, TransportError, ValidationError

EXPERIENCE = "Five years narrating audiobooks for local radio."


class FakeBackend:
    def __init__(self, pending=None, insert_error=None, remove_error=None):
        self.pending = pending or []
        self.insert_error = insert_error
        self.remove_error = remove_error
        self.uploads = []
        self.removed = []
        self.inserted = []
        self.queries = []

    def query(self, table, filters, order=None, limit=None, select="*"):
        self.queries.append((table, list(filters), order, limit))
        return list(self.pending)

    def upload(self, bucket, path, data, content_type="application/octet-stream"):
        self.uploads.append((bucket, path, data, content_type))
        return path

    def remove(self, bucket, paths):
        if self.remove_error is not None:
            raise self.remove_error
        self.removed.append((bucket, list(paths)))
        return []

    def insert(self, table, row):
        if self.insert_error is not None:
            raise self.insert_error
        self.inserted.append((table, row))
        return [dict(row, created_at="2024-03-01T08:00:00+00:00", updated_at="2024-03-01T08:00:00+00:00")]


def test_submit_uploads_then_inserts_pending_request():
    backend = FakeBackend()
    req = narrator_actions.submit_request(backend, "u1", f"  {EXPERIENCE}  ", b"voice")

    bucket, path, data, content_type = backend.uploads[0]
    assert bucket == "narrator-requests"
    assert path == f"u1/{req.id}.m4a"
    assert data == b"voice"
    assert content_type == "audio/mp4"
    uuid.UUID(req.id)

    table, row = backend.inserted[0]
    assert table == "narrator_requests"
    assert row["status"] == "pending"
    assert row["experience_text"] == EXPERIENCE
    assert row["voice_sample_path"] == path
    assert req.status == "pending"


def test_submit_rejected_when_request_already_pending():
    pending = {"id": "r0", "user_id": "u1", "status": "pending"}
    backend = FakeBackend(pending=[pending])

    with pytest.raises(ValidationError) as info:
        narrator_actions.submit_request(backend, "u1", EXPERIENCE, b"voice")

    assert info.value.field == "status"
    assert backend.uploads == []


def test_failed_insert_removes_uploaded_sample():
    backend = FakeBackend(insert_error=SchemaError("42501", "permission denied"))

    with pytest.raises(SchemaError):
        narrator_actions.submit_request(backend, "u1", EXPERIENCE, b"voice")

    uploaded_path = backend.uploads[0][1]
    assert backend.removed == [("narrator-requests", [uploaded_path])]


def test_cleanup_failure_keeps_original_error():
    backend = FakeBackend(
        insert_error=SchemaError("500", "insert failed"),
        remove_error=TransportError("offline"),
    )
    with pytest.raises(SchemaError):
        narrator_actions.submit_request(backend, "u1", EXPERIENCE, b"voice")


@pytest.mark.parametrize(
    "user_id,text,sample,field",
    [
        (None, EXPERIENCE, b"voice", "user"),
        ("u1", "too short", b"voice", "experience_text"),
        ("u1", EXPERIENCE, b"", "voice_sample"),
    ],
)
def test_submit_validation(user_id, text, sample, field):
    backend = FakeBackend()
    with pytest.raises(ValidationError) as info:
        narrator_actions.submit_request(backend, user_id, text, sample)
    assert info.value.field == field
    assert backend.uploads == []


def test_user_requests_newest_first():
    rows = [
        {"id": "r2", "user_id": "u1", "status": "rejected", "admin_feedback": "noise"},
        {"id": "r1", "user_id": "u1", "status": "approved"},
    ]
    backend = FakeBackend(pending=rows)
    requests = narrator_actions.get_user_requests(backend, "u1")

    assert [r.id for r in requests] == ["r2", "r1"]
    assert backend.queries[0][2] == ("created_at", False)
    assert requests[0].status_label() == "رد شده"


def test_error_message_mapping():
    assert narrator_actions.narrator_error_message(TransportError("timeout")) == "خطا در اتصال به اینترنت"
    assert narrator_actions.narrator_error_message(SchemaError("500", "boom")) == "خطا در ثبت درخواست"
