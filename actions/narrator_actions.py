import logging
import uuid

from app_errors import BackendError, RemoteQueryError, ValidationError, classify_exception, user_message
from models import NarratorRequest

logger = logging.getLogger(__name__)

REQUESTS_TABLE = "narrator_requests"
VOICE_SAMPLE_BUCKET = "narrator-requests"
VOICE_SAMPLE_CONTENT_TYPE = "audio/mp4"
MIN_EXPERIENCE_LENGTH = 20


def get_pending_request(backend, user_id):
    if not user_id:
        raise ValidationError(user_message("auth", "narrator"), field="user")
    rows = backend.query(
        REQUESTS_TABLE,
        [("user_id", "eq", user_id), ("status", "eq", "pending")],
        limit=1,
    )
    if not rows:
        return None
    return NarratorRequest(rows[0])


def get_user_requests(backend, user_id):
    if not user_id:
        raise ValidationError(user_message("auth", "narrator"), field="user")
    rows = backend.query(
        REQUESTS_TABLE,
        [("user_id", "eq", user_id)],
        order=("created_at", False),
    )
    return [NarratorRequest(row) for row in rows]


def voice_sample_path(user_id, request_id):
    return f"{user_id}/{request_id}.m4a"


def submit_request(backend, user_id, experience_text, voice_sample):
    """
    Upload the voice sample, then create a pending request row.

    The sample is removed again when the row insert fails, so a failed
    submission leaves nothing behind in storage.
    """
    if not user_id:
        raise ValidationError(user_message("auth", "narrator"), field="user")
    text = (experience_text or "").strip()
    if len(text) < MIN_EXPERIENCE_LENGTH:
        raise ValidationError(
            f"لطفاً حداقل {MIN_EXPERIENCE_LENGTH} کاراکتر درباره تجربه خود بنویسید",
            field="experience_text",
        )
    if not voice_sample:
        raise ValidationError("لطفاً نمونه صوتی خود را ضبط کنید", field="voice_sample")

    if get_pending_request(backend, user_id) is not None:
        raise ValidationError(user_message("duplicate", "narrator"), field="status")

    request_id = str(uuid.uuid4())
    path = voice_sample_path(user_id, request_id)
    backend.upload(VOICE_SAMPLE_BUCKET, path, voice_sample, content_type=VOICE_SAMPLE_CONTENT_TYPE)

    try:
        rows = backend.insert(
            REQUESTS_TABLE,
            {
                "id": request_id,
                "user_id": user_id,
                "experience_text": text,
                "voice_sample_path": path,
                "status": "pending",
            },
        )
    except RemoteQueryError:
        try:
            backend.remove(VOICE_SAMPLE_BUCKET, [path])
        except RemoteQueryError as cleanup_err:
            logger.warning("Failed to remove orphaned voice sample %s: %s", path, cleanup_err)
        raise

    if not rows:
        raise BackendError("Narrator request insert returned no row")
    logger.info("Narrator request %s submitted", request_id)
    return NarratorRequest(rows[0])


def narrator_error_message(exc):
    if isinstance(exc, ValidationError):
        return str(exc)
    kind = classify_exception(exc)
    logger.warning("Narrator request error [%s]: %s", kind, exc)
    return user_message(kind, "narrator")
