from datetime import datetime, timezone
import logging

from app_errors import RemoteQueryError, ValidationError, classify_exception, user_message
from models import Review

logger = logging.getLogger(__name__)

REVIEWS_TABLE = "reviews"
REVIEW_SELECT = "*, profiles(id, display_name, full_name, avatar_url)"
MAX_TITLE_LENGTH = 100
MAX_CONTENT_LENGTH = 1000


def _clean_text(value):
    text = (value or "").strip()
    return text or None


def load_reviews(backend, audiobook_id):
    rows = backend.query(
        REVIEWS_TABLE,
        [("audiobook_id", "eq", audiobook_id), ("is_approved", "eq", True)],
        order=("created_at", False),
        select=REVIEW_SELECT,
    )
    return [Review(row) for row in rows if isinstance(row, dict)]


def find_own_review(reviews, user_id):
    if not user_id:
        return None
    for review in reviews:
        if review.user_id == user_id:
            return review
    return None


def validate_review(user_id, rating, title=None, content=None):
    if not user_id:
        raise ValidationError(user_message("auth", "review"), field="user")
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("لطفاً امتیاز دهید", field="rating")
    if title and len(title.strip()) > MAX_TITLE_LENGTH:
        raise ValidationError(f"عنوان نظر حداکثر {MAX_TITLE_LENGTH} کاراکتر است", field="title")
    if content and len(content.strip()) > MAX_CONTENT_LENGTH:
        raise ValidationError(f"متن نظر حداکثر {MAX_CONTENT_LENGTH} کاراکتر است", field="content")


def submit_review(backend, user_id, audiobook_id, rating, title=None, content=None, existing=None):
    """
    Create the user's review, or update ``existing`` (a Review or row dict).

    Returns the stored row. Raises ValidationError for bad input and
    RemoteQueryError for backend failures; ``review_error_message`` maps the
    latter to the text shown under the form.
    """
    validate_review(user_id, rating, title, content)
    now = datetime.now(timezone.utc).isoformat()
    data = {
        "user_id": user_id,
        "audiobook_id": audiobook_id,
        "rating": rating,
        "title": _clean_text(title),
        "content": _clean_text(content),
        "is_verified_purchase": True,
        "updated_at": now,
    }

    if existing is not None:
        review_id = existing.get("id") if isinstance(existing, dict) else getattr(existing, "id", None)
        if review_id is None:
            raise ValidationError("Existing review has no id", field="id")
        data["edited_at"] = now
        rows = backend.update(REVIEWS_TABLE, data, [("id", "eq", review_id)])
        logger.info("Updated review %s for audiobook %s", review_id, audiobook_id)
    else:
        rows = backend.insert(REVIEWS_TABLE, data)
        logger.info("Created review for audiobook %s", audiobook_id)
    return rows[0] if rows else data


def delete_review(backend, review_id):
    backend.delete(REVIEWS_TABLE, [("id", "eq", review_id)])
    logger.info("Deleted review %s", review_id)


def review_error_message(exc):
    if isinstance(exc, ValidationError):
        return str(exc)
    kind = classify_exception(exc)
    if isinstance(exc, RemoteQueryError):
        logger.warning("Review submit error [%s]: %s", kind, exc)
    return user_message(kind, "review")
