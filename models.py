from datetime import datetime, timezone


BRAND_NARRATOR_LABEL = "پرستو"

NARRATOR_REQUEST_STATUSES = ("pending", "approved", "rejected")

_NARRATOR_STATUS_LABELS = {
    "pending": "در انتظار بررسی",
    "approved": "تأیید شده",
    "rejected": "رد شده",
}


def parse_timestamp(value):
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def format_timestamp(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _as_int(value, default=0):
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value, default=0.0):
    if isinstance(value, bool) or value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_opt_str(value):
    if isinstance(value, str) and value.strip():
        return value
    return None


def _joined(data, key):
    # Many-to-one joins come back as an object, one-to-many as a list.
    sub = data.get(key)
    if isinstance(sub, list):
        sub = sub[0] if sub else None
    return sub if isinstance(sub, dict) else {}


class _Record:
    """Read-only projection of a remote row."""

    _frozen = False

    def __setattr__(self, name, value):
        if self._frozen:
            raise AttributeError(f"{type(self).__name__} is read-only")
        object.__setattr__(self, name, value)

    def _freeze(self):
        object.__setattr__(self, "_frozen", True)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.__dict__ == other.__dict__

    def __hash__(self):
        return hash((type(self).__name__, getattr(self, "id", None)))


class ContentItem(_Record):
    def __init__(self, data):
        book_meta = _joined(data, "book_metadata")
        music_meta = _joined(data, "music_metadata")
        self.id = _as_int(data.get("id"))
        self.title_fa = data.get("title_fa") or ""
        self.title_en = _as_opt_str(data.get("title_en"))
        self.author_fa = _as_opt_str(data.get("author_fa"))
        self.author_en = _as_opt_str(data.get("author_en"))
        self.cover_url = _as_opt_str(data.get("cover_url"))
        self.narrator_name = _as_opt_str(book_meta.get("narrator_name"))
        self.artist_name = _as_opt_str(music_meta.get("artist_name"))
        featured = music_meta.get("featured_artists")
        self.featured_artists = tuple(featured) if isinstance(featured, list) else ()
        self.avg_rating = _as_float(data.get("avg_rating"))
        self.play_count = _as_int(data.get("play_count"))
        self.created_at = parse_timestamp(data.get("created_at"))
        self.status = data.get("status") or "draft"
        self.is_free = data.get("is_free") is True
        self.is_featured = data.get("is_featured") is True
        self.is_music = data.get("is_music") is True
        self.is_podcast = data.get("is_podcast") is True
        self.is_article = data.get("is_article") is True
        self.is_parasto_brand = data.get("is_parasto_brand") is True
        self._freeze()

    def display_title(self):
        return self.title_fa or self.title_en or ""

    def display_author(self):
        author = self.author_fa or self.author_en
        if author:
            return author
        if self.is_music and self.artist_name:
            return self.artist_name
        if self.is_parasto_brand:
            return BRAND_NARRATOR_LABEL
        return self.narrator_name or ""

    def __repr__(self):
        return f"ContentItem(id={self.id!r}, title={self.display_title()!r})"


class ListeningProgressRecord(_Record):
    def __init__(self, data):
        self.user_id = data.get("user_id")
        self.audiobook_id = _as_int(data.get("audiobook_id"))
        self.updated_at = parse_timestamp(data.get("updated_at"))
        pct = _as_float(data.get("completion_percentage"))
        self.completion_percentage = max(0.0, min(100.0, pct))
        self.current_chapter_index = _as_int(data.get("current_chapter_index"))
        self.position_seconds = _as_int(data.get("position_seconds"))
        self.is_completed = data.get("is_completed") is True
        self._freeze()

    def __repr__(self):
        return f"ListeningProgressRecord(audiobook_id={self.audiobook_id!r}, updated_at={self.updated_at!r})"


class Review(_Record):
    def __init__(self, data):
        profile = _joined(data, "profiles")
        self.id = data.get("id")
        self.user_id = data.get("user_id")
        self.audiobook_id = _as_int(data.get("audiobook_id"))
        self.rating = _as_int(data.get("rating"))
        self.title = _as_opt_str(data.get("title"))
        self.content = _as_opt_str(data.get("content"))
        self.is_approved = data.get("is_approved") is True
        self.created_at = parse_timestamp(data.get("created_at"))
        self.edited_at = parse_timestamp(data.get("edited_at"))
        self.reviewer_name = (
            _as_opt_str(profile.get("display_name"))
            or _as_opt_str(profile.get("full_name"))
            or "کاربر"
        )
        self._freeze()

    def __repr__(self):
        return f"Review(id={self.id!r}, rating={self.rating!r})"


class NarratorRequest(_Record):
    def __init__(self, data):
        status = data.get("status")
        if status not in NARRATOR_REQUEST_STATUSES:
            raise ValueError(f"Invalid status: {status}")
        self.id = data.get("id")
        self.user_id = data.get("user_id")
        self.experience_text = data.get("experience_text") or ""
        self.voice_sample_path = data.get("voice_sample_path") or ""
        self.status = status
        self.reviewed_by = data.get("reviewed_by")
        self.reviewed_at = parse_timestamp(data.get("reviewed_at"))
        self.admin_feedback = data.get("admin_feedback")
        self.created_at = parse_timestamp(data.get("created_at"))
        self.updated_at = parse_timestamp(data.get("updated_at"))
        self._freeze()

    def status_label(self):
        return _NARRATOR_STATUS_LABELS[self.status]

    def to_row(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "experience_text": self.experience_text,
            "voice_sample_path": self.voice_sample_path,
            "status": self.status,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": format_timestamp(self.reviewed_at),
            "admin_feedback": self.admin_feedback,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    def __repr__(self):
        return f"NarratorRequest(id={self.id!r}, status={self.status!r})"
