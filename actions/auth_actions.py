import logging
import re

from app_errors import RemoteQueryError, ValidationError, classify_exception, user_message

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_credentials(email, password):
    email = (email or "").strip()
    if not _EMAIL_RE.match(email):
        raise ValidationError("ایمیل معتبر وارد کنید", field="email")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"رمز عبور باید حداقل {MIN_PASSWORD_LENGTH} کاراکتر باشد", field="password")
    return email


def login(backend, email, password):
    """Returns (ok, message). ``message`` is None on success."""
    try:
        email = validate_credentials(email, password)
    except ValidationError as e:
        return False, str(e)
    try:
        backend.sign_in(email, password)
    except RemoteQueryError as e:
        kind = classify_exception(e)
        # Bad credentials come back as a plain 400 from the token endpoint.
        if kind in ("unknown", "schema") and getattr(e, "code", "") == "400":
            kind = "auth"
        logger.error("Login failed [%s]: %s", kind, e)
        return False, user_message(kind, "auth")
    return True, None


def signup(backend, email, password, display_name=None):
    try:
        email = validate_credentials(email, password)
    except ValidationError as e:
        return False, str(e)
    metadata = {}
    if display_name and display_name.strip():
        metadata["display_name"] = display_name.strip()
    try:
        backend.sign_up(email, password, **metadata)
    except RemoteQueryError as e:
        kind = classify_exception(e)
        if "registered" in str(e).lower():
            kind = "duplicate"
        logger.error("Signup failed [%s]: %s", kind, e)
        return False, user_message(kind, "auth")
    return True, None


def restore_session(backend):
    restored = backend.try_load_session()
    if restored:
        logger.info("Restored session for user %s", backend.current_user_id())
    return restored


def logout(backend):
    backend.sign_out()
    logger.info("Signed out")
