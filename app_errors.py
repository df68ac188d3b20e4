from __future__ import annotations


class RemoteQueryError(Exception):
    """Base class for failures talking to the hosted backend."""


class ConnectivityError(RemoteQueryError):
    pass


class TransportError(ConnectivityError):
    pass


class BackendError(RemoteQueryError):
    pass


class SchemaError(BackendError):
    """Error reported by the row API, carrying its error code and message."""

    def __init__(self, code, message, details=None, hint=None):
        self.code = str(code or "")
        self.message = str(message or "")
        self.details = details
        self.hint = hint
        super().__init__(f"[{self.code}] {self.message}" if self.code else self.message)


class ValidationError(Exception):
    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)


_NETWORK_MARKERS = ("socket", "connection", "network", "timeout", "timed out")


def is_network_error(exc: Exception) -> bool:
    if isinstance(exc, ConnectivityError):
        return True
    # A reply from the backend is never a connectivity failure.
    if isinstance(exc, BackendError):
        return False
    text = str(exc).lower()
    return any(k in text for k in _NETWORK_MARKERS)


def classify_exception(exc: Exception) -> str:
    if isinstance(exc, ConnectivityError):
        return "network"
    text = str(exc).lower()
    if isinstance(exc, SchemaError):
        code = exc.code
        if code in ("23505",) or "duplicate" in text:
            return "duplicate"
        if code in ("42703", "42P01", "PGRST204"):
            return "schema"
        if code in ("401", "403", "PGRST301", "42501"):
            return "auth"
    if any(k in text for k in ("401", "403", "unauthorized", "forbidden", "jwt", "invalid login", "session expired")):
        return "auth"
    if any(k in text for k in ("500", "502", "503", "504", "internal server error", "bad gateway", "service unavailable")):
        return "server"
    if not isinstance(exc, BackendError) and any(
        k in text for k in ("timeout", "timed out", "connection", "network", "dns", "unreachable", "socket")
    ):
        return "network"
    if any(k in text for k in ("duplicate", "already exists")):
        return "duplicate"
    if any(k in text for k in ("404", "not found", "no such")):
        return "not_found"
    if any(k in text for k in ("does not exist", "column")):
        return "schema"
    if any(k in text for k in ("json", "decode", "parse")):
        return "parse"
    return "unknown"


def user_message(kind: str, context: str = "general") -> str:
    if context == "list":
        if kind == "network":
            return "خطا در اتصال به اینترنت"
        return "خطا در بارگذاری کتاب‌ها"

    if context == "music_list":
        if kind == "network":
            return "خطا در اتصال به اینترنت"
        return "خطا در بارگذاری موسیقی"

    if context == "review":
        mapping = {
            "auth": "لطفاً وارد شوید",
            "duplicate": "قبلاً نظر داده‌اید",
            "network": "خطا در اتصال به اینترنت",
            "unknown": "خطا در ثبت نظر",
        }
        return mapping.get(kind, mapping["unknown"])

    if context == "narrator":
        mapping = {
            "auth": "لطفاً وارد شوید",
            "duplicate": "شما در حال حاضر یک درخواست در انتظار بررسی دارید",
            "network": "خطا در اتصال به اینترنت",
            "unknown": "خطا در ثبت درخواست",
        }
        return mapping.get(kind, mapping["unknown"])

    if context == "auth":
        mapping = {
            "auth": "ایمیل یا رمز عبور اشتباه است",
            "duplicate": "این ایمیل قبلاً ثبت شده است",
            "network": "خطا در اتصال به اینترنت",
            "server": "سرور در دسترس نیست. لطفاً دوباره تلاش کنید",
            "unknown": "خطا در ورود. لطفاً دوباره تلاش کنید",
        }
        return mapping.get(kind, mapping["unknown"])

    return "خطا. لطفاً دوباره تلاش کنید"
