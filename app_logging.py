import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"

# Baseline levels for chatty loggers; MYNA_LOG_MODULE_LEVELS wins over these.
DEFAULT_MODULE_LEVELS = {
    "urllib3": logging.WARNING,
    "supabase_backend": logging.INFO,
}

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+"),
    re.compile(r"(apikey[=:]\s*)[A-Za-z0-9._\-]+", re.IGNORECASE),
    re.compile(r"""(["']?(?:access|refresh)_token["']?\s*[:=]\s*["']?)[A-Za-z0-9._\-]+"""),
)


def redact(text):
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1***", text)
    return text


class RedactSecretsFilter(logging.Filter):
    """Masks bearer tokens, API keys and session tokens in formatted records."""

    def filter(self, record):
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def _env_int(name, default):
    try:
        value = int(os.getenv(name) or default)
    except ValueError:
        return default
    return value if value >= 1 else default


def _level(name, default):
    if isinstance(name, int):
        return name
    level = getattr(logging, str(name).strip().upper(), None)
    return level if isinstance(level, int) else default


def parse_module_levels(raw, default_level=logging.INFO):
    """
    Parse "list_fetch=DEBUG,supabase_backend=WARNING" into {name: level}.

    Malformed entries are returned separately so the caller can report them
    once logging is up.
    """
    levels = {}
    invalid = []
    for item in (raw or "").split(","):
        entry = item.strip()
        if not entry:
            continue
        name, sep, level_name = entry.partition("=")
        if not sep or not name.strip() or not level_name.strip():
            invalid.append(entry)
            continue
        levels[name.strip()] = _level(level_name, default_level)
    return levels, invalid


def setup_logging(level=None, log_file=None):
    """
    Configure logging for the list client. Safe to call repeatedly.

    Env vars:
    - MYNA_LOG_LEVEL: root level (default INFO)
    - MYNA_LOG_FILE: rotating log file path
    - MYNA_LOG_ROTATE_BYTES / MYNA_LOG_BACKUP_COUNT: rotation (5 MiB, 3 files)
    - MYNA_LOG_MODULE_LEVELS: per-logger overrides
    - MYNA_LOG_HTTP: 1 keeps urllib3 connection logs at the root level
    """
    root_level = _level(level or os.getenv("MYNA_LOG_LEVEL", "INFO"), logging.INFO)
    root = logging.getLogger()
    root.setLevel(root_level)
    root.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    redactor = RedactSecretsFilter()

    handlers = [logging.StreamHandler()]
    log_file = log_file or os.getenv("MYNA_LOG_FILE")
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=_env_int("MYNA_LOG_ROTATE_BYTES", 5 * 1024 * 1024),
                backupCount=_env_int("MYNA_LOG_BACKUP_COUNT", 3),
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(root_level)
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root.addHandler(handler)

    module_levels = dict(DEFAULT_MODULE_LEVELS)
    if os.getenv("MYNA_LOG_HTTP", "").strip().lower() in ("1", "true", "yes"):
        module_levels.pop("urllib3")
        logging.getLogger("urllib3").setLevel(logging.NOTSET)
    overrides, invalid = parse_module_levels(os.getenv("MYNA_LOG_MODULE_LEVELS"), root_level)
    module_levels.update(overrides)

    for name, module_level in module_levels.items():
        logging.getLogger(name).setLevel(module_level)
    for entry in invalid:
        root.warning("Invalid module-level logging entry: %s", entry)
    if overrides:
        root.info(
            "Log level overrides: %s",
            ", ".join(f"{name}={logging.getLevelName(lvl)}" for name, lvl in overrides.items()),
        )
