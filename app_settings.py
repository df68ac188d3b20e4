import json
import os
from typing import Any


CURRENT_SETTINGS_VERSION = 1

SORT_MODES = ("default", "newest", "popular", "rating", "title")
VIEW_MODES = ("grid", "list")

DEFAULT_SETTINGS = {
    "settings_version": CURRENT_SETTINGS_VERSION,
    "supabase_url": "",
    "supabase_anon_key": "",
    "request_timeout": 15,
    "list_limit": 100,
    "progress_limit": 50,
    "view_mode": "grid",
    "last_category": "new_releases",
    "last_sort": {},
    "token_file": "~/.cache/myna/session.json",
}


def _as_str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _as_int(value: Any, default: int, minimum: int | None = None, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    if minimum is not None and value < minimum:
        return default
    if maximum is not None and value > maximum:
        return default
    return value


def _as_choice(value: Any, default: str, choices: tuple[str, ...]) -> str:
    if isinstance(value, str) and value in choices:
        return value
    return default


def _as_sort_dict(value: Any, default: dict[str, str], max_items: int = 32) -> dict[str, str]:
    if not isinstance(value, dict):
        return dict(default)
    out: dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not k:
            continue
        if v not in SORT_MODES:
            continue
        out[k] = v
        if len(out) >= max_items:
            break
    return out


def normalize_settings(raw: dict[str, Any] | None) -> dict[str, Any]:
    raw = raw or {}
    normalized = dict(DEFAULT_SETTINGS)
    normalized["supabase_url"] = _as_str(raw.get("supabase_url"), DEFAULT_SETTINGS["supabase_url"]).rstrip("/")
    normalized["supabase_anon_key"] = _as_str(raw.get("supabase_anon_key"), DEFAULT_SETTINGS["supabase_anon_key"])
    normalized["request_timeout"] = _as_int(raw.get("request_timeout"), DEFAULT_SETTINGS["request_timeout"], minimum=1, maximum=120)
    # Row caps are fixed by the list screens; only smaller values are honoured.
    normalized["list_limit"] = _as_int(raw.get("list_limit"), DEFAULT_SETTINGS["list_limit"], minimum=1, maximum=100)
    normalized["progress_limit"] = _as_int(raw.get("progress_limit"), DEFAULT_SETTINGS["progress_limit"], minimum=1, maximum=50)
    normalized["view_mode"] = _as_choice(raw.get("view_mode"), DEFAULT_SETTINGS["view_mode"], VIEW_MODES)
    normalized["last_category"] = _as_str(raw.get("last_category"), DEFAULT_SETTINGS["last_category"])
    normalized["last_sort"] = _as_sort_dict(raw.get("last_sort"), DEFAULT_SETTINGS["last_sort"])
    normalized["token_file"] = _as_str(raw.get("token_file"), DEFAULT_SETTINGS["token_file"])
    normalized["settings_version"] = CURRENT_SETTINGS_VERSION
    return normalized


def apply_env_overrides(settings: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay deployment values from the environment:
    - MYNA_SUPABASE_URL
    - MYNA_SUPABASE_ANON_KEY
    - MYNA_REQUEST_TIMEOUT (seconds)
    """
    out = dict(settings)
    url = os.getenv("MYNA_SUPABASE_URL", "").strip()
    if url:
        out["supabase_url"] = url
    key = os.getenv("MYNA_SUPABASE_ANON_KEY", "").strip()
    if key:
        out["supabase_anon_key"] = key
    raw_timeout = os.getenv("MYNA_REQUEST_TIMEOUT", "").strip()
    if raw_timeout:
        try:
            out["request_timeout"] = int(raw_timeout)
        except ValueError:
            pass
    return normalize_settings(out)


def load_settings(path: str) -> dict[str, Any]:
    if not os.path.exists(path):
        return dict(DEFAULT_SETTINGS)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return dict(DEFAULT_SETTINGS)

    if not isinstance(data, dict):
        return dict(DEFAULT_SETTINGS)
    return normalize_settings(data)


def save_settings(path: str, settings: dict[str, Any]) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    data = normalize_settings(settings)
    temp_file = f"{path}.tmp"
    with open(temp_file, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(temp_file, path)
