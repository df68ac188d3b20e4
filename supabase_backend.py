import json
import logging
import os
import re
import time
from urllib.parse import quote

import requests

from app_errors import BackendError, RemoteQueryError, SchemaError, TransportError, classify_exception

logger = logging.getLogger(__name__)

FILTER_OPS = ("eq", "neq", "lt", "lte", "gt", "gte", "in", "is")

_IN_RESERVED = re.compile(r'[,()"\s]')


def _encode_value(value):
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _encode_in_item(value):
    text = _encode_value(value)
    if isinstance(value, str) and _IN_RESERVED.search(text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def encode_filters(filters):
    """
    Translate (column, op, value) triples into row API query params, e.g.
    ("status", "eq", "approved") -> ("status", "eq.approved")
    ("id", "in", [3, 9])         -> ("id", "in.(3,9)")
    """
    params = []
    for column, op, value in filters or ():
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if op == "in":
            inner = ",".join(_encode_in_item(v) for v in value)
            params.append((column, f"in.({inner})"))
        else:
            params.append((column, f"{op}.{_encode_value(value)}"))
    return params


def _compact_select(select):
    return re.sub(r"\s+", "", select or "*")


class SupabaseBackend:
    """
    Thin client for the hosted backend: row queries, auth and file storage.

    Every call is a single attempt. Transport failures raise TransportError,
    error responses raise SchemaError carrying the backend's code/message.
    """

    def __init__(self, base_url, anon_key, timeout=15, session=None, token_file=None):
        self.base_url = str(base_url or "").rstrip("/")
        self.anon_key = str(anon_key or "")
        self.timeout = timeout
        self.http = session if session is not None else requests.Session()
        self.token_file = os.path.expanduser(token_file or "~/.cache/myna/session.json")
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.user = None

    @classmethod
    def from_settings(cls, settings, session=None):
        return cls(
            settings.get("supabase_url"),
            settings.get("supabase_anon_key"),
            timeout=settings.get("request_timeout", 15),
            session=session,
            token_file=settings.get("token_file"),
        )

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _headers(self, extra=None):
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _error_from_response(self, resp):
        body = None
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}
        code = body.get("code") or body.get("error_code") or resp.status_code
        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or (resp.text or "").strip()
            or f"HTTP {resp.status_code}"
        )
        return SchemaError(code, message, details=body.get("details"), hint=body.get("hint"))

    def _request(self, method, path, params=None, json_body=None, data=None, headers=None):
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(
                method,
                url,
                params=params,
                json=json_body,
                data=data,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportError(f"Network error calling {path}: {e}") from e
        except requests.RequestException as e:
            raise BackendError(f"Request to {path} failed: {e}") from e

        if resp.status_code >= 400:
            err = self._error_from_response(resp)
            logger.debug("Backend error %s %s -> %s", method, path, err)
            raise err
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON response from {path}: {e}") from e

    def _rows(self, payload, path):
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise BackendError(f"Unexpected response shape from {path}: {type(payload).__name__}")
        return payload

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def query(self, table, filters=(), order=None, limit=None, select="*"):
        params = [("select", _compact_select(select))]
        params.extend(encode_filters(filters))
        if order:
            column, ascending = order
            params.append(("order", f"{column}.{'asc' if ascending else 'desc'}"))
        if limit is not None:
            params.append(("limit", str(int(limit))))
        path = f"/rest/v1/{table}"
        rows = self._rows(self._request("GET", path, params=params), path)
        logger.debug("query %s -> %s rows", table, len(rows))
        return rows

    def query_in_filter(self, table, column, ids, filters=(), order=None, limit=None, select="*"):
        ids = list(ids or [])
        if not ids:
            return []
        merged = [(column, "in", ids)]
        merged.extend(filters or ())
        return self.query(table, merged, order=order, limit=limit, select=select)

    def insert(self, table, row, select="*"):
        path = f"/rest/v1/{table}"
        payload = self._request(
            "POST",
            path,
            params=[("select", _compact_select(select))],
            json_body=row,
            headers={"Prefer": "return=representation"},
        )
        return self._rows(payload, path)

    def update(self, table, values, filters, select="*"):
        if not filters:
            raise ValueError("update requires at least one filter")
        path = f"/rest/v1/{table}"
        params = [("select", _compact_select(select))]
        params.extend(encode_filters(filters))
        payload = self._request(
            "PATCH",
            path,
            params=params,
            json_body=values,
            headers={"Prefer": "return=representation"},
        )
        return self._rows(payload, path)

    def delete(self, table, filters):
        if not filters:
            raise ValueError("delete requires at least one filter")
        path = f"/rest/v1/{table}"
        payload = self._request(
            "DELETE",
            path,
            params=encode_filters(filters),
            headers={"Prefer": "return=representation"},
        )
        return self._rows(payload, path)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def upload(self, bucket, path, data, content_type="application/octet-stream", upsert=False):
        object_path = quote(path.lstrip("/"))
        self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{object_path}",
            data=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
        )
        logger.info("Uploaded %s bytes to %s/%s", len(data or b""), bucket, path)
        return path

    def remove(self, bucket, paths):
        paths = [p for p in (paths or []) if p]
        if not paths:
            return []
        payload = self._request("DELETE", f"/storage/v1/object/{bucket}", json_body={"prefixes": paths})
        return payload or []

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _apply_auth(self, data):
        if not isinstance(data, dict) or not data.get("access_token"):
            return False
        self.access_token = data.get("access_token")
        self.refresh_token = data.get("refresh_token")
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in") is not None:
            expires_at = int(time.time()) + int(data.get("expires_in"))
        self.expires_at = expires_at
        user = data.get("user")
        if isinstance(user, dict):
            self.user = user
        return True

    def sign_in(self, email, password):
        data = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
        )
        if not self._apply_auth(data):
            raise BackendError("Login response did not contain a session")
        self.save_session()
        logger.info("Signed in user %s", self.current_user_id())
        return self.user

    def sign_up(self, email, password, **metadata):
        data = self._request(
            "POST",
            "/auth/v1/signup",
            json_body={"email": email, "password": password, "data": metadata},
        )
        if self._apply_auth(data):
            self.save_session()
        elif isinstance(data, dict):
            # Email confirmation pending: user object only, no session yet.
            self.user = data.get("user") if isinstance(data.get("user"), dict) else data
        return self.user

    def refresh_session(self):
        if not self.refresh_token:
            return False
        data = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json_body={"refresh_token": self.refresh_token},
        )
        if not self._apply_auth(data):
            return False
        self.save_session()
        return True

    def fetch_user(self):
        data = self._request("GET", "/auth/v1/user")
        if isinstance(data, dict) and data.get("id"):
            self.user = data
            return data
        return None

    def current_user_id(self):
        if not isinstance(self.user, dict):
            return None
        return self.user.get("id")

    def save_session(self):
        parent = os.path.dirname(self.token_file)
        if parent:
            os.makedirs(parent, exist_ok=True)
        data = {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "user": self.user,
        }

        temp_file = f"{self.token_file}.tmp"
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(temp_file, self.token_file)
        os.chmod(self.token_file, 0o600)

    def try_load_session(self):
        if not os.path.exists(self.token_file):
            return False
        try:
            with open(self.token_file, "r", encoding="utf-8") as f:
                d = json.load(f)

            required = ("access_token", "refresh_token")
            if not isinstance(d, dict) or not all(d.get(k) for k in required):
                logger.warning("Session file invalid: missing required fields.")
                return False

            self.access_token = d["access_token"]
            self.refresh_token = d["refresh_token"]
            self.expires_at = d.get("expires_at")
            self.user = d.get("user") if isinstance(d.get("user"), dict) else None

            if self.expires_at is not None and int(self.expires_at) <= int(time.time()) + 30:
                if not self.refresh_session():
                    return False
            return self.fetch_user() is not None
        except (OSError, ValueError, TypeError, RemoteQueryError) as e:
            logger.warning("Session load error [%s]: %s", classify_exception(e), e)
            self._clear_auth()
        return False

    def _clear_auth(self):
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.user = None

    def sign_out(self):
        if self.access_token:
            try:
                self._request("POST", "/auth/v1/logout")
            except RemoteQueryError as e:
                logger.warning("Remote logout failed [%s]: %s", classify_exception(e), e)
        if os.path.exists(self.token_file):
            try:
                os.remove(self.token_file)
            except OSError as e:
                logger.warning("Failed to remove token file %s: %s", self.token_file, e)
        self._clear_auth()
