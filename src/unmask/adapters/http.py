"""Blocking JSON-over-HTTP helper shared by the reference adapters."""

from __future__ import annotations

import json
from typing import Any, Mapping
from urllib import error, parse, request

import structlog

_logger = structlog.get_logger(__name__)


class HttpError(RuntimeError):
    """Non-2xx response or transport failure."""

    def __init__(self, message: str, *, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


def build_url(base_url: str, path: str, query: Mapping[str, Any] | None = None) -> str:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    if query:
        pairs = {key: value for key, value in query.items() if value is not None}
        url = f"{url}?{parse.urlencode(pairs)}"
    return url


def request_json(
    url: str,
    *,
    method: str = "GET",
    payload: Any = None,
    headers: Mapping[str, str] | None = None,
    timeout: float = 30.0,
) -> Any:
    """Send a request and decode the JSON body; an empty body decodes to ``None``."""
    data = None
    all_headers = {"Accept": "application/json", **(headers or {})}
    if payload is not None:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        all_headers.setdefault("Content-Type", "application/json")

    req = request.Request(url, data=data, headers=all_headers, method=method)
    try:
        with request.urlopen(req, timeout=timeout) as resp:
            body = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
        _logger.warning("http.bad_status", url=url, status=exc.code)
        raise HttpError(f"{method} {url} failed with {exc.code}", status=exc.code, body=body) from exc
    except error.URLError as exc:
        _logger.warning("http.request_failed", url=url, error=str(exc.reason))
        raise HttpError(f"{method} {url} failed: {exc.reason}") from exc

    if not body.strip():
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise HttpError(f"{method} {url} returned invalid JSON", body=body) from exc


__all__ = ["HttpError", "build_url", "request_json"]
