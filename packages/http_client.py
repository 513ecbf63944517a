"""Blocking JSON-over-HTTP helpers shared by the source and sink clients."""
from __future__ import annotations

import http.client
import json
from typing import Any, Dict, Optional
from urllib import error, parse, request

from packages.config import HTTP_TIMEOUT_SEC


class HttpError(Exception):
    """A failed HTTP exchange.

    ``status`` is None when no response was received at all. ``payload`` holds
    the decoded JSON body when the server sent one.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = "", payload: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body
        self.payload = payload


def _decode(body: str) -> Any:
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return None


class HttpClient:
    def __init__(self, timeout: float = HTTP_TIMEOUT_SEC):
        self.timeout = timeout

    def get_json(self, url: str, headers: Optional[Dict[str, str]] = None, params: Optional[dict] = None) -> Any:
        if params:
            url = f"{url}?{parse.urlencode(params)}"
        return self._send(request.Request(url, headers=headers or {}, method="GET"))

    def post_json(self, url: str, payload: Any, headers: Optional[Dict[str, str]] = None) -> Any:
        all_headers = {"Content-Type": "application/json"}
        all_headers.update(headers or {})
        body = json.dumps(payload).encode("utf-8")
        return self._send(request.Request(url, data=body, headers=all_headers, method="POST"))

    def post_form(self, url: str, data: dict, headers: Optional[Dict[str, str]] = None) -> Any:
        all_headers = {"Content-Type": "application/x-www-form-urlencoded"}
        all_headers.update(headers or {})
        body = parse.urlencode(data).encode("utf-8")
        return self._send(request.Request(url, data=body, headers=all_headers, method="POST"))

    def _send(self, req: request.Request) -> Any:
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                status = resp.status
                body = resp.read().decode("utf-8", errors="replace")
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise HttpError(
                f"HTTP {exc.code} from {req.get_method()} {req.full_url}",
                status=exc.code,
                body=body,
                payload=_decode(body),
            ) from exc
        except (error.URLError, http.client.HTTPException, TimeoutError, OSError) as exc:
            raise HttpError(f"{req.get_method()} {req.full_url} failed: {exc}") from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise HttpError(
                f"Response from {req.get_method()} {req.full_url} is not valid JSON",
                status=status,
                body=body,
            ) from exc
