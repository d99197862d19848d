from __future__ import annotations

import logging
import re
import time
from typing import Callable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("labelgate.api")


_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]+")


def request_id_of(request: Request) -> str:
    """Return the id RequestIdMiddleware assigned to request."""
    return request.state.request_id


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Give every request an id that ties its review log line to the response.

    Header:
      - X-Request-ID

    The id is written verbatim into log messages, so a client supplied
    value is kept only if it is short and made of [A-Za-z0-9._:-];
    anything else is replaced with a fresh uuid4 hex.
    """

    def __init__(self, app, *, header_name: str = "X-Request-ID", max_len: int = 128):
        super().__init__(app)
        self._header_name = header_name
        self._max_len = max_len

    def _accept(self, rid: Optional[str]) -> bool:
        return bool(rid) and len(rid) <= self._max_len and bool(_SAFE_REQUEST_ID.fullmatch(rid))

    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get(self._header_name)
        if not self._accept(rid):
            rid = uuid4().hex
        request.state.request_id = rid
        response: Response = await call_next(request)
        response.headers[self._header_name] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Structured access logging.

    Request bodies are never logged; resources under review can carry
    secrets in annotations or env.
    """

    def __init__(self, app, *, logger: Optional[logging.Logger] = None):
        super().__init__(app)
        self._log = logger if logger is not None else log

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            dur_ms = int((time.monotonic() - start) * 1000)
            rid = getattr(request.state, "request_id", None)
            status_code = getattr(response, "status_code", None)

            self._log.info(
                "api_request method=%s path=%s status=%s duration_ms=%d",
                request.method,
                request.url.path,
                status_code,
                dur_ms,
                extra={
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": dur_ms,
                },
            )
