from __future__ import annotations

import json
import ssl
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    Treat `body_bytes` as untrusted.
    """

    status: int
    headers: Mapping[str, str]
    body_bytes: bytes

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))


class LabelgateHttpClient:
    """Minimal stdlib-only HTTP client for the labelgate webhook.

    Webhooks usually run with a cluster-internal CA; pass ca_file to trust
    it, or insecure=True to skip verification for local debugging only.
    """

    def __init__(
        self,
        base_url: str,
        *,
        ca_file: Optional[str] = None,
        insecure: bool = False,
        timeout: float = 15.0,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.ca_file = ca_file
        self.insecure = bool(insecure)
        self.timeout = float(timeout)

    def get(self, path: str) -> HttpResponse:
        """HTTP GET."""

        url = urljoin(self.base_url, path.lstrip("/"))
        req = Request(url=url, method="GET")
        return self._do_request(req)

    def post_json(self, path: str, body: bytes) -> HttpResponse:
        """HTTP POST of an already-serialized JSON body."""

        url = urljoin(self.base_url, path.lstrip("/"))
        req = Request(url=url, data=body, method="POST")
        req.add_header("Content-Type", "application/json")
        req.add_header("Content-Length", str(len(body)))
        return self._do_request(req)

    def ping(self) -> HttpResponse:
        return self.get("/v1/ping")

    def review(self, body: bytes) -> HttpResponse:
        return self.post_json("/v1/api/admission/review", body)

    def _ssl_context(self) -> ssl.SSLContext:
        ctx = ssl.create_default_context(cafile=self.ca_file)
        if self.insecure:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx

    def _do_request(self, req: Request) -> HttpResponse:
        """Execute a request; HTTP error statuses are returned, not raised."""

        try:
            with urlopen(req, context=self._ssl_context(), timeout=self.timeout) as resp:
                body = resp.read()
                headers = {k: v for k, v in resp.headers.items()}
                return HttpResponse(status=int(resp.status), headers=headers, body_bytes=body)
        except HTTPError as e:
            body = e.read() if hasattr(e, "read") else b""
            headers = dict(getattr(e, "headers", {}) or {})
            return HttpResponse(
                status=int(getattr(e, "code", 0) or 0), headers=headers, body_bytes=body
            )
        except URLError as e:
            raise RuntimeError(f"network error: {e}") from e
