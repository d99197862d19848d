from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.requests import Request

from labelgate.api.middleware import AccessLogMiddleware, RequestIdMiddleware, request_id_of
from labelgate.api.models import AdmissionReviewIn, AdmissionReviewOut, ApiError
from labelgate.core.decoding import KindRegistry
from labelgate.core.policy_engine.policy_exceptions import ReviewFailure
from labelgate.core.policy_engine.policy_store import PolicyStore, load_policy_store
from labelgate.core.review import AdmissionReviewer

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

log = logging.getLogger("labelgate.api")

PING_PATH = "/v1/ping"
REVIEW_PATH = "/v1/api/admission/review"

DEFAULT_PORT = 8443
DEFAULT_CERT_FILE = "/certs/server.crt"
DEFAULT_KEY_FILE = "/certs/server-key.pem"
DEFAULT_CONFIG_PATH = "/labelgate-config.json"


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Startup parameters for the webhook process.

    Built once (from argv or the environment) and passed explicitly to
    whatever needs it. Timeouts apply at the transport boundary only;
    a single review is never timed out.
    """

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    cert_file: str = DEFAULT_CERT_FILE
    key_file: str = DEFAULT_KEY_FILE
    config_path: str = DEFAULT_CONFIG_PATH
    log_level: str = "info"
    grace_period_sec: int = 15
    keep_alive_sec: int = 60

    def __post_init__(self) -> None:
        if not 0 <= int(self.port) <= 65535:
            raise ValueError(f"Invalid port specified: {self.port}")
        if int(self.grace_period_sec) < 0:
            raise ValueError("grace period must be >= 0")


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def config_from_env() -> ServerConfig:
    """Build a ServerConfig from LABELGATE_* environment variables."""

    return ServerConfig(
        port=_env_int("LABELGATE_PORT", DEFAULT_PORT),
        cert_file=os.environ.get("LABELGATE_CERT_FILE") or DEFAULT_CERT_FILE,
        key_file=os.environ.get("LABELGATE_KEY_FILE") or DEFAULT_KEY_FILE,
        config_path=os.environ.get("LABELGATE_CONFIG") or DEFAULT_CONFIG_PATH,
        log_level=(os.environ.get("LABELGATE_LOG_LEVEL") or "info").lower(),
        grace_period_sec=_env_int("LABELGATE_GRACE_PERIOD_SEC", 15),
    )


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the {"status", "Message"} error body used for 4xx/5xx replies."""

    body = ApiError(status=HTTPStatus(status_code).phrase, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def _validation_summary(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def create_app(
    policy: PolicyStore,
    *,
    registry: Optional[KindRegistry] = None,
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    """Create the FastAPI app serving admission reviews for policy."""

    api_log = logger if logger is not None else log

    reviewer = AdmissionReviewer(
        policy,
        registry=registry,
        logger=api_log.getChild("review") if logger is not None else None,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        api_log.info("labelgate is ready to protect admission requests")
        yield
        api_log.info("stopped serving admission requests")

    app = FastAPI(title="labelgate", version="0.1.0", lifespan=lifespan)
    app.state.policy = policy
    app.state.reviewer = reviewer

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware, logger=api_log)

    @app.get(PING_PATH)
    async def ping() -> JSONResponse:
        body = ApiError(status=HTTPStatus.OK.phrase, message="PONG")
        return JSONResponse(status_code=200, content=body.model_dump(by_alias=True))

    @app.post(REVIEW_PATH)
    async def admission_review(request: Request) -> JSONResponse:
        """Review one AdmissionReview envelope.

        - empty or unreadable body: 500
        - body that is not a valid envelope: 400
        - resource body that does not decode for its kind: 500
        - otherwise: 200 with the verdict
        """

        request_id = request_id_of(request)

        try:
            body = await request.body()
        except Exception as e:
            api_log.error("failed to read admission review request: %s", e)
            return error_response(
                500, f"failed to read admission review request. Err: {e}"
            )

        if not body.strip():
            api_log.error("failed to read admission review request: empty body")
            return error_response(
                500, "failed to read admission review request. Err: empty request body"
            )

        try:
            envelope = AdmissionReviewIn.model_validate_json(body)
        except ValidationError as e:
            summary = _validation_summary(e)
            api_log.error(
                "failed to unmarshal admission review request request_id=%s: %s",
                request_id,
                summary,
            )
            return error_response(
                400, f"failed to unmarshal admission review request. Err: {summary}"
            )

        review_request = envelope.request.to_review_request()
        try:
            verdict = reviewer.review(review_request)
        except ReviewFailure as e:
            api_log.error(
                "failed to review request request_id=%s kind=%s name=%s: %s",
                request_id,
                review_request.kind,
                review_request.name,
                e,
            )
            return error_response(500, f"failed to review request. Err: {e}")

        api_log.info(
            "admission_review request_id=%s kind=%s name=%s verdict=%s",
            request_id,
            review_request.kind,
            review_request.name,
            verdict.status.value.lower(),
            extra={
                "request_id": request_id,
                "uid": review_request.uid,
                "kind": review_request.kind,
                "resource_name": review_request.name,
                "namespace": review_request.namespace,
                "decision": verdict.to_dict(),
            },
        )

        out = AdmissionReviewOut.from_verdict(
            verdict, uid=review_request.uid, api_version=envelope.api_version
        )
        return JSONResponse(status_code=200, content=out.to_payload())

    return app


def app_from_env() -> FastAPI:
    """Factory used by `uvicorn --factory labelgate.api.server:app_from_env`.

    Reads:
    - LABELGATE_CONFIG: path of the match-labels JSON file
    - LABELGATE_LOG_LEVEL: level of the labelgate logger tree (default INFO)

    """

    cfg = config_from_env()
    logging.getLogger("labelgate").setLevel(cfg.log_level.upper())
    return create_app(load_policy_store(cfg.config_path))
