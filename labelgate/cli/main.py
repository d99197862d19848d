from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from pydantic import ValidationError

from labelgate.api.models import AdmissionReviewIn, AdmissionReviewOut
from labelgate.api.server import (
    DEFAULT_CERT_FILE,
    DEFAULT_CONFIG_PATH,
    DEFAULT_KEY_FILE,
    DEFAULT_PORT,
    ServerConfig,
    create_app,
)
from labelgate.cli.client_cmds import register_client_commands
from labelgate.core.policy_engine.policy_exceptions import PolicyConfigurationError, ReviewFailure
from labelgate.core.policy_engine.policy_store import load_policy_store
from labelgate.core.review import AdmissionReviewer

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

log = logging.getLogger("labelgate.main")


def configure_logging(level: str) -> None:
    """Install the console handler and set the labelgate logger tree to level."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("labelgate").setLevel(level.upper())


def build_uvicorn_config(app, cfg: ServerConfig):
    """Translate a ServerConfig into a uvicorn.Config serving app over TLS.

    SIGINT/SIGTERM make uvicorn stop accepting connections and drain
    in-flight requests for at most grace_period_sec.
    """

    import uvicorn

    return uvicorn.Config(
        app,
        host=cfg.host,
        port=int(cfg.port),
        ssl_certfile=cfg.cert_file,
        ssl_keyfile=cfg.key_file,
        log_level=cfg.log_level,
        timeout_keep_alive=int(cfg.keep_alive_sec),
        timeout_graceful_shutdown=int(cfg.grace_period_sec),
    )


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the admission webhook over TLS."""

    try:
        import uvicorn
    except Exception as e:
        print(f"error: uvicorn is required to serve the webhook: {e}", file=sys.stderr)
        return 2

    configure_logging(args.log_level)

    try:
        cfg = ServerConfig(
            host=args.host,
            port=int(args.port),
            cert_file=args.cert_file,
            key_file=args.key_file,
            config_path=args.config,
            log_level=args.log_level,
            grace_period_sec=int(args.grace_period),
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        policy = load_policy_store(cfg.config_path)
    except PolicyConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    log.info(
        "starting labelgate on %s:%d with %d match label(s)",
        cfg.host,
        cfg.port,
        len(policy),
    )
    app = create_app(policy)
    server = uvicorn.Server(build_uvicorn_config(app, cfg))
    server.run()
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Review one AdmissionReview file offline and print the response.

    Exit status: 0 allowed, 1 denied, 2 failure.
    """

    configure_logging(args.log_level)

    try:
        policy = load_policy_store(args.config)
    except PolicyConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        envelope = AdmissionReviewIn.model_validate_json(Path(args.review).read_bytes())
    except OSError as e:
        print(f"error: failed to read {args.review}: {e}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print(f"error: invalid admission review: {e}", file=sys.stderr)
        return 2

    review_request = envelope.request.to_review_request()
    try:
        verdict = AdmissionReviewer(policy).review(review_request)
    except ReviewFailure as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    out = AdmissionReviewOut.from_verdict(
        verdict, uid=review_request.uid, api_version=envelope.api_version
    )
    print(json.dumps(out.to_payload(), indent=2, sort_keys=True))
    return 0 if verdict.allowed else 1


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="labelgate", description="labelgate admission webhook")
    sub = p.add_subparsers(dest="cmd", required=True)

    sv = sub.add_parser("serve", help="Run the admission webhook over TLS")
    sv.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    sv.add_argument(
        "-p", "--port", type=int, default=DEFAULT_PORT, help=f"Listen port (default: {DEFAULT_PORT})"
    )
    sv.add_argument(
        "-c", "--cert-file", default=DEFAULT_CERT_FILE, help="Server certificate path"
    )
    sv.add_argument("-k", "--key-file", default=DEFAULT_KEY_FILE, help="Server key path")
    sv.add_argument(
        "-f", "--config", default=DEFAULT_CONFIG_PATH, help="match-labels config file path"
    )
    sv.add_argument("--log-level", default="info", help="Log level")
    sv.add_argument(
        "--grace-period",
        type=int,
        default=15,
        help="Seconds to drain in-flight requests on shutdown",
    )
    sv.set_defaults(func=cmd_serve)

    ck = sub.add_parser("check", help="Review an AdmissionReview JSON file offline")
    ck.add_argument("review", help="Path to AdmissionReview JSON file")
    ck.add_argument(
        "-f", "--config", default=DEFAULT_CONFIG_PATH, help="match-labels config file path"
    )
    ck.add_argument("--log-level", default="warning", help="Log level")
    ck.set_defaults(func=cmd_check)

    register_client_commands(sub)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
