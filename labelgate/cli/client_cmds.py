from __future__ import annotations

import argparse
import json
import sys

from labelgate.client.http import HttpResponse, LabelgateHttpClient


def _print_json(obj: object) -> None:
    """Print JSON to stdout."""
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _client(args: argparse.Namespace) -> LabelgateHttpClient:
    return LabelgateHttpClient(
        args.url, ca_file=args.ca_file, insecure=args.insecure, timeout=args.timeout
    )


def _report(r: HttpResponse) -> int:
    if r.status >= 400:
        print(r.body_bytes.decode("utf-8", errors="replace"), file=sys.stderr)
        return 2
    _print_json(r.json())
    return 0


def cmd_client_ping(args: argparse.Namespace) -> int:
    """Call GET /v1/ping."""
    return _report(_client(args).ping())


def cmd_client_review(args: argparse.Namespace) -> int:
    """POST an AdmissionReview file to /v1/api/admission/review."""
    with open(args.file, "rb") as f:
        body = f.read()
    return _report(_client(args).review(body))


def register_client_commands(sub: argparse._SubParsersAction) -> None:
    """Register the `client` command."""

    client = sub.add_parser("client", help="Talk to a running labelgate webhook")
    client.add_argument("--url", default="https://127.0.0.1:8443", help="Base webhook URL")
    client.add_argument("--ca-file", default=None, help="CA bundle used to verify the server")
    client.add_argument(
        "--insecure", action="store_true", help="Skip TLS verification (local debugging only)"
    )
    client.add_argument("--timeout", type=float, default=15.0, help="Request timeout (seconds)")
    csub = client.add_subparsers(dest="client_cmd", required=True)

    ping = csub.add_parser("ping", help="Check webhook liveness")
    ping.set_defaults(func=cmd_client_ping)

    rv = csub.add_parser("review", help="Submit an AdmissionReview JSON file")
    rv.add_argument("file", help="Path to AdmissionReview JSON file")
    rv.set_defaults(func=cmd_client_review)
