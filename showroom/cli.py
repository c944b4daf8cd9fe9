"""Issue a single request against the configured backend.

Usage:

    showroom-request GET /auth/me --token "$TOKEN"
    showroom-request POST /auth/login --body '{"email": "a@b.c", "password": "x"}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Sequence

import httpx
from rich.console import Console

from showroom.config import Settings, configure_logging, get_settings
from showroom.net.errors import ApiError
from showroom.net.http import HTTP_METHODS, RequestService

console = Console()


def _parse_query(items: Sequence[str]) -> dict[str, str]:
    query: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Invalid --query value {item!r}; expected key=value.")
        query[key] = value
    return query


def _parse_body(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        # Non-JSON bodies are sent verbatim.
        return raw


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send one request through the Showroom request service.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("method", type=str.upper, choices=sorted(HTTP_METHODS), help="HTTP method.")
    parser.add_argument("path", help="Path relative to the API base URL, or an absolute URL.")
    parser.add_argument("--query", "-q", action="append", default=[], help="Query parameter as key=value.")
    parser.add_argument("--body", "-d", default=None, help="Request body (JSON or raw text).")
    parser.add_argument("--token", default=None, help="Bearer token for the Authorization header.")
    parser.add_argument("--base-url", default=None, help="Override API_BASE_URL.")
    parser.add_argument("--timeout-ms", type=int, default=None, help="Override API_TIMEOUT.")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL.")
    return parser


async def _run(
    args: argparse.Namespace,
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    overrides: dict[str, Any] = {}
    if args.base_url:
        overrides["api_base_url"] = args.base_url
    if args.timeout_ms is not None:
        overrides["api_timeout_ms"] = args.timeout_ms
    if overrides:
        settings = settings.model_copy(update=overrides)

    async with RequestService.from_settings(settings, transport=transport) as service:
        if args.token:
            service.set_auth_token(args.token)
        try:
            result = await service.execute(
                args.method,
                args.path,
                query=_parse_query(args.query) or None,
                body=_parse_body(args.body),
            )
        except ApiError as exc:
            console.print_json(data=exc.to_dict())
            return 1

    if isinstance(result, (dict, list)):
        console.print_json(data=result)
    elif result is not None:
        console.print(result, markup=False)
    return 0


def main(
    argv: Sequence[str] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    args = _build_arg_parser().parse_args(list(argv) if argv is not None else None)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)
    try:
        return asyncio.run(_run(args, settings, transport=transport))
    except argparse.ArgumentTypeError as exc:
        console.log(f"[bold red]Invalid arguments[/] {exc}")
        return 2
    except KeyboardInterrupt:
        console.log("[yellow]Keyboard interrupt received[/]; aborting request.")
        return 130


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
