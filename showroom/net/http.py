"""Async request service built on top of httpx.

`RequestService` owns the base URL, default headers, timeout and bearer token
used by every call. It normalizes failures into `ApiError` so callers (the
hooks in `showroom.hooks`, the auth session, scripts) only need to handle a
single error type.

Notes:
    - One `RequestService` per backend. Construct it explicitly (or via
      `RequestService.from_settings`) and pass it to consumers.
    - The timeout covers the wait for response headers only. Once headers
      arrive the body is read without a deadline.
    - A caller-supplied `signal` (an `asyncio.Event`) aborts the call with
      `RequestAborted`, never with the timeout error.
"""

from __future__ import annotations

import asyncio
import json
import threading
from typing import TYPE_CHECKING, Any, Mapping

import httpx
from loguru import logger

from showroom.config import DEFAULT_API_HEADERS
from showroom.net.errors import ApiError, RequestAborted
from showroom.net.retry import RetryPolicy
from showroom.net.urls import QueryParams, build_url

if TYPE_CHECKING:
    from showroom.config import Settings

__all__ = ["HTTP_METHODS", "RequestService"]

log = logger.bind(module="net.http")

HTTP_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

_MIN_TIMEOUT_MS = 1


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set a header, replacing any existing spelling of the same name."""
    for key in [k for k in headers if k.lower() == name.lower()]:
        del headers[key]
    headers[name] = value


async def _discard(task: "asyncio.Future[httpx.Response]") -> None:
    """Cancel an in-flight send and release its response if it raced us."""
    task.cancel()
    await asyncio.wait({task})
    if task.cancelled() or task.exception() is not None:
        return
    await task.result().aclose()


class RequestService:
    """Typed HTTP client with default headers, bearer auth and a timeout guard."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_ms: int = 15000,
        default_headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        base_url = (base_url or "").strip()
        if not base_url:
            raise ValueError("base_url must be non-empty.")
        self.base_url = base_url
        self.timeout_ms = max(_MIN_TIMEOUT_MS, int(timeout_ms))
        self.default_headers: dict[str, str] = dict(
            DEFAULT_API_HEADERS if default_headers is None else default_headers
        )
        self.transport = transport
        self.retry = retry or RetryPolicy()

        self._auth_token: str | None = None
        self._token_lock = threading.Lock()
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "RequestService":
        return cls(
            base_url=settings.api_base_url,
            timeout_ms=settings.api_timeout_ms,
            default_headers=settings.api_default_headers,
            transport=transport,
            retry=RetryPolicy(
                max_attempts=settings.api_retry_max_attempts,
                backoff_seconds=settings.api_retry_backoff_seconds,
            ),
        )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    # Token slot -----------------------------------------------------------

    @property
    def auth_token(self) -> str | None:
        with self._token_lock:
            return self._auth_token

    def set_auth_token(self, token: str | None) -> None:
        """Replace the bearer token used by requests issued after this call."""
        with self._token_lock:
            self._auth_token = token or None

    def clear_auth_token(self) -> None:
        with self._token_lock:
            self._auth_token = None

    def compose_headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return defaults merged with `extra`, plus the bearer header when a token is set."""
        headers: dict[str, str] = dict(self.default_headers)
        for key, value in (extra or {}).items():
            _set_header(headers, key, value)
        token = self.auth_token
        if token:
            # Overrides may not drop or replace the bearer header.
            _set_header(headers, "Authorization", f"Bearer {token}")
        return headers

    # Client lifecycle -----------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # `_send_with_deadline` is the only timer; httpx must not time out body reads.
            kwargs: dict[str, object] = {
                "timeout": httpx.Timeout(None),
                "follow_redirects": False,
            }
            if self.transport is not None:
                kwargs["transport"] = self.transport
            self._client = httpx.AsyncClient(**kwargs)  # type: ignore[arg-type]
        return self._client

    async def aclose(self) -> None:
        """Close the pooled `httpx.AsyncClient`."""
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()

    async def __aenter__(self) -> "RequestService":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.aclose()

    # Request execution ----------------------------------------------------

    async def execute(
        self,
        method: str,
        path: str,
        *,
        query: QueryParams | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        """Send a request and return the parsed response body.

        Raises:
            ApiError: On timeout, transport failure or a non-2xx response.
            RequestAborted: When `signal` is set before a response arrives.
        """
        method = (method or "GET").strip().upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method!r}")

        if not self.retry.applies_to(method):
            return await self._execute_once(method, path, query=query, body=body, headers=headers, signal=signal)

        result: Any = None
        async for attempt in self.retry.retrying(log=log, operation=f"{method} {path}"):
            with attempt:
                result = await self._execute_once(
                    method, path, query=query, body=body, headers=headers, signal=signal
                )
        return result

    async def _execute_once(
        self,
        method: str,
        path: str,
        *,
        query: QueryParams | None,
        body: Any,
        headers: Mapping[str, str] | None,
        signal: asyncio.Event | None,
    ) -> Any:
        url = build_url(self.base_url, path, query)
        request_headers = self.compose_headers(headers)

        content: str | bytes | None = None
        if body is not None and method != "GET":
            content = body if isinstance(body, (str, bytes)) else json.dumps(body)

        client = self._get_client()
        request = client.build_request(method, url, headers=request_headers, content=content)
        log.debug("{} {}", method, url)

        try:
            response = await self._send_with_deadline(client, request, signal=signal)
        except httpx.TimeoutException as exc:
            log.warning("{} {} timed out after {} ms", method, url, self.timeout_ms)
            raise ApiError.timeout(url=url, method=method) from exc
        except httpx.TransportError as exc:
            log.warning("{} {} failed: {}", method, url, exc)
            raise ApiError(f"Network error: {exc}", status=0, url=url, method=method) from exc
        except asyncio.TimeoutError:
            log.warning("{} {} timed out after {} ms", method, url, self.timeout_ms)
            raise ApiError.timeout(url=url, method=method) from None
        except RequestAborted as exc:
            exc.url, exc.method = url, method
            log.debug("{} {} aborted by caller", method, url)
            raise

        try:
            parsed = await self._read_body(response)
        finally:
            await response.aclose()

        if not response.is_success:
            error = ApiError.from_response(
                status=response.status_code,
                reason=response.reason_phrase,
                parsed=parsed,
                url=url,
                method=method,
            )
            log.warning("{} {} -> {} {}", method, url, error.status, error.message)
            raise error

        log.debug("{} {} -> {}", method, url, response.status_code)
        return parsed

    async def _send_with_deadline(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        *,
        signal: asyncio.Event | None,
    ) -> httpx.Response:
        """Wait for response headers, racing the timeout and the caller's signal.

        Raises `asyncio.TimeoutError` when the deadline passes first and
        `RequestAborted` when the signal fires first.
        """
        send = asyncio.ensure_future(client.send(request, stream=True))
        waiters: set[asyncio.Future[Any]] = {send}
        aborted: asyncio.Future[Any] | None = None
        if signal is not None:
            aborted = asyncio.ensure_future(signal.wait())
            waiters.add(aborted)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            send.cancel()
            raise
        finally:
            if aborted is not None and not aborted.done():
                aborted.cancel()

        if send in done:
            return send.result()

        await _discard(send)
        if aborted is not None and aborted in done:
            raise RequestAborted()
        raise asyncio.TimeoutError()

    @staticmethod
    async def _read_body(response: httpx.Response) -> Any:
        """Parse the body per its content type; unreadable bodies become None."""
        content_type = (response.headers.get("content-type") or "").lower()
        try:
            await response.aread()
        except httpx.HTTPError as exc:
            log.debug("Failed to read response body: {}", exc)
            return None

        if not response.content:
            return None
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return None
        try:
            return response.text
        except (LookupError, UnicodeDecodeError):
            return None

    # Verb helpers ---------------------------------------------------------

    async def get(
        self,
        path: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        signal: asyncio.Event | None = None,
    ) -> Any:
        return await self.execute("GET", path, query=query, headers=headers, signal=signal)

    async def post(
        self,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        *,
        query: QueryParams | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        return await self.execute("POST", path, query=query, body=body, headers=headers, signal=signal)

    async def put(
        self,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        *,
        query: QueryParams | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        return await self.execute("PUT", path, query=query, body=body, headers=headers, signal=signal)

    async def patch(
        self,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        *,
        query: QueryParams | None = None,
        signal: asyncio.Event | None = None,
    ) -> Any:
        return await self.execute("PATCH", path, query=query, body=body, headers=headers, signal=signal)

    async def delete(
        self,
        path: str,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        signal: asyncio.Event | None = None,
    ) -> Any:
        return await self.execute("DELETE", path, query=query, headers=headers, signal=signal)
