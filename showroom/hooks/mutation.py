"""Manually invoked binding for state-changing requests."""

from __future__ import annotations

from typing import Any, TypeVar

from loguru import logger

from showroom.hooks.state import StateHolder
from showroom.net.errors import ApiError
from showroom.net.http import RequestService

__all__ = ["MUTATION_METHODS", "RequestMutation"]

log = logger.bind(module="hooks.mutation")

T = TypeVar("T")

MUTATION_METHODS: tuple[str, ...] = ("POST", "PUT", "PATCH", "DELETE")


class RequestMutation(StateHolder[T]):
    """POST/PUT/PATCH/DELETE binding driven by explicit `mutate()` calls.

    Concurrent `mutate()` calls are not coordinated; the last one to settle
    determines the exposed state.

    DELETE ignores the body passed to `mutate()` and sends a query-only
    request.
    """

    def __init__(self, service: RequestService, path: str, method: str = "POST") -> None:
        super().__init__()
        method = (method or "POST").strip().upper()
        if method not in MUTATION_METHODS:
            raise ValueError(f"Unsupported mutation method: {method!r}")
        self._service = service
        self.path = path
        self.method = method

    async def mutate(self, body: Any = None) -> T | None:
        """Send the request and return the parsed response.

        Raises:
            ApiError: Re-raised after being stored on the state.
        """
        self._set_state(loading=True, error=None, data=None)
        try:
            result = await self._dispatch(body)
        except ApiError as exc:
            self._set_state(error=exc, loading=False)
            raise
        except BaseException:
            self._set_state(loading=False)
            raise
        self._set_state(data=result, loading=False)
        return result

    async def _dispatch(self, body: Any) -> Any:
        if self.method == "PUT":
            return await self._service.put(self.path, body)
        if self.method == "PATCH":
            return await self._service.patch(self.path, body)
        if self.method == "DELETE":
            if body is not None:
                log.debug("DELETE {} sent without the supplied body", self.path)
            return await self._service.delete(self.path)
        return await self._service.post(self.path, body)
