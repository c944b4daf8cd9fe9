"""Reactive GET binding.

`RequestQuery` keeps a `RequestState` in sync with a GET endpoint. The owning
view (or framework adapter) calls `watch()` whenever its inputs may have
changed; the query re-executes only when the path, the query parameters (by
value), the `enabled` flag or the extra dependencies actually differ from the
previous watch.

Late results are discarded: each execution captures a generation number and
only the most recent generation of a live (not disposed) query writes state.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence, TypeVar

from loguru import logger

from showroom.hooks.state import StateHolder
from showroom.net.errors import ApiError
from showroom.net.http import RequestService
from showroom.net.urls import QueryParams, freeze_query

__all__ = ["RequestQuery"]

log = logger.bind(module="hooks.query")

T = TypeVar("T")

_UNSET: Any = object()


class RequestQuery(StateHolder[T]):
    """GET binding with conditional enablement, manual refetch and disposal."""

    def __init__(
        self,
        service: RequestService,
        path: str,
        *,
        query: QueryParams | None = None,
        enabled: bool = True,
        deps: Sequence[Any] = (),
    ) -> None:
        super().__init__()
        self._service = service
        self.path = path
        self.query: dict[str, Any] | None = dict(query) if query else None
        self.enabled = bool(enabled)
        self.deps: tuple[Any, ...] = tuple(deps)

        self._generation = 0
        self._alive = True
        self._watched_key: tuple[Any, ...] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> asyncio.Task[None] | None:
        """The most recently started execution while it is still running."""
        if self._task is None or self._task.done():
            return None
        return self._task

    def _key(self) -> tuple[Any, ...]:
        return (self.path, freeze_query(self.query), self.enabled, self.deps)

    def _is_current(self, generation: int) -> bool:
        return self._alive and generation == self._generation

    def watch(
        self,
        *,
        path: str = _UNSET,
        query: QueryParams | None = _UNSET,
        enabled: bool = _UNSET,
        deps: Sequence[Any] = _UNSET,
    ) -> asyncio.Task[None] | None:
        """Apply new inputs and re-execute when they changed.

        The first call always evaluates. Returns the scheduled task, or None
        when nothing ran (inputs unchanged, disabled, or disposed). Must be
        called from a running event loop.
        """
        if path is not _UNSET:
            self.path = path
        if query is not _UNSET:
            self.query = dict(query) if query else None
        if enabled is not _UNSET:
            self.enabled = bool(enabled)
        if deps is not _UNSET:
            self.deps = tuple(deps)

        key = self._key()
        if self._watched_key is not None and key == self._watched_key:
            return None
        self._watched_key = key
        task = self._trigger()
        if task is None and self._alive:
            # Inputs moved away from the in-flight request; drop its result.
            self._generation += 1
            if self._state.loading:
                self._set_state(loading=False)
        return task

    async def refetch(self) -> None:
        """Re-run the current request now (no-op while disabled or disposed)."""
        task = self._trigger()
        if task is not None:
            await task

    def dispose(self) -> None:
        """Stop publishing state. Outstanding calls keep running but are ignored."""
        self._alive = False

    def _trigger(self) -> asyncio.Task[None] | None:
        if not self._alive or not self.enabled:
            return None
        self._generation += 1
        task = asyncio.ensure_future(self._run(self._generation))
        task.add_done_callback(self._report_failure)
        self._task = task
        return task

    async def _run(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._set_state(loading=True, error=None)
        try:
            result = await self._service.get(self.path, self.query)
        except ApiError as exc:
            if self._is_current(generation):
                self._set_state(data=None, error=exc, loading=False)
            return
        except BaseException:
            if self._is_current(generation):
                self._set_state(loading=False)
            raise
        if self._is_current(generation):
            self._set_state(data=result, error=None, loading=False)

    def _report_failure(self, task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Query GET {} failed outside the request layer: {!r}", self.path, exc)
