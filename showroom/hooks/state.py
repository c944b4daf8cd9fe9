"""Observable request state shared by the query and mutation bindings."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, TypeVar

from showroom.net.errors import ApiError

__all__ = ["RequestState", "StateHolder", "StateListener"]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RequestState(Generic[T]):
    """Snapshot of a binding's request lifecycle."""

    data: T | None = None
    error: ApiError | None = None
    loading: bool = False


StateListener = Callable[[RequestState[Any]], None]


class StateHolder(Generic[T]):
    """Holds a `RequestState` and notifies listeners on every change."""

    def __init__(self) -> None:
        self._state: RequestState[T] = RequestState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> RequestState[T]:
        return self._state

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def error(self) -> ApiError | None:
        return self._state.error

    @property
    def loading(self) -> bool:
        return self._state.loading

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register `listener` and return a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
