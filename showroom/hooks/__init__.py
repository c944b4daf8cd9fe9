"""Reactive request bindings used by views."""

from __future__ import annotations

from showroom.hooks.mutation import RequestMutation
from showroom.hooks.query import RequestQuery
from showroom.hooks.state import RequestState

__all__ = ["RequestMutation", "RequestQuery", "RequestState"]
