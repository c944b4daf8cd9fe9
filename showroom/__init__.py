"""Typed async client for the Showroom backend API."""

from __future__ import annotations

from showroom.net.errors import ApiError, RequestAborted
from showroom.net.http import RequestService

__all__ = ["ApiError", "RequestAborted", "RequestService"]
