from __future__ import annotations

import sys
from pathlib import Path
from typing import Awaitable, Callable, Generator, Union

import httpx
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from showroom.config import Settings
from showroom.net.http import RequestService

BASE_URL = "http://example.local"

Handler = Callable[[httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]]


@pytest.fixture
def settings() -> Generator[Settings, None, None]:
    """Return a fresh Settings instance that ignores any local .env file."""

    yield Settings(_env_file=None, api_base_url=BASE_URL)


@pytest.fixture
def make_service() -> Callable[..., RequestService]:
    """Build a RequestService whose network boundary is an httpx.MockTransport."""

    def _make(handler: Handler, **kwargs: object) -> RequestService:
        kwargs.setdefault("base_url", BASE_URL)
        return RequestService(transport=httpx.MockTransport(handler), **kwargs)  # type: ignore[arg-type]

    return _make
