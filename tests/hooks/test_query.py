from __future__ import annotations

import asyncio

import httpx
import pytest

from showroom.hooks.query import RequestQuery
from showroom.hooks.state import RequestState


def _recorder(query: RequestQuery) -> list[RequestState]:
    states: list[RequestState] = []
    query.subscribe(states.append)
    return states


@pytest.mark.asyncio
async def test_watch_runs_get_and_tracks_loading(make_service) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/cars"
        assert dict(request.url.params) == {"brand": "Aurora"}
        return httpx.Response(200, json=[{"id": 1}], request=request)

    query = RequestQuery(make_service(handler), "/cars", query={"brand": "Aurora"})
    states = _recorder(query)
    assert query.loading is False

    task = query.watch()
    assert task is not None
    await task

    assert [s.loading for s in states] == [True, False]
    assert query.data == [{"id": 1}]
    assert query.error is None


@pytest.mark.asyncio
async def test_disabled_query_never_calls_until_enabled(make_service) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"ok": True}, request=request)

    query = RequestQuery(make_service(handler), "/a", enabled=False)
    assert query.watch() is None
    assert query.watch(path="/b") is None
    assert query.watch(query={"page": 2}, deps=[1]) is None
    await query.refetch()
    assert calls == []

    task = query.watch(enabled=True)
    assert task is not None
    await task
    assert calls == ["/b"]
    assert query.data == {"ok": True}


@pytest.mark.asyncio
async def test_query_params_compare_by_value(make_service) -> None:
    calls: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(dict(request.url.params))
        return httpx.Response(200, json={}, request=request)

    query = RequestQuery(make_service(handler), "/cars", query={"page": 1, "brand": "X"})
    await query.watch()

    assert query.watch(query={"brand": "X", "page": 1}) is None
    await query.watch(query={"brand": "X", "page": 2})
    assert query.watch(deps=()) is None
    await query.watch(deps=["refresh-1"])

    assert calls == [
        {"page": "1", "brand": "X"},
        {"brand": "X", "page": "2"},
        {"brand": "X", "page": "2"},
    ]


@pytest.mark.asyncio
async def test_refetch_reruns_same_request(make_service) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"n": len(calls)}, request=request)

    query = RequestQuery(make_service(handler), "/cars/1")
    await query.watch()
    await query.refetch()
    assert calls == ["/cars/1", "/cars/1"]
    assert query.data == {"n": 2}


@pytest.mark.asyncio
async def test_failure_clears_data_and_success_clears_error(make_service) -> None:
    statuses = [200, 500, 200]

    def handler(request: httpx.Request) -> httpx.Response:
        status = statuses.pop(0)
        return httpx.Response(status, json={"message": "boom"} if status >= 400 else {"id": 1}, request=request)

    query = RequestQuery(make_service(handler), "/cars/1")
    await query.watch()
    assert query.data == {"id": 1}

    await query.refetch()
    assert query.data is None
    assert query.error is not None
    assert query.error.status == 500
    assert query.error.message == "boom"
    assert query.loading is False

    await query.refetch()
    assert query.data == {"id": 1}
    assert query.error is None


@pytest.mark.asyncio
async def test_settlement_after_dispose_is_discarded(make_service) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await release.wait()
        return httpx.Response(200, json={"late": True}, request=request)

    query = RequestQuery(make_service(handler), "/cars")
    task = query.watch()
    await started.wait()
    assert query.loading is True

    calls_after_dispose: list[RequestState] = []
    query.dispose()
    query.subscribe(calls_after_dispose.append)

    release.set()
    await task

    assert calls_after_dispose == []
    assert query.data is None
    assert query.alive is False
    await query.refetch()
    assert calls_after_dispose == []


@pytest.mark.asyncio
async def test_overlapping_triggers_keep_only_latest_result(make_service) -> None:
    first_started = asyncio.Event()
    release_first = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/first":
            first_started.set()
            await release_first.wait()
            return httpx.Response(200, json={"which": "first"}, request=request)
        return httpx.Response(200, json={"which": "second"}, request=request)

    query = RequestQuery(make_service(handler), "/first")
    first = query.watch()
    await first_started.wait()

    second = query.watch(path="/second")
    assert second is not None
    await second
    assert query.data == {"which": "second"}

    release_first.set()
    await first

    assert query.data == {"which": "second"}
    assert query.error is None
    assert query.loading is False


@pytest.mark.asyncio
async def test_disabling_mid_flight_drops_the_result(make_service) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await release.wait()
        return httpx.Response(200, json={"stale": True}, request=request)

    query = RequestQuery(make_service(handler), "/cars")
    task = query.watch()
    await started.wait()

    assert query.watch(enabled=False) is None
    assert query.loading is False

    release.set()
    await task
    assert query.data is None
    assert query.loading is False


@pytest.mark.asyncio
async def test_pending_exposes_running_execution(make_service) -> None:
    query = RequestQuery(make_service(lambda request: httpx.Response(200, json={}, request=request)), "/cars")
    assert query.pending is None

    task = query.watch()
    assert query.pending is task
    await task
    assert query.pending is None
