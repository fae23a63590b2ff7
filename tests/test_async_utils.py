"""Tests for async_utils: thread offloading and bounded fan-out."""

import asyncio
import threading
import time

import pytest

import vault_publisher.core.async_utils as async_utils
from vault_publisher.core.async_utils import (
    gather_limited,
    init_semaphore,
    run_sync,
    run_sync_limited,
)


@pytest.fixture(autouse=True)
def restore_semaphore():
    original = async_utils._semaphore
    yield
    async_utils._semaphore = original


async def test_run_sync_runs_off_the_event_loop():
    loop_thread = threading.get_ident()

    worker_thread = await run_sync(threading.get_ident)

    assert worker_thread != loop_thread


async def test_run_sync_forwards_args_and_kwargs():
    def _join(a, b, *, sep):
        return f"{a}{sep}{b}"

    assert await run_sync(_join, "content", "a.md", sep="/") == "content/a.md"


async def test_run_sync_propagates_exceptions():
    def _boom():
        raise OSError("disk gone")

    with pytest.raises(OSError, match="disk gone"):
        await run_sync(_boom)


async def test_run_sync_limited_without_semaphore():
    async_utils._semaphore = None

    assert await run_sync_limited(len, b"blob") == 4


async def test_init_semaphore():
    init_semaphore(3)

    assert isinstance(async_utils._semaphore, asyncio.Semaphore)
    assert await run_sync_limited(len, b"abc") == 3


async def test_run_sync_limited_bounds_concurrency():
    init_semaphore(2)
    lock = threading.Lock()
    active = 0
    peak = 0

    def _upload(_):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1

    await gather_limited([run_sync_limited(_upload, i) for i in range(6)])

    assert peak <= 2


async def test_gather_limited_preserves_order():
    def _slow_identity(value, delay):
        time.sleep(delay)
        return value

    results = await gather_limited(
        [
            run_sync_limited(_slow_identity, "a", 0.03),
            run_sync_limited(_slow_identity, "b", 0.0),
            run_sync_limited(_slow_identity, "c", 0.01),
        ]
    )

    assert results == ["a", "b", "c"]


async def test_gather_limited_raises_first_error():
    def _fail():
        raise ValueError("bad blob")

    with pytest.raises(ValueError, match="bad blob"):
        await gather_limited(
            [run_sync_limited(len, b"x"), run_sync_limited(_fail)]
        )


async def test_gather_limited_empty():
    assert await gather_limited([]) == []
