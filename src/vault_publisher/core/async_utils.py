"""Async utilities for running blocking HTTP calls with bounded fan-out."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Module-level semaphore, initialized at server startup
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 5) -> None:
    """Initialize the concurrency semaphore. Call once at startup."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.info(
        "Upload semaphore initialized: max_parallel=%d",
        max_parallel,
    )


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Does NOT acquire the semaphore.

    Example:
        client = GitHubClient(config)
        head = await run_sync(client.resolve_branch_head, "main")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_limited(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool, bounded by the semaphore.

    Falls back to unbounded if the semaphore is not initialized.
    """
    if _semaphore is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with _semaphore:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Run coroutines concurrently and return their results in order.

    Each coroutine should use ``run_sync_limited`` internally so the
    fan-out stays bounded.  The first exception propagates; calls already
    in flight are allowed to finish.
    """
    return list(await asyncio.gather(*coros))
