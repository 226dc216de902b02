"""Async utilities for bridging blocking ZooKeeper calls to async MCP handlers.

kazoo's synchronous API blocks for a network round trip, so tool handlers
push every call onto a worker thread. Cancelling the awaiting handler does
not undo a call that already reached the server.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Module-level semaphore, initialized at server startup
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 5) -> None:
    """Bound concurrent ZooKeeper calls made through ``run_sync_limited``."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.info(
        "ZooKeeper request semaphore initialized: max_parallel=%d",
        max_parallel,
    )


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a worker thread.

    Not bounded by the semaphore; used for single calls and for
    connection lifecycle steps.

    Example:
        # In MCP tool handler:
        stat = await run_sync(ctx.engine.get_stat, path)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_limited(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Like ``run_sync``, but waits for a semaphore slot first.

    Unbounded when ``init_semaphore`` has not been called.
    """
    if _semaphore is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with _semaphore:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Await *coros* concurrently and return their results in input order.

    Each coroutine is expected to use ``run_sync_limited``, which is where
    the bound applies. The first exception propagates.
    """
    return list(await asyncio.gather(*coros))
