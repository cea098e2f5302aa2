import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from refkeeper.errors import StoreTimeoutError

T = TypeVar("T")


async def fan_out(*coros: Coroutine[Any, Any, T], timeout: float | None) -> list[T]:
    """Run independent store calls concurrently and return their results in order.

    The first failure cancels the calls still in flight and is re-raised as is.
    Cancelling the caller cancels every call. Exceeding ``timeout`` raises
    StoreTimeoutError.
    """
    try:
        async with asyncio.timeout(timeout), asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(coro) for coro in coros]
    except TimeoutError as e:
        raise StoreTimeoutError(f"Store queries did not finish within {timeout}s") from e
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from eg
    return [task.result() for task in tasks]
