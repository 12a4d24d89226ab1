import asyncio
from collections.abc import Coroutine
from typing import Any


async def join(*coros: Coroutine[Any, Any, Any]) -> list[Any]:
    """Run independent coroutines concurrently and return results in order.

    If any of them fails the others are cancelled and the first failure is
    raised on its own rather than wrapped in an ExceptionGroup.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as exc:
        raise exc.exceptions[0] from None
    return [task.result() for task in tasks]
