import asyncio
from typing import Any, Callable


async def run_async(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Run a blocking callable on a worker thread.

    Cancelling the awaiting task does not stop the thread; callers that
    need to interrupt the work pass it an event to watch.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
