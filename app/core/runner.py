import asyncio
import logging
import signal
from typing import Awaitable

log = logging.getLogger("payments.runner")


async def run_until_signalled(coro: Awaitable) -> None:
    """Runs a long-lived worker coroutine, cancelling it on SIGINT/SIGTERM."""
    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)
    try:
        await task
    except asyncio.CancelledError:
        log.info("Shutdown signal received, worker cancelled.")
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
