"""Asyncio utilities."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run an async coroutine from synchronous code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)


def install_shutdown_handlers(shutdown_event: asyncio.Event) -> None:
    """Set *shutdown_event* on SIGTERM / SIGINT (Unix only)."""
    loop = asyncio.get_running_loop()

    def _handle_signal(signame: str) -> None:
        logger.info("%s received, shutting down gracefully", signame)
        shutdown_event.set()

    for signame in ("SIGTERM", "SIGINT"):
        sig = getattr(signal, signame, None)
        if sig is None:
            continue
        # Windows event loops don't support add_signal_handler.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, _handle_signal, signame)


async def race_shutdown(coro: Any, shutdown_event: asyncio.Event) -> None:
    """Run *coro* but return early if *shutdown_event* fires."""
    task = asyncio.ensure_future(coro)
    shutdown_waiter = asyncio.create_task(shutdown_event.wait())
    done, pending = await asyncio.wait(
        [task, shutdown_waiter],
        return_when=asyncio.FIRST_COMPLETED,
    )
    for t in pending:
        t.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    # Re-raise exceptions from the main task if it finished with an error.
    for t in done:
        if t is not shutdown_waiter:
            t.result()


async def wait_for_interrupt(shutdown_event: asyncio.Event) -> None:
    """Block until *shutdown_event* is set or ``q`` is typed on a TTY stdin."""
    import sys

    if not sys.stdin.isatty():
        await shutdown_event.wait()
        return

    try:
        import selectors
        import termios
        import tty
    except ImportError:
        await shutdown_event.wait()
        return

    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    sel = selectors.DefaultSelector()
    try:
        tty.setcbreak(fd)
        sel.register(sys.stdin, selectors.EVENT_READ)
        while not shutdown_event.is_set():
            await asyncio.sleep(0.1)
            for _key, _ in sel.select(timeout=0):
                if sys.stdin.read(1) in ("q", "Q"):
                    return
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        sel.close()
