"""Cooperative cancellation: a caller's ``asyncio.Event`` combined with a deadline.

Whichever fires first aborts the awaited operation.  The outcome is
reported as ``NeoError`` with ``ErrorKind.CANCELLED`` and a ``reason`` of
``"cancelled"`` or ``"timeout"``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from neorium.errors import NeoError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def check_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Raise immediately if *cancel_event* is already set."""
    if cancel_event is not None and cancel_event.is_set():
        raise NeoError.cancelled("cancelled")


def _close(awaitable: Awaitable) -> None:
    # Un-started coroutines warn when garbage collected.
    if asyncio.iscoroutine(awaitable):
        awaitable.close()


async def _discard(task: asyncio.Future) -> None:
    if task.done():
        if not task.cancelled():
            task.exception()  # mark retrieved
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        _logger.debug("Abandoned operation failed: %r", e)


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
) -> T:
    """Await *awaitable*, aborting it on *cancel_event* or after *timeout*.

    A task-level ``asyncio.CancelledError`` propagates unchanged after the
    inner operation is torn down.
    """
    if cancel_event is not None and cancel_event.is_set():
        _close(awaitable)
        raise NeoError.cancelled("cancelled")
    if timeout is not None and timeout <= 0:
        _close(awaitable)
        raise NeoError.cancelled("timeout")

    task = asyncio.ensure_future(awaitable)
    if cancel_event is None and timeout is None:
        return await task

    waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event else None
    waiting = {task} if waiter is None else {task, waiter}
    try:
        done, _ = await asyncio.wait(
            waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        await _discard(task)
        if waiter is not None:
            await _discard(waiter)
        raise

    if waiter is not None:
        await _discard(waiter)
    if task in done:
        return task.result()

    await _discard(task)
    if waiter is not None and cancel_event.is_set():
        raise NeoError.cancelled("cancelled")
    raise NeoError.cancelled("timeout")


async def sleep_cancellable(
    delay: float,
    cancel_event: asyncio.Event | None = None,
) -> None:
    """Sleep for *delay* seconds unless *cancel_event* fires first."""
    check_cancelled(cancel_event)
    if delay <= 0:
        return
    await run_cancellable(asyncio.sleep(delay), cancel_event)


class Deadline:
    """Fixed point in time shared by several awaits (e.g. a whole stream)."""

    def __init__(self, timeout: float) -> None:
        self._expires_at = asyncio.get_running_loop().time() + timeout

    @property
    def remaining(self) -> float:
        return self._expires_at - asyncio.get_running_loop().time()
