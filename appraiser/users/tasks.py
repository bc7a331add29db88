"""
Helpers for racing and backgrounding backend calls.

A call that loses a :func:`race` against its timer is abandoned, not
cancelled: it may still complete, and whatever it returns or raises is
discarded. Background calls started with :func:`fire_and_forget` only ever
log their failures.
"""

from typing import Any, Awaitable, Optional, Set
from functools import partial
import asyncio
import logging

from .exceptions import TimedOut

logger = logging.getLogger(__name__)

_pending: Set[asyncio.Future] = set()
"""Strong references to tasks nobody awaits any more."""


def _log_outcome(what: str, task: asyncio.Future) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning('%s failed: %s', what, exc)


def _discard_outcome(what: str, task: asyncio.Future) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    logger.debug('Discarding late outcome of %s (%s)', what,
                 'error' if exc is not None else 'ok')


def fire_and_forget(aw: Awaitable, what: str,
                    loop: Optional[asyncio.AbstractEventLoop] = None
                    ) -> asyncio.Future:
    """Run ``aw`` in the background, logging (only) its failure."""
    task = asyncio.ensure_future(aw, loop=loop)
    _pending.add(task)
    task.add_done_callback(partial(_log_outcome, what))
    return task


async def race(aw: Awaitable, timeout: float, what: str) -> Any:
    """
    Await ``aw``, giving up after ``timeout`` seconds.

    Raises
    ------
    :class:`.TimedOut`
        If ``aw`` has not finished in time. ``aw`` keeps running.

    """
    task = asyncio.ensure_future(aw)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()
    _pending.add(task)
    task.add_done_callback(partial(_discard_outcome, what))
    raise TimedOut(f'{what} timed out after {timeout}s')
