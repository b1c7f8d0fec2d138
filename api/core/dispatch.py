"""
Deadline-bounded execution of request handlers.

Every data route goes through `dispatch()`:

- the handler runs as its own task inside a fresh connection lease,
- the caller waits for it until the route's deadline,
- the first terminal outcome (completed / failed / timed out) decides the
  response; nothing after that can produce a second one.

On timeout the handler is abandoned rather than cancelled: an in-flight
query is left to finish, its result is dropped, and its lease is still
released by the task's own cleanup.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from . import db
from .errors import CatalogError, DeadlineExceededError, InternalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_abandoned: set[asyncio.Task] = set()


async def _run_leased(
    handler: Callable[..., Awaitable[T]],
    deadline: float,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> T:
    async with db.lease(deadline):
        return await handler(*args, **kwargs)


def _discard_late_result(label: str, reason: str, task: asyncio.Task) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        logger.info("Abandoned handler %s was cancelled.", label)
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Abandoned handler %s failed %s: %r", label, reason, exc)
    else:
        logger.info("Abandoned handler %s finished %s; result discarded.", label, reason)


def _abandon(task: asyncio.Task, label: str, reason: str) -> None:
    # Keep a strong reference until the task finishes so it is not collected mid-flight.
    _abandoned.add(task)
    task.add_done_callback(functools.partial(_discard_late_result, label, reason))


async def dispatch(
    handler: Callable[..., Awaitable[T]],
    *args: Any,
    timeout_s: float,
    label: str | None = None,
    **kwargs: Any,
) -> T:
    """
    Run `handler(*args, **kwargs)` under a deadline of `timeout_s` seconds.

    Returns the handler's result, or raises a `CatalogError`:
    - the handler's own typed error, unchanged,
    - `DeadlineExceededError` when the deadline fires first,
    - `InternalError` for anything unexpected (logged with traceback).
    """
    label = label or getattr(handler, "__qualname__", repr(handler))
    deadline = asyncio.get_running_loop().time() + timeout_s
    task = asyncio.create_task(_run_leased(handler, deadline, args, kwargs))

    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_s)
    except asyncio.CancelledError:
        # The request itself went away (client disconnect, shutdown).
        _abandon(task, label, "after the request was cancelled")
        raise

    if not done:
        _abandon(task, label, "after its deadline")
        logger.warning("%s exceeded its %.3fs deadline; handler abandoned.", label, timeout_s)
        raise DeadlineExceededError()

    if task.cancelled():
        logger.error("%s was cancelled before completing.", label)
        raise InternalError()

    exc = task.exception()
    if exc is None:
        return task.result()

    if isinstance(exc, CatalogError):
        if exc.status_code >= 500:
            logger.error("%s failed: %s", label, exc.message, exc_info=exc)
        raise exc

    logger.error("Unhandled error in %s.", label, exc_info=exc)
    raise InternalError() from exc


def abandoned_count() -> int:
    return len(_abandoned)


async def drain_abandoned(timeout_s: float) -> int:
    """
    Wait up to `timeout_s` for abandoned handlers. Returns how many are still running.
    """
    pending = set(_abandoned)
    if not pending:
        return 0
    logger.info("Waiting for %d abandoned handler(s).", len(pending))
    _, still_running = await asyncio.wait(pending, timeout=timeout_s)
    return len(still_running)
