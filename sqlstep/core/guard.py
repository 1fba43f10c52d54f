"""Serialization of native statement access.

Every synchronous call runs under a re-entrant lock. Asynchronous calls are
offloaded to a worker thread through ``anyio`` behind a capacity limiter of one
token, whose waiters are served first in, first out. The worker takes the same
lock, so calls against one connection run one at a time, in submission order,
and never interleave with a synchronous call.
"""

import logging
import threading
from functools import partial
from typing import Any, Callable, Optional, TypeVar

import anyio
from anyio import to_thread
from anyio.lowlevel import checkpoint_if_cancelled

from sqlstep.exceptions import ConnectionUnavailableError
from sqlstep.utils.logging import bind_database_label, get_logger, log_with_context

__all__ = ("ConcurrencyGuard",)

logger = get_logger("core.guard")

ReturnT = TypeVar("ReturnT")


class ConcurrencyGuard:
    """Mutual exclusion for one connection and the statements prepared on it.

    The limiter is created on the first asynchronous call and belongs to the
    event loop that made it. Cancelling an awaiting caller while it waits for
    the limiter drops the call before it starts. A call already running on a
    worker thread is never abandoned: it finishes, then the cancellation is
    delivered to the caller and the result is discarded.
    """

    __slots__ = ("_closed", "_limiter", "_lock", "_name", "_state_lock")

    def __init__(self, name: str = "sqlstep") -> None:
        self._name = name
        self._lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._limiter: Optional[anyio.CapacityLimiter] = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def name(self) -> str:
        return self._name

    def run_sync(self, fn: "Callable[..., ReturnT]", *args: Any) -> "ReturnT":
        """Run ``fn`` on the calling thread while holding the guard."""
        return self._locked_call(fn, args)

    def _locked_call(self, fn: "Callable[..., ReturnT]", args: "tuple[Any, ...]") -> "ReturnT":
        with self._lock, bind_database_label(self._name):
            return fn(*args)

    def _get_limiter(self) -> anyio.CapacityLimiter:
        with self._state_lock:
            if self._closed:
                msg = "Connection is closed"
                raise ConnectionUnavailableError(msg)
            if self._limiter is None:
                self._limiter = anyio.CapacityLimiter(1)
            return self._limiter

    async def run_async(self, fn: "Callable[..., ReturnT]", *args: Any) -> "ReturnT":
        """Queue ``fn`` behind earlier asynchronous calls and await its result.

        Raises:
            ConnectionUnavailableError: The guard has been shut down.
        """
        limiter = self._get_limiter()
        result = await to_thread.run_sync(partial(self._locked_call, fn, args), limiter=limiter)
        try:
            await checkpoint_if_cancelled()
        except anyio.get_cancelled_exc_class():
            log_with_context(
                logger, logging.DEBUG, "guard.cancel.running", guard=self._name, function=_callable_name(fn)
            )
            raise
        return result

    def shutdown(self) -> None:
        """Stop accepting asynchronous work. Calls already queued still run."""
        with self._state_lock:
            self._closed = True

    def __repr__(self) -> str:
        return f"ConcurrencyGuard(name={self._name!r}, closed={self._closed})"


def _callable_name(fn: Any) -> str:
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    return name or repr(fn)
