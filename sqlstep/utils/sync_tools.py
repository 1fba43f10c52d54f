"""Helpers bridging blocking callables into async code."""

import functools
from typing import TYPE_CHECKING, Optional, TypeVar

import anyio
from anyio import to_thread
from typing_extensions import ParamSpec

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

__all__ = ("async_",)

ParamSpecT = ParamSpec("ParamSpecT")
ReturnT = TypeVar("ReturnT")


def async_(
    function: "Callable[ParamSpecT, ReturnT]", *, limiter: "Optional[anyio.CapacityLimiter]" = None
) -> "Callable[ParamSpecT, Awaitable[ReturnT]]":
    """Convert a blocking function into an awaitable that runs in a worker thread.

    Args:
        function: The blocking callable.
        limiter: Optional capacity limiter shared by related calls.

    Returns:
        An async function with the same signature.
    """

    @functools.wraps(function)
    async def wrapper(*args: "ParamSpecT.args", **kwargs: "ParamSpecT.kwargs") -> ReturnT:
        partial_f = functools.partial(function, *args, **kwargs)
        return await to_thread.run_sync(partial_f, limiter=limiter)

    return wrapper
