"""
Cooperative cancellation for an invocation.

One token is shared by every context derived from an invocation. Awaiting
through ``CancellationToken.run`` turns a cancel request into
``InvocationCancelled`` at that suspension point.
"""

import asyncio
from contextlib import suppress
from typing import Awaitable, TypeVar

from .errors import InvocationCancelled

T = TypeVar("T")


class CancellationToken:
    """Shared, settable cancel flag."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise InvocationCancelled()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token is cancelled first."""
        task = asyncio.ensure_future(awaitable)
        if self._event.is_set():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            raise InvocationCancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        raise InvocationCancelled()
