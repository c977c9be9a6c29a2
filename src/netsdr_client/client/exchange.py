"""
NetSDR Client - Exchange Slot

Turns the control transport's push-style frame delivery into a
send-then-await call. The slot holds at most one pending exchange; a second
caller waits on the slot lock until the first exchange is over.

Inbound frames may be delivered from any thread. They are handed to the
event loop that owns the pending future with call_soon_threadsafe, so a
response that arrives before send() returns, or from an I/O thread, is
never lost.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from netsdr_client.core.errors import (
    ExchangeTimeoutError,
    SdrConnectionError,
    UnexpectedResponseError,
)

logger = logging.getLogger(__name__)

SendFunc = Callable[[bytes], Awaitable[None]]
AcceptFunc = Callable[[bytes], bool]
RejectFunc = Callable[[bytes], "str | None"]


@dataclass
class _PendingExchange:
    future: asyncio.Future
    loop: asyncio.AbstractEventLoop
    label: str
    accept: AcceptFunc | None = None
    reject: RejectFunc | None = None


class ExchangeSlot:
    """
    Single correlation slot.

    Usage:
        slot = ExchangeSlot()
        transport.add_frame_handler(slot.resolve)
        response = await slot.exchange(frame, transport.send)
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        # Guards _pending and the counters against foreign-thread resolve()
        self._guard = threading.Lock()
        self._pending: _PendingExchange | None = None
        self._completed = 0
        self._unmatched = 0

    @property
    def busy(self) -> bool:
        """Whether an exchange holds the slot."""
        return self._lock.locked()

    @property
    def pending(self) -> bool:
        """Whether a sent command is waiting for its response."""
        with self._guard:
            return self._pending is not None

    @property
    def completed_count(self) -> int:
        with self._guard:
            return self._completed

    @property
    def unmatched_count(self) -> int:
        """Frames that arrived with no exchange to resolve."""
        with self._guard:
            return self._unmatched

    async def exchange(
        self,
        frame: bytes,
        send: SendFunc,
        *,
        timeout_s: float | None = None,
        accept: AcceptFunc | None = None,
        reject: RejectFunc | None = None,
        label: str = "",
    ) -> bytes:
        """
        Send a frame and wait for the frame that resolves it.

        Args:
            frame: Command frame.
            send: Coroutine function that puts the frame on the wire.
            timeout_s: Give up after this many seconds; None waits forever.
            accept: Optional predicate; frames it refuses do not resolve.
            reject: Optional check returning a reason when a frame is an
                error reply; the exchange then fails.
            label: Name used in log messages and errors.

        Returns:
            The response frame.

        Raises:
            TransportSendError: If send fails.
            ExchangeTimeoutError: If timeout_s elapses first.
            UnexpectedResponseError: If reject flags the response.
            SdrConnectionError: If the slot is aborted by a disconnect.
        """
        async with self._lock:
            loop = asyncio.get_running_loop()
            pending = _PendingExchange(loop.create_future(), loop, label, accept, reject)
            # Registered before sending: the response may arrive inside send()
            with self._guard:
                self._pending = pending

            try:
                await send(frame)
                if timeout_s is None:
                    response = await pending.future
                else:
                    try:
                        response = await asyncio.wait_for(pending.future, timeout_s)
                    except asyncio.TimeoutError as e:
                        logger.warning(f"No response to {label or 'command'} within {timeout_s} s")
                        raise ExchangeTimeoutError(timeout_s, label) from e
            finally:
                with self._guard:
                    if self._pending is pending:
                        self._pending = None
                if not pending.future.done():
                    pending.future.cancel()

            with self._guard:
                self._completed += 1
            return response

    def resolve(self, frame: bytes) -> bool:
        """
        Offer an inbound frame to the pending exchange. Thread-safe.

        Returns:
            True if a pending exchange was there to receive it.
        """
        with self._guard:
            pending = self._pending
            if pending is None:
                self._unmatched += 1
        if pending is None:
            logger.debug(f"Dropping {len(frame)} byte frame: no exchange pending")
            return False

        try:
            pending.loop.call_soon_threadsafe(self._complete, pending, bytes(frame))
        except RuntimeError:
            logger.debug("Event loop closed; frame dropped")
            return False
        return True

    def abort(self, reason: str) -> bool:
        """
        Fail the pending exchange with SdrConnectionError. Thread-safe.

        Returns:
            True if an exchange was pending.
        """
        with self._guard:
            pending = self._pending
        if pending is None:
            return False

        try:
            pending.loop.call_soon_threadsafe(self._fail, pending, SdrConnectionError(reason))
        except RuntimeError:
            logger.debug("Event loop closed; nothing to abort")
            return False
        return True

    def _complete(self, pending: _PendingExchange, frame: bytes) -> None:
        future = pending.future
        if future.done():
            with self._guard:
                self._unmatched += 1
            logger.debug(f"Late frame for {pending.label or 'command'} dropped")
            return

        if pending.reject is not None:
            reason = pending.reject(frame)
            if reason:
                future.set_exception(
                    UnexpectedResponseError(f"{pending.label or 'command'} rejected: {reason}", frame)
                )
                return

        if pending.accept is not None and not pending.accept(frame):
            with self._guard:
                self._unmatched += 1
            logger.debug(f"Ignoring frame {frame.hex()} while waiting for {pending.label}")
            return

        future.set_result(frame)

    @staticmethod
    def _fail(pending: _PendingExchange, exc: Exception) -> None:
        if not pending.future.done():
            pending.future.set_exception(exc)
