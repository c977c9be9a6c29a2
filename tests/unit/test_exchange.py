"""
NetSDR Client - Exchange Slot Tests

Unit tests for the single-slot command/response correlation.
"""

import asyncio
import threading

import pytest

from netsdr_client.client.exchange import ExchangeSlot
from netsdr_client.core.errors import (
    ExchangeTimeoutError,
    SdrConnectionError,
    TransportSendError,
    UnexpectedResponseError,
)


class TestExchangeSlot:
    """Tests for ExchangeSlot."""

    def test_initial_state(self):
        """Test a new slot is idle."""
        slot = ExchangeSlot()

        assert not slot.busy
        assert not slot.pending
        assert slot.completed_count == 0
        assert slot.unmatched_count == 0

    @pytest.mark.asyncio
    async def test_response_inside_send(self):
        """Test a response delivered before send returns is not lost."""
        slot = ExchangeSlot()

        async def send(frame):
            slot.resolve(b"reply")

        assert await slot.exchange(b"cmd", send) == b"reply"
        assert slot.completed_count == 1
        assert not slot.pending

    @pytest.mark.asyncio
    async def test_response_from_thread(self):
        """Test a response delivered from a foreign thread resolves."""
        slot = ExchangeSlot()
        threads = []

        async def send(frame):
            thread = threading.Thread(target=slot.resolve, args=(frame[::-1],))
            threads.append(thread)
            thread.start()

        response = await asyncio.wait_for(slot.exchange(b"abc", send), 1.0)
        threads[0].join(1.0)

        assert response == b"cba"

    @pytest.mark.asyncio
    async def test_second_frame_is_dropped(self):
        """Test only the first frame resolves; the second is counted."""
        slot = ExchangeSlot()

        async def send(frame):
            slot.resolve(b"first")
            slot.resolve(b"second")

        assert await slot.exchange(b"cmd", send) == b"first"
        await asyncio.sleep(0)
        assert slot.unmatched_count == 1

    @pytest.mark.asyncio
    async def test_resolve_without_pending(self):
        """Test a frame with no pending exchange is dropped."""
        slot = ExchangeSlot()

        assert slot.resolve(b"stray") is False
        assert slot.unmatched_count == 1

    @pytest.mark.asyncio
    async def test_exchanges_never_overlap(self):
        """Test a second exchange waits for the first to resolve."""
        slot = ExchangeSlot()
        sent = []

        async def send(frame):
            sent.append(frame)

        first = asyncio.create_task(slot.exchange(b"one", send))
        second = asyncio.create_task(slot.exchange(b"two", send))
        await asyncio.sleep(0.01)

        assert sent == [b"one"]
        assert slot.busy

        slot.resolve(b"r1")
        assert await asyncio.wait_for(first, 1.0) == b"r1"
        await asyncio.sleep(0.01)
        assert sent == [b"one", b"two"]

        slot.resolve(b"r2")
        assert await asyncio.wait_for(second, 1.0) == b"r2"

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test a missing response raises ExchangeTimeoutError and frees the slot."""
        slot = ExchangeSlot()

        async def send(frame):
            pass

        with pytest.raises(ExchangeTimeoutError) as exc_info:
            await slot.exchange(b"cmd", send, timeout_s=0.02, label="RECEIVER_STATE")

        assert exc_info.value.timeout_s == 0.02
        assert exc_info.value.item == "RECEIVER_STATE"
        assert not slot.pending
        assert not slot.busy

    @pytest.mark.asyncio
    async def test_send_failure_frees_slot(self):
        """Test a send error propagates and leaves nothing pending."""
        slot = ExchangeSlot()

        async def send(frame):
            raise TransportSendError("closed")

        with pytest.raises(TransportSendError):
            await slot.exchange(b"cmd", send)

        assert not slot.pending
        assert not slot.busy

    @pytest.mark.asyncio
    async def test_abort(self):
        """Test abort fails the waiting caller with SdrConnectionError."""
        slot = ExchangeSlot()

        async def send(frame):
            pass

        task = asyncio.create_task(slot.exchange(b"cmd", send))
        await asyncio.sleep(0.01)

        assert slot.abort("gone") is True
        with pytest.raises(SdrConnectionError, match="gone"):
            await asyncio.wait_for(task, 1.0)

    def test_abort_without_pending(self):
        """Test abort with nothing pending reports False."""
        assert ExchangeSlot().abort("idle") is False

    @pytest.mark.asyncio
    async def test_accept_filters_frames(self):
        """Test frames refused by accept do not resolve the exchange."""
        slot = ExchangeSlot()

        async def send(frame):
            slot.resolve(b"noise")
            slot.resolve(b"match")

        response = await slot.exchange(b"cmd", send, accept=lambda f: f == b"match")

        assert response == b"match"
        assert slot.unmatched_count == 1

    @pytest.mark.asyncio
    async def test_reject_fails_exchange(self):
        """Test a rejected frame raises UnexpectedResponseError."""
        slot = ExchangeSlot()

        async def send(frame):
            slot.resolve(b"\x02\x00")

        with pytest.raises(UnexpectedResponseError) as exc_info:
            await slot.exchange(
                b"cmd", send, reject=lambda f: "NAK" if f == b"\x02\x00" else None
            )

        assert exc_info.value.frame == b"\x02\x00"
