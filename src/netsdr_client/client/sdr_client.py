"""
NetSDR Client - Receiver Client

Drives a NetSDR receiver: initialization on connect, IQ start/stop and
frequency changes over the control channel, with the UDP stream opened only
after the receiver confirms the start command and closed only after it
confirms the stop command.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from functools import partial

from netsdr_client.client.exchange import ExchangeSlot
from netsdr_client.config.schema import ExchangeConfig, NetSdrClientConfig
from netsdr_client.core.errors import NetSdrError
from netsdr_client.core.logging_config import log_exchange
from netsdr_client.protocol.commands import CommandCodec, item_name
from netsdr_client.transport.interface import ControlTransport, StreamTransport
from netsdr_client.transport.tcp import TcpControlTransport
from netsdr_client.transport.udp import UdpStreamTransport

logger = logging.getLogger(__name__)


class ClientState(str, Enum):
    """Observable client state, derived from the control link and IQ flag."""

    DISCONNECTED = "disconnected"
    CONNECTED_IDLE = "connected_idle"
    STREAMING = "streaming"


class SdrClient:
    """
    NetSDR receiver client.

    Every command is one exchange: the frame is sent and the client waits for
    the next frame the control transport delivers. Only one exchange is in
    flight at a time; connect, start_iq, stop_iq and change_frequency are
    serialized.

    Usage:
        client = SdrClient.from_config(NetSdrClientConfig())
        await client.connect()
        await client.change_frequency(14_200_000, channel=0)
        await client.start_iq()
        ...
        await client.stop_iq()
        client.disconnect()
    """

    def __init__(
        self,
        control: ControlTransport,
        stream: StreamTransport,
        codec: CommandCodec | None = None,
        exchange: ExchangeConfig | None = None,
    ):
        self._control = control
        self._stream = stream
        self._codec = codec or CommandCodec()
        self._exchange_config = exchange or ExchangeConfig()

        self._slot = ExchangeSlot()
        self._op_lock = asyncio.Lock()
        self._iq_started = False

        control.add_frame_handler(self._on_frame)
        control.add_close_handler(self._on_closed)

    @classmethod
    def from_config(cls, config: NetSdrClientConfig) -> SdrClient:
        """Build a client on TCP/UDP transports from configuration."""
        control = TcpControlTransport(
            config.control.host, config.control.port, config.control.connect_timeout_s
        )
        stream = UdpStreamTransport(
            config.stream.host, config.stream.port, config.stream.sample_size_bits
        )
        return cls(control, stream, CommandCodec(config.receiver), config.exchange)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def control(self) -> ControlTransport:
        return self._control

    @property
    def stream(self) -> StreamTransport:
        return self._stream

    @property
    def connected(self) -> bool:
        return self._control.connected

    @property
    def iq_started(self) -> bool:
        """True once the receiver confirmed a start command, until a confirmed stop."""
        return self._iq_started

    @iq_started.setter
    def iq_started(self, value: bool) -> None:
        self._iq_started = bool(value)

    @property
    def state(self) -> ClientState:
        if not self._control.connected:
            return ClientState.DISCONNECTED
        if self._iq_started:
            return ClientState.STREAMING
        return ClientState.CONNECTED_IDLE

    @property
    def exchange_pending(self) -> bool:
        return self._slot.pending

    def status(self) -> dict:
        """Snapshot of client, exchange and stream state."""
        status = {
            "state": self.state.value,
            "connected": self.connected,
            "iq_started": self._iq_started,
            "exchange_pending": self._slot.pending,
            "exchanges_completed": self._slot.completed_count,
            "unmatched_frames": self._slot.unmatched_count,
            "stream_listening": self._stream.is_listening,
        }
        tracker = self._stream.metrics_tracker
        if tracker is not None:
            status["stream"] = tracker.metrics.to_dict()
        return status

    # =========================================================================
    # Connection
    # =========================================================================

    async def connect(self) -> None:
        """
        Connect and initialize the receiver.

        No-op if already connected. Sends the IQ sample rate, RF filter and
        A/D mode items one exchange at a time.

        Raises:
            SdrConnectionError: If the control channel cannot be opened.
        """
        async with self._op_lock:
            if self._control.connected:
                logger.debug("connect() ignored: already connected")
                return

            await self._control.connect()

            try:
                for frame in self._codec.init_frames():
                    await self._exchange(frame)
            except NetSdrError:
                logger.error("Receiver initialization failed; closing control channel")
                self._control.disconnect()
                raise

            logger.info("Receiver connected and initialized")

    def disconnect(self) -> None:
        """
        Close the control channel.

        Leaves iq_started as it is. A pending exchange fails with
        SdrConnectionError.
        """
        self._control.disconnect()
        if self._slot.abort("Control channel disconnected"):
            logger.warning("Disconnected with an exchange pending")
        logger.info("Receiver disconnected")

    async def close(self) -> None:
        """Stop IQ if running, stop the stream and disconnect."""
        if self._iq_started and self._control.connected:
            try:
                await self.stop_iq()
            except NetSdrError as e:
                logger.warning(f"Stop IQ during close failed: {e}")
        self._stream.stop_listening()
        self.disconnect()

    async def __aenter__(self) -> SdrClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # =========================================================================
    # IQ streaming
    # =========================================================================

    async def start_iq(self) -> None:
        """
        Start IQ transfer, then open the UDP stream.

        No-op if already started or not connected.
        """
        async with self._op_lock:
            if self._iq_started:
                logger.debug("start_iq() ignored: IQ already started")
                return
            if not self._control.connected:
                logger.debug("start_iq() ignored: not connected")
                return

            await self._exchange(self._codec.start_iq())
            self._iq_started = True
            logger.info("IQ transfer started")

            await self._stream.start_listening()

    async def stop_iq(self) -> None:
        """
        Stop IQ transfer, then close the UDP stream.

        No-op if not started or not connected.
        """
        async with self._op_lock:
            if not self._iq_started:
                logger.debug("stop_iq() ignored: IQ not started")
                return
            if not self._control.connected:
                logger.debug("stop_iq() ignored: not connected")
                return

            await self._exchange(self._codec.stop_iq())
            self._iq_started = False
            logger.info("IQ transfer stopped")

            self._stream.stop_listening()

    # =========================================================================
    # Frequency
    # =========================================================================

    async def change_frequency(self, frequency: int, channel: int) -> None:
        """
        Tune a receiver channel.

        No-op if not connected.

        Raises:
            ValueError: If frequency or channel is outside the wire range.
        """
        async with self._op_lock:
            if not self._control.connected:
                logger.debug("change_frequency() ignored: not connected")
                return

            await self._exchange(self._codec.set_frequency(frequency, channel))
            logger.info(f"Channel {channel} tuned to {frequency} Hz")

    # =========================================================================
    # Internal
    # =========================================================================

    async def _exchange(self, frame: bytes) -> bytes:
        item = item_name(frame)
        accept = reject = None
        if self._exchange_config.validate_responses:
            accept = partial(self._codec.matches, frame)
            reject = self._codec.rejection

        start = time.perf_counter()
        response = await self._slot.exchange(
            frame,
            self._control.send,
            timeout_s=self._exchange_config.response_timeout_s,
            accept=accept,
            reject=reject,
            label=item,
        )
        log_exchange(logger, item, (time.perf_counter() - start) * 1000, len(response))
        return response

    def _on_frame(self, frame: bytes) -> None:
        self._slot.resolve(frame)

    def _on_closed(self, reason: str) -> None:
        logger.warning(f"Control channel lost: {reason}")
        self._slot.abort(f"Control channel closed: {reason}")
