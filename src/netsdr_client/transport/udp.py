"""
NetSDR Client - UDP Stream Transport

Receives NetSDR data-item datagrams on an asyncio datagram endpoint,
unpacks the IQ samples and hands them to the registered sample handlers.
"""

from __future__ import annotations

import asyncio
import logging
import socket

from netsdr_client.config.defaults import (
    DEFAULT_SAMPLE_SIZE_BITS,
    DEFAULT_UDP_HOST,
    DEFAULT_UDP_PORT,
    UDP_RECEIVE_BUFFER_BYTES,
)
from netsdr_client.core.errors import ProtocolError, SdrConnectionError
from netsdr_client.protocol.messages import get_samples, translate_message
from netsdr_client.stream.metrics import StreamMetricsTracker
from netsdr_client.transport.interface import StreamTransport

logger = logging.getLogger(__name__)


class _IQDatagramProtocol(asyncio.DatagramProtocol):
    """Forwards datagrams to the owning transport."""

    def __init__(self, owner: UdpStreamTransport):
        self._owner = owner

    def datagram_received(self, data: bytes, addr) -> None:
        self._owner._handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        logger.warning(f"IQ stream socket error: {exc}")
        self._owner.metrics_tracker.record_error(str(exc))


class UdpStreamTransport(StreamTransport):
    """
    IQ stream receiver.

    Usage:
        stream = UdpStreamTransport(port=60000)
        stream.add_sample_handler(recorder.write_samples)
        await stream.start_listening()
        ...
        stream.stop_listening()
    """

    def __init__(
        self,
        host: str = DEFAULT_UDP_HOST,
        port: int = DEFAULT_UDP_PORT,
        sample_size_bits: int = DEFAULT_SAMPLE_SIZE_BITS,
        metrics: StreamMetricsTracker | None = None,
    ):
        super().__init__()
        self._host = host
        self._port = port
        self._sample_size_bits = sample_size_bits
        self._metrics = metrics or StreamMetricsTracker()
        self._transport: asyncio.DatagramTransport | None = None

    @property
    def is_listening(self) -> bool:
        return self._transport is not None

    @property
    def metrics_tracker(self) -> StreamMetricsTracker:
        return self._metrics

    @property
    def local_address(self) -> tuple[str, int] | None:
        """Bound (host, port), or None when not listening."""
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")[:2]

    async def start_listening(self) -> None:
        """
        Bind the endpoint. No-op if already listening.

        Raises:
            SdrConnectionError: If the local address cannot be bound.
        """
        if self._transport is not None:
            return

        loop = asyncio.get_running_loop()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _IQDatagramProtocol(self),
                local_addr=(self._host, self._port),
            )
        except OSError as e:
            raise SdrConnectionError(
                f"Cannot bind IQ stream to {self._host}:{self._port}: {e}"
            ) from e

        sock = transport.get_extra_info("socket")
        if sock is not None:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, UDP_RECEIVE_BUFFER_BYTES)
            except OSError as e:
                logger.debug(f"Could not enlarge UDP receive buffer: {e}")

        self._transport = transport
        self._metrics.start_streaming()
        logger.info(f"IQ stream listening on {self.local_address[0]}:{self.local_address[1]}")

    def stop_listening(self) -> None:
        """Close the endpoint. Idempotent."""
        transport = self._transport
        self._transport = None
        if transport is None:
            return

        transport.close()
        self._metrics.stop_streaming()
        logger.info("IQ stream stopped")

    def _handle_datagram(self, data: bytes, addr) -> None:
        try:
            message = translate_message(data)
        except ProtocolError as e:
            self._metrics.record_decode_error(str(e))
            logger.warning(f"Dropped undecodable datagram from {addr}: {e}")
            return

        if not message.msg_type.is_data_item:
            self._metrics.record_decode_error(f"unexpected {message.msg_type.name} datagram")
            logger.warning(f"Dropped {message.msg_type.name} datagram from {addr}")
            return

        samples = get_samples(self._sample_size_bits, message.body)
        self._metrics.record_packet(len(data), len(samples), message.sequence_number)
        self._dispatch_samples(samples, message.sequence_number)
