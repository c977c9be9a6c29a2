"""
NetSDR Client - TCP Control Transport

asyncio stream connection to the receiver's control port. A background
reader task splits the byte stream into whole NetSDR frames and hands each
one to the registered frame handlers.
"""

from __future__ import annotations

import asyncio
import logging

from netsdr_client.config.defaults import (
    CONNECT_TIMEOUT_SECONDS,
    DEFAULT_HOST,
    DEFAULT_TCP_PORT,
    HEADER_LENGTH,
)
from netsdr_client.core.errors import ProtocolError, SdrConnectionError, TransportSendError
from netsdr_client.protocol.messages import parse_header
from netsdr_client.transport.interface import ControlTransport

logger = logging.getLogger(__name__)


class TcpControlTransport(ControlTransport):
    """
    Control channel over TCP.

    Usage:
        transport = TcpControlTransport("192.168.1.50", 50000)
        transport.add_frame_handler(on_frame)
        await transport.connect()
        await transport.send(frame)
        transport.disconnect()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_TCP_PORT,
        connect_timeout_s: float = CONNECT_TIMEOUT_SECONDS,
    ):
        super().__init__()
        self._host = host
        self._port = port
        self._connect_timeout_s = connect_timeout_s
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task | None = None

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self) -> None:
        """Open the TCP connection and start the reader task."""
        if self.connected:
            return

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise SdrConnectionError(
                f"Timed out connecting to {self._host}:{self._port} after {self._connect_timeout_s} s"
            ) from e
        except OSError as e:
            raise SdrConnectionError(f"Cannot connect to {self._host}:{self._port}: {e}") from e

        self._reader = reader
        self._writer = writer
        self._reader_task = asyncio.create_task(
            self._read_loop(reader), name="netsdr-control-reader"
        )
        logger.info(f"Control channel connected to {self._host}:{self._port}")

    def disconnect(self) -> None:
        """Close the connection. Idempotent."""
        task, writer = self._reader_task, self._writer
        self._reader_task = None
        self._reader = None
        self._writer = None

        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        if writer is not None:
            try:
                writer.close()
            except RuntimeError:
                # Event loop already closed
                logger.debug("Ignoring close error on stopped loop", exc_info=True)
            logger.info(f"Control channel to {self._host}:{self._port} closed")

    async def send(self, frame: bytes) -> None:
        writer = self._writer
        if writer is None or writer.is_closing():
            raise TransportSendError("Control channel is not connected")

        try:
            writer.write(frame)
            await writer.drain()
        except (ConnectionError, OSError) as e:
            self.disconnect()
            raise TransportSendError(f"Send failed: {e}") from e

        logger.debug(f"Sent {len(frame)} byte frame: {frame.hex()}")

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Read frames until EOF, error or cancellation."""
        reason = "closed by receiver"
        try:
            while True:
                header = await reader.readexactly(HEADER_LENGTH)
                _, length = parse_header(header)
                if length < HEADER_LENGTH:
                    raise ProtocolError(f"Invalid frame length {length}")
                body = await reader.readexactly(length - HEADER_LENGTH)
                frame = header + body
                logger.debug(f"Received {len(frame)} byte frame: {frame.hex()}")
                self._dispatch_frame(frame)
        except asyncio.IncompleteReadError:
            logger.info("Control channel closed by receiver")
        except (OSError, ProtocolError) as e:
            reason = str(e)
            logger.warning(f"Control channel read failed: {e}")

        # Still the active reader: tear down and tell the owner
        if self._reader is reader:
            self.disconnect()
            self._dispatch_closed(reason)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
