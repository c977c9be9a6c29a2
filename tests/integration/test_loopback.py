"""
NetSDR Client Loopback Integration Tests

Runs the client over real localhost sockets against a minimal receiver
emulator:
- Control exchanges over TCP
- IQ datagrams over UDP into metrics and a recording
- Connection loss, timeouts and NAKs
"""

import asyncio
import socket

import numpy as np
import pytest
import pytest_asyncio

from netsdr_client.client.sdr_client import ClientState, SdrClient
from netsdr_client.config.schema import ExchangeConfig
from netsdr_client.core.errors import (
    ExchangeTimeoutError,
    SdrConnectionError,
    UnexpectedResponseError,
)
from netsdr_client.protocol.commands import CommandCodec
from netsdr_client.protocol.messages import (
    ControlItemCode,
    MsgType,
    data_item_message,
    parse_header,
)
from netsdr_client.stream.recorder import IQRecorder
from netsdr_client.transport.tcp import TcpControlTransport
from netsdr_client.transport.udp import UdpStreamTransport

pytestmark = pytest.mark.integration

NAK = b"\x02\x00"


class ReceiverEmulator:
    """
    Minimal NetSDR receiver on localhost.

    Echoes every control item. Items listed in silent_items get no answer,
    nak_items are answered with a NAK and close_on_items drop the connection.
    """

    def __init__(self):
        self.received = []
        self.silent_items = set()
        self.nak_items = set()
        self.close_on_items = set()
        self.split_responses = False
        self.port = None
        self._server = None
        self._writers = []

    async def start(self):
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self):
        for writer in self._writers:
            writer.close()
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader, writer):
        self._writers.append(writer)
        try:
            while True:
                header = await reader.readexactly(2)
                _, length = parse_header(header)
                frame = header + await reader.readexactly(length - 2)
                self.received.append(frame)

                item = CommandCodec.item_of(frame)
                if item in self.close_on_items:
                    return
                if item in self.silent_items:
                    continue

                response = NAK if item in self.nak_items else frame
                if self.split_responses:
                    writer.write(response[:1])
                    await writer.drain()
                    await asyncio.sleep(0.01)
                    response = response[1:]
                writer.write(response)
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()


@pytest_asyncio.fixture
async def emulator():
    emu = ReceiverEmulator()
    await emu.start()
    yield emu
    await emu.stop()


@pytest_asyncio.fixture
async def make_tcp_client(emulator):
    """Build clients connected to the emulator; UDP binds an ephemeral port."""
    clients = []

    def _make(**exchange_kwargs):
        exchange_kwargs.setdefault("response_timeout_s", 2.0)
        control = TcpControlTransport("127.0.0.1", emulator.port, connect_timeout_s=2.0)
        stream = UdpStreamTransport("127.0.0.1", 0)
        client = SdrClient(control, stream, CommandCodec(), ExchangeConfig(**exchange_kwargs))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.stream.stop_listening()
        client.disconnect()
    await asyncio.sleep(0.01)


async def send_datagrams(address, frames):
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        asyncio.DatagramProtocol, remote_addr=address
    )
    try:
        for frame in frames:
            transport.sendto(frame)
    finally:
        transport.close()


async def wait_until(predicate, timeout=2.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


def iq_frame(values, sequence):
    payload = np.asarray(values, dtype="<i2").tobytes()
    return data_item_message(MsgType.DATA_ITEM_0, payload, sequence)


class TestControlSession:
    """Control channel exchanges over TCP."""

    @pytest.mark.asyncio
    async def test_full_session(self, emulator, make_tcp_client):
        """Test connect, tune, start and stop reach the receiver in order."""
        client = make_tcp_client()
        codec = CommandCodec()

        await client.connect()
        assert client.state is ClientState.CONNECTED_IDLE

        await client.change_frequency(14_200_000, 0)
        await client.start_iq()
        assert client.state is ClientState.STREAMING
        assert client.stream.is_listening

        await client.stop_iq()
        assert client.state is ClientState.CONNECTED_IDLE
        assert not client.stream.is_listening

        assert emulator.received == [
            *codec.init_frames(),
            codec.set_frequency(14_200_000, 0),
            codec.start_iq(),
            codec.stop_iq(),
        ]

    @pytest.mark.asyncio
    async def test_split_responses(self, emulator, make_tcp_client):
        """Test responses arriving in pieces are reassembled."""
        emulator.split_responses = True
        client = make_tcp_client()

        await client.connect()
        await client.change_frequency(2_000_000_000, 0)

        assert len(emulator.received) == 4

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test connecting to a closed port raises and sends nothing."""
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]

        client = SdrClient(
            TcpControlTransport("127.0.0.1", port, connect_timeout_s=1.0),
            UdpStreamTransport("127.0.0.1", 0),
        )

        with pytest.raises(SdrConnectionError):
            await client.connect()
        assert client.state is ClientState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_receiver_drops_connection(self, emulator, make_tcp_client):
        """Test a pending exchange fails when the receiver closes the socket."""
        emulator.close_on_items.add(ControlItemCode.RECEIVER_STATE)
        client = make_tcp_client()
        await client.connect()

        with pytest.raises(SdrConnectionError):
            await client.start_iq()

        assert not client.connected
        assert not client.iq_started
        assert not client.stream.is_listening

    @pytest.mark.asyncio
    async def test_silent_receiver_times_out(self, emulator, make_tcp_client):
        emulator.silent_items.add(ControlItemCode.RECEIVER_FREQUENCY)
        client = make_tcp_client(response_timeout_s=0.1)
        await client.connect()

        with pytest.raises(ExchangeTimeoutError):
            await client.change_frequency(7_000_000, 0)
        assert client.connected

    @pytest.mark.asyncio
    async def test_strict_mode_nak(self, emulator, make_tcp_client):
        emulator.nak_items.add(ControlItemCode.RECEIVER_STATE)
        client = make_tcp_client(validate_responses=True)
        await client.connect()

        with pytest.raises(UnexpectedResponseError):
            await client.start_iq()
        assert not client.iq_started


class TestIQStream:
    """IQ data over UDP."""

    @pytest.mark.asyncio
    async def test_samples_recorded(self, make_tcp_client, tmp_path):
        """Test datagrams reach the metrics and the recording."""
        client = make_tcp_client()
        recorder = IQRecorder(tmp_path / "samples.bin")
        recorder.start()
        client.stream.add_sample_handler(recorder.write_samples)

        await client.connect()
        await client.start_iq()
        address = client.stream.local_address

        frames = [iq_frame([i, -i, 100 + i, -100 - i], seq) for i, seq in enumerate((1, 2, 5))]
        await send_datagrams(address, frames)

        tracker = client.stream.metrics_tracker
        await wait_until(lambda: tracker.metrics.packets_received == 3)
        await client.stop_iq()
        summary = recorder.stop()

        m = tracker.metrics
        assert m.samples_received == 12
        assert m.sequence_gaps == 1
        assert m.packets_lost == 2
        assert summary.num_values == 12

        data = np.fromfile(recorder.path, dtype="<i2")
        np.testing.assert_array_equal(data[:4], [0, 0, 100, -100])

    @pytest.mark.asyncio
    async def test_bad_datagrams_counted(self, make_tcp_client):
        client = make_tcp_client()
        await client.connect()
        await client.start_iq()

        await send_datagrams(
            client.stream.local_address,
            [b"\x09\x00\x01", CommandCodec().start_iq(), iq_frame([1, 2], 1)],
        )

        tracker = client.stream.metrics_tracker
        await wait_until(lambda: tracker.metrics.packets_received == 1)
        assert tracker.metrics.decode_errors == 2
