"""
NetSDR Client - Test Configuration

Pytest fixtures and fake transports for testing.
"""

import asyncio
import socket
import threading

import numpy as np
import pytest

from netsdr_client.client.sdr_client import SdrClient
from netsdr_client.config.schema import ExchangeConfig
from netsdr_client.protocol.commands import CommandCodec
from netsdr_client.transport.interface import ControlTransport, StreamTransport


class FakeControlTransport(ControlTransport):
    """
    In-memory control transport that records every call.

    respond selects how each sent frame is answered:
        "inline"  response dispatched inside send(), before it returns
        "later"   response dispatched on a later loop iteration
        "thread"  response dispatched from a separate thread
        "none"    no response; the test calls push()

    The response is reply(frame) when reply is set, otherwise an echo.
    """

    def __init__(self, respond="inline"):
        super().__init__()
        self.respond = respond
        self.reply = None
        self.sent = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.connect_error = None
        self.send_error = None
        self.threads = []
        self._connected = False

    @property
    def connected(self):
        return self._connected

    async def connect(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = True

    def disconnect(self):
        self.disconnect_calls += 1
        self._connected = False

    async def send(self, frame):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(bytes(frame))

        response = self.reply(frame) if self.reply is not None else bytes(frame)
        if self.respond == "inline":
            self._dispatch_frame(response)
        elif self.respond == "later":
            asyncio.get_running_loop().call_soon(self._dispatch_frame, response)
        elif self.respond == "thread":
            thread = threading.Thread(target=self._dispatch_frame, args=(response,))
            self.threads.append(thread)
            thread.start()

    def push(self, frame):
        """Deliver an inbound frame as the receiver would."""
        self._dispatch_frame(frame)

    def drop(self, reason="peer reset"):
        """Simulate the receiver closing the connection."""
        self._connected = False
        self._dispatch_closed(reason)

    async def wait_for_sent(self, count, timeout=1.0):
        """Wait until at least count frames have been sent."""

        async def _poll():
            while len(self.sent) < count:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(_poll(), timeout)


class FakeStreamTransport(StreamTransport):
    """In-memory stream transport that records start/stop calls."""

    def __init__(self):
        super().__init__()
        self.start_calls = 0
        self.stop_calls = 0
        self._listening = False

    @property
    def is_listening(self):
        return self._listening

    async def start_listening(self):
        self.start_calls += 1
        self._listening = True

    def stop_listening(self):
        self.stop_calls += 1
        self._listening = False

    def emit(self, samples, sequence_number=1):
        self._dispatch_samples(np.asarray(samples, dtype=np.int32), sequence_number)


@pytest.fixture
def control():
    """Control transport answering inside send()."""
    return FakeControlTransport()


@pytest.fixture
def stream():
    return FakeStreamTransport()


@pytest.fixture
def codec():
    return CommandCodec()


@pytest.fixture
def make_client(control, stream, codec):
    """Build an SdrClient on the fake transports."""

    def _make(**exchange_kwargs):
        return SdrClient(control, stream, codec, ExchangeConfig(**exchange_kwargs))

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def busy_udp_port():
    """A localhost UDP port held open by another socket."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def iq_samples():
    """Interleaved I/Q test values covering the int16 range."""
    return np.array([0, 1, -1, 32767, -32768, 1234, -4321, 42], dtype=np.int32)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: mark test as using real sockets on localhost"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
