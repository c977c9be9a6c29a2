"""
NetSDR Client - Transport Interfaces

Abstract control (TCP) and stream (UDP) transports the client depends on.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

import numpy as np

logger = logging.getLogger(__name__)

FrameHandler = Callable[[bytes], None]
CloseHandler = Callable[[str], None]
SampleHandler = Callable[[np.ndarray, int], None]


class ControlTransport(ABC):
    """
    Persistent bidirectional control connection.

    All implementations must:
    - Fail connect() with SdrConnectionError and leave no partial state
    - Make disconnect() idempotent and safe in any state
    - Fail send() with TransportSendError when not connected
    - Invoke every registered frame handler once per inbound frame
    """

    def __init__(self):
        self._frame_handlers: list[FrameHandler] = []
        self._close_handlers: list[CloseHandler] = []
        self._handlers_lock = threading.Lock()

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the connection is open."""

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            SdrConnectionError: If the endpoint cannot be reached.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection. Safe to call at any time."""

    @abstractmethod
    async def send(self, frame: bytes) -> None:
        """
        Send one frame.

        Raises:
            TransportSendError: If the connection is not open.
        """

    def add_frame_handler(self, handler: FrameHandler) -> None:
        """Register a callback invoked with each inbound frame."""
        with self._handlers_lock:
            if handler not in self._frame_handlers:
                self._frame_handlers.append(handler)

    def remove_frame_handler(self, handler: FrameHandler) -> None:
        with self._handlers_lock:
            if handler in self._frame_handlers:
                self._frame_handlers.remove(handler)

    def _dispatch_frame(self, frame: bytes) -> None:
        """Deliver an inbound frame to every handler."""
        with self._handlers_lock:
            handlers = list(self._frame_handlers)
        for handler in handlers:
            try:
                handler(frame)
            except Exception:
                logger.exception("Frame handler failed")

    def add_close_handler(self, handler: CloseHandler) -> None:
        """Register a callback invoked when the peer or the network closes the connection."""
        with self._handlers_lock:
            if handler not in self._close_handlers:
                self._close_handlers.append(handler)

    def remove_close_handler(self, handler: CloseHandler) -> None:
        with self._handlers_lock:
            if handler in self._close_handlers:
                self._close_handlers.remove(handler)

    def _dispatch_closed(self, reason: str) -> None:
        with self._handlers_lock:
            handlers = list(self._close_handlers)
        for handler in handlers:
            try:
                handler(reason)
            except Exception:
                logger.exception("Close handler failed")


class StreamTransport(ABC):
    """
    Continuous IQ sample receiver.

    start_listening() begins receiving and returns once the receive path is
    in place; samples then flow to the registered handlers until
    stop_listening() is called.
    """

    def __init__(self):
        self._sample_handlers: list[SampleHandler] = []
        self._handlers_lock = threading.Lock()

    @property
    @abstractmethod
    def is_listening(self) -> bool:
        """Whether the receive loop is running."""

    @property
    def metrics_tracker(self):
        """Stream health tracker, if the implementation keeps one."""
        return None

    @abstractmethod
    async def start_listening(self) -> None:
        """Begin continuous receive."""

    @abstractmethod
    def stop_listening(self) -> None:
        """Halt the receive loop synchronously. Safe to call at any time."""

    def add_sample_handler(self, handler: SampleHandler) -> None:
        """Register a callback invoked with (samples, sequence_number)."""
        with self._handlers_lock:
            if handler not in self._sample_handlers:
                self._sample_handlers.append(handler)

    def remove_sample_handler(self, handler: SampleHandler) -> None:
        with self._handlers_lock:
            if handler in self._sample_handlers:
                self._sample_handlers.remove(handler)

    def _dispatch_samples(self, samples: np.ndarray, sequence_number: int) -> None:
        with self._handlers_lock:
            handlers = list(self._sample_handlers)
        for handler in handlers:
            try:
                handler(samples, sequence_number)
            except Exception:
                logger.exception("Sample handler failed")
