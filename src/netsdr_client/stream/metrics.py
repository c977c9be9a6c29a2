"""
Stream Metrics - Real-time UDP IQ stream tracking.

Provides observability into the IQ stream including:
- Packet, byte and sample counters
- Sequence gap, loss and reordering detection
- Decode error history
- Streaming uptime and packet rate
"""

import threading
import time
from collections import deque
from dataclasses import dataclass

SEQUENCE_MODULUS = 1 << 16
# Forward steps beyond this are a late or duplicate packet, not loss
REORDER_THRESHOLD = SEQUENCE_MODULUS // 2


@dataclass
class StreamMetrics:
    """Real-time IQ stream metrics."""

    # Traffic
    packets_received: int = 0
    bytes_received: int = 0
    samples_received: int = 0
    packet_rate_per_sec: float = 0.0

    # Sequence tracking
    last_sequence: int | None = None
    sequence_gaps: int = 0
    packets_lost: int = 0
    packets_out_of_order: int = 0

    # Errors
    decode_errors: int = 0
    last_error: str | None = None

    # Streaming
    streaming_uptime_seconds: float = 0.0
    streaming_start_time: float | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for status output."""
        return {
            "traffic": {
                "packets": self.packets_received,
                "bytes": self.bytes_received,
                "samples": self.samples_received,
                "packet_rate_per_sec": self.packet_rate_per_sec,
            },
            "sequence": {
                "last": self.last_sequence,
                "gaps": self.sequence_gaps,
                "lost_packets": self.packets_lost,
                "out_of_order": self.packets_out_of_order,
            },
            "errors": {
                "decode_errors": self.decode_errors,
                "last_error": self.last_error,
            },
            "streaming": {
                "uptime_seconds": self.streaming_uptime_seconds,
                "active": self.streaming_start_time is not None,
            },
        }


def sequence_distance(previous: int, current: int) -> int:
    """
    Number of sequence steps from previous to current.

    The receiver skips 0 after wrapping, so 65535 -> 1 is one step.
    """
    distance = (current - previous) % SEQUENCE_MODULUS
    if current < previous and current != 0 and distance > 0:
        distance -= 1
    return distance


class StreamMetricsTracker:
    """
    Thread-safe stream metrics tracker with rolling window rates.
    """

    def __init__(self, window_seconds: float = 5.0, max_errors: int = 100):
        self._metrics = StreamMetrics()
        self._lock = threading.RLock()

        self._window_seconds = window_seconds
        self._packet_timestamps: deque = deque(maxlen=10_000)
        self._error_history: deque = deque(maxlen=max_errors)

    @property
    def metrics(self) -> StreamMetrics:
        """Get current metrics snapshot."""
        with self._lock:
            self._update_rates()
            self._update_uptime()
            return StreamMetrics(**vars(self._metrics))

    def record_packet(self, num_bytes: int, num_samples: int, sequence: int | None) -> None:
        """Record one decoded data packet."""
        with self._lock:
            m = self._metrics
            m.packets_received += 1
            m.bytes_received += num_bytes
            m.samples_received += num_samples
            self._packet_timestamps.append(time.time())

            if sequence is None:
                return
            if m.last_sequence is not None:
                step = sequence_distance(m.last_sequence, sequence)
                if step == 0 or step > REORDER_THRESHOLD:
                    m.packets_out_of_order += 1
                    return
                if step > 1:
                    m.sequence_gaps += 1
                    m.packets_lost += step - 1
            m.last_sequence = sequence

    def record_decode_error(self, error: str) -> None:
        """Record a datagram that could not be decoded."""
        with self._lock:
            self._metrics.decode_errors += 1
            self.record_error(error)

    def record_error(self, error: str) -> None:
        with self._lock:
            self._metrics.last_error = error
            self._error_history.append({"timestamp": time.time(), "error": error})

    def start_streaming(self) -> None:
        """Mark streaming start; sequence tracking restarts."""
        with self._lock:
            self._metrics.streaming_start_time = time.time()
            self._metrics.last_sequence = None

    def stop_streaming(self) -> None:
        with self._lock:
            self._update_uptime()
            self._metrics.streaming_start_time = None

    def reset(self) -> None:
        with self._lock:
            self._metrics = StreamMetrics()
            self._packet_timestamps.clear()
            self._error_history.clear()

    def get_error_history(self) -> list[dict]:
        with self._lock:
            return list(self._error_history)

    def _update_rates(self) -> None:
        cutoff = time.time() - self._window_seconds
        recent = sum(1 for t in self._packet_timestamps if t > cutoff)
        self._metrics.packet_rate_per_sec = recent / self._window_seconds

    def _update_uptime(self) -> None:
        if self._metrics.streaming_start_time is not None:
            self._metrics.streaming_uptime_seconds = (
                time.time() - self._metrics.streaming_start_time
            )
