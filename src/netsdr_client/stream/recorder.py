"""
NetSDR Client - IQ Recorder

Appends received IQ samples to a raw file and writes a JSON sidecar with
the capture metadata when the recording stops.

Raw format: interleaved I/Q, little-endian int16 for 16-bit streams and
int32 for 24/32-bit streams.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class RecordingSummary:
    """Metadata for a finished recording."""

    path: str
    sample_size_bits: int
    datatype: str
    num_values: int
    num_packets: int
    file_size_bytes: int
    started_at: str
    stopped_at: str
    duration_seconds: float
    first_sequence: int | None = None
    last_sequence: int | None = None


class IQRecorder:
    """
    Raw IQ sample writer.

    Usage:
        recorder = IQRecorder("samples.bin", sample_size_bits=16)
        recorder.start()
        stream.add_sample_handler(recorder.write_samples)
        ...
        summary = recorder.stop()
    """

    def __init__(self, output_path: str | Path, sample_size_bits: int = 16):
        self._path = Path(output_path)
        self._sample_size_bits = sample_size_bits
        self._dtype = np.dtype("<i2") if sample_size_bits <= 16 else np.dtype("<i4")

        # Guards the file handle against the receive path and stop()
        self._lock = threading.Lock()
        self._file = None
        self._state: dict[str, Any] = {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_recording(self) -> bool:
        return self._file is not None

    @property
    def datatype(self) -> str:
        return "ci16_le" if self._dtype.itemsize == 2 else "ci32_le"

    def start(self, append: bool = False) -> None:
        """Open the output file. No-op if already recording."""
        with self._lock:
            if self._file is not None:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "ab" if append else "wb")
            self._state = {
                "start_time": time.time(),
                "started_at": datetime.now(timezone.utc).isoformat(),
                "num_values": 0,
                "num_packets": 0,
                "first_sequence": None,
                "last_sequence": None,
            }
        logger.info(f"Recording IQ samples to {self._path}")

    def write_samples(self, samples: np.ndarray, sequence_number: int | None = None) -> bool:
        """
        Append one packet of samples.

        Returns:
            True if written, False if the recorder is not running.
        """
        data = np.asarray(samples).astype(self._dtype, copy=False).tobytes()

        with self._lock:
            if self._file is None:
                return False
            self._file.write(data)
            self._state["num_values"] += len(samples)
            self._state["num_packets"] += 1
            if sequence_number is not None:
                if self._state["first_sequence"] is None:
                    self._state["first_sequence"] = sequence_number
                self._state["last_sequence"] = sequence_number
        return True

    def stop(self) -> RecordingSummary | None:
        """Close the file and write the sidecar. Returns None if not recording."""
        with self._lock:
            handle, state = self._file, self._state
            self._file = None
            self._state = {}

        if handle is None:
            return None

        try:
            handle.close()
        except OSError as e:
            logger.warning(f"Error closing recording file: {e}")

        try:
            file_size = self._path.stat().st_size
        except OSError:
            file_size = state["num_values"] * self._dtype.itemsize

        summary = RecordingSummary(
            path=str(self._path),
            sample_size_bits=self._sample_size_bits,
            datatype=self.datatype,
            num_values=state["num_values"],
            num_packets=state["num_packets"],
            file_size_bytes=file_size,
            started_at=state["started_at"],
            stopped_at=datetime.now(timezone.utc).isoformat(),
            duration_seconds=time.time() - state["start_time"],
            first_sequence=state["first_sequence"],
            last_sequence=state["last_sequence"],
        )
        self._write_sidecar(summary)
        logger.info(
            f"Recording stopped: {summary.num_packets} packets, {summary.file_size_bytes} bytes"
        )
        return summary

    @property
    def sidecar_path(self) -> Path:
        return self._path.with_name(self._path.name + ".json")

    def _write_sidecar(self, summary: RecordingSummary) -> None:
        with open(self.sidecar_path, "w") as f:
            json.dump(asdict(summary), f, indent=2)
