"""
NetSDR Client - Command Codec

Builds the control frames the client sends and classifies what comes back.
Every call returns a fresh bytes object.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterator
from enum import Enum

from netsdr_client.config.defaults import MAX_CHANNEL, MAX_FREQUENCY_HZ, MIN_FREQUENCY_HZ
from netsdr_client.config.schema import ReceiverConfig
from netsdr_client.core.errors import ProtocolError
from netsdr_client.protocol.messages import (
    ControlItemCode,
    MsgType,
    control_item_message,
    is_nak,
    translate_message,
)

logger = logging.getLogger(__name__)

# RECEIVER_STATE parameters
IQ_DATA_MODE_COMPLEX = 0x80
RUN = 0x02
STOP = 0x01
CAPTURE_MODE_16BIT_FIFO = 0x01
FIFO_SAMPLE_COUNT = 0x01


class ResponseKind(str, Enum):
    """Classification of an inbound control frame."""

    RESPONSE = "response"  # echo of a set/request
    UNSOLICITED = "unsolicited"
    RANGE = "range"
    ACK = "ack"
    NAK = "nak"
    DATA = "data"
    MALFORMED = "malformed"


class CommandCodec:
    """
    Frame builder for the commands the client issues.

    Usage:
        codec = CommandCodec(ReceiverConfig(sample_rate_hz=200_000))
        for frame in codec.init_frames():
            ...
        frame = codec.set_frequency(14_200_000, channel=0)
    """

    def __init__(self, receiver: ReceiverConfig | None = None):
        self._receiver = receiver or ReceiverConfig()

    @property
    def receiver(self) -> ReceiverConfig:
        return self._receiver

    def init_frames(self) -> Iterator[bytes]:
        """
        The three initialization frames, in the order they must be sent.

        Frames are built lazily, one per iteration step.
        """
        yield self.sample_rate()
        yield self.rf_filter()
        yield self.ad_modes()

    def sample_rate(self, channel: int = 0) -> bytes:
        params = struct.pack("<BI", _channel(channel), self._receiver.sample_rate_hz)
        return control_item_message(
            MsgType.SET_CONTROL_ITEM, ControlItemCode.IQ_OUTPUT_SAMPLE_RATE, params
        )

    def rf_filter(self, channel: int = 0) -> bytes:
        params = bytes([_channel(channel), self._receiver.rf_filter_mode])
        return control_item_message(MsgType.SET_CONTROL_ITEM, ControlItemCode.RF_FILTER, params)

    def ad_modes(self, channel: int = 0) -> bytes:
        params = bytes([_channel(channel), self._receiver.ad_mode])
        return control_item_message(MsgType.SET_CONTROL_ITEM, ControlItemCode.AD_MODES, params)

    def start_iq(self) -> bytes:
        params = bytes([IQ_DATA_MODE_COMPLEX, RUN, CAPTURE_MODE_16BIT_FIFO, FIFO_SAMPLE_COUNT])
        return control_item_message(MsgType.SET_CONTROL_ITEM, ControlItemCode.RECEIVER_STATE, params)

    def stop_iq(self) -> bytes:
        params = bytes([0x00, STOP, 0x00, 0x00])
        return control_item_message(MsgType.SET_CONTROL_ITEM, ControlItemCode.RECEIVER_STATE, params)

    def set_frequency(self, frequency: int, channel: int) -> bytes:
        """
        Build a RECEIVER_FREQUENCY frame.

        The frequency travels as a 5-byte little-endian integer, so every
        value from 0 Hz up to 2**40 - 1 Hz is representable.

        Raises:
            ValueError: If frequency or channel is outside the wire range.
        """
        frequency = int(frequency)
        if not MIN_FREQUENCY_HZ <= frequency <= MAX_FREQUENCY_HZ:
            raise ValueError(
                f"Frequency must be within [{MIN_FREQUENCY_HZ}, {MAX_FREQUENCY_HZ}] Hz, got {frequency}"
            )
        params = bytes([_channel(channel)]) + frequency.to_bytes(8, "little")[:5]
        return control_item_message(
            MsgType.SET_CONTROL_ITEM, ControlItemCode.RECEIVER_FREQUENCY, params
        )

    @staticmethod
    def classify(frame: bytes) -> ResponseKind:
        """Classify an inbound control-channel frame."""
        if is_nak(frame):
            return ResponseKind.NAK
        try:
            message = translate_message(frame)
        except ProtocolError:
            return ResponseKind.MALFORMED

        if message.msg_type.is_data_item:
            return ResponseKind.DATA
        return {
            MsgType.SET_CONTROL_ITEM: ResponseKind.RESPONSE,
            MsgType.CURRENT_CONTROL_ITEM: ResponseKind.UNSOLICITED,
            MsgType.CONTROL_ITEM_RANGE: ResponseKind.RANGE,
            MsgType.ACK: ResponseKind.ACK,
        }[message.msg_type]

    @staticmethod
    def item_of(frame: bytes) -> ControlItemCode | int | None:
        """Control item code carried by a frame, or None."""
        try:
            return translate_message(frame).item_code
        except ProtocolError:
            return None

    def matches(self, request: bytes, response: bytes) -> bool:
        """Whether response answers request: a response-type echo of the same item."""
        if self.classify(response) is not ResponseKind.RESPONSE:
            return False
        return self.item_of(response) == self.item_of(request)

    @staticmethod
    def rejection(frame: bytes) -> str | None:
        """Reason a frame is an error reply, or None."""
        if is_nak(frame):
            return "NAK"
        return None


def _channel(channel: int) -> int:
    channel = int(channel)
    if not 0 <= channel <= MAX_CHANNEL:
        raise ValueError(f"Channel must be within [0, {MAX_CHANNEL}], got {channel}")
    return channel


def item_name(frame: bytes) -> str:
    """Readable control item name for log messages."""
    code = CommandCodec.item_of(frame)
    if isinstance(code, ControlItemCode):
        return code.name
    if code is None:
        return "UNKNOWN"
    return f"0x{code:04X}"
