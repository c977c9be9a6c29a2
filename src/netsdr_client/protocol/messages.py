"""
NetSDR Client - Frame Encoding

NetSDR frames start with a little-endian 16-bit header:

    bits 0-12   total frame length in bytes, header included
    bits 13-15  message type

Control frames follow the header with a 16-bit control item code and the
item parameters. Data frames (IQ samples on the UDP channel) follow it with
a 16-bit sequence number and the payload. A data frame of exactly 8194
bytes does not fit in 13 bits and is sent with length 0.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from netsdr_client.config.defaults import (
    HEADER_LENGTH,
    ITEM_CODE_LENGTH,
    MAX_CONTROL_FRAME_LENGTH,
    MAX_DATA_FRAME_LENGTH,
    SEQUENCE_NUMBER_LENGTH,
)
from netsdr_client.core.errors import ProtocolError

_HEADER = struct.Struct("<H")
_LENGTH_MASK = 0x1FFF
_TYPE_SHIFT = 13


class MsgType(IntEnum):
    """Three-bit message type carried in the frame header."""

    SET_CONTROL_ITEM = 0
    CURRENT_CONTROL_ITEM = 1
    CONTROL_ITEM_RANGE = 2
    ACK = 3
    DATA_ITEM_0 = 4
    DATA_ITEM_1 = 5
    DATA_ITEM_2 = 6
    DATA_ITEM_3 = 7

    @property
    def is_data_item(self) -> bool:
        return self >= MsgType.DATA_ITEM_0


class ControlItemCode(IntEnum):
    """Control items used by the client."""

    NONE = 0x0000
    RECEIVER_STATE = 0x0018
    RECEIVER_FREQUENCY = 0x0020
    RF_FILTER = 0x0044
    AD_MODES = 0x008A
    IQ_OUTPUT_SAMPLE_RATE = 0x00B8


@dataclass(frozen=True)
class TranslatedMessage:
    """A decoded frame."""

    msg_type: MsgType
    item_code: ControlItemCode | int | None
    sequence_number: int | None
    body: bytes


def build_header(msg_type: MsgType, payload_length: int) -> bytes:
    """
    Build the 2-byte header for a frame whose content after the header is
    payload_length bytes long.

    Raises:
        ValueError: If the frame would not fit the 13-bit length field.
    """
    if payload_length < 0:
        raise ValueError(f"Payload length must be non-negative, got {payload_length}")

    total = payload_length + HEADER_LENGTH
    if MsgType(msg_type).is_data_item and total == MAX_DATA_FRAME_LENGTH:
        total = 0
    elif total > MAX_CONTROL_FRAME_LENGTH:
        raise ValueError(f"Frame length {total} exceeds {MAX_CONTROL_FRAME_LENGTH} bytes")

    return _HEADER.pack(total | (int(msg_type) << _TYPE_SHIFT))


def parse_header(frame: bytes) -> tuple[MsgType, int]:
    """
    Decode a frame header.

    Returns:
        Tuple of (message type, total frame length including the header).
    """
    if len(frame) < HEADER_LENGTH:
        raise ProtocolError(f"Frame too short for a header: {len(frame)} byte(s)")

    (raw,) = _HEADER.unpack_from(frame)
    msg_type = MsgType(raw >> _TYPE_SHIFT)
    length = raw & _LENGTH_MASK
    if length == 0 and msg_type.is_data_item:
        length = MAX_DATA_FRAME_LENGTH
    return msg_type, length


def control_item_message(
    msg_type: MsgType, item_code: ControlItemCode, parameters: bytes = b""
) -> bytes:
    """Build a control frame: header, item code, parameters."""
    if MsgType(msg_type).is_data_item:
        raise ValueError(f"{MsgType(msg_type).name} is not a control message type")

    body = struct.pack("<H", int(item_code)) + bytes(parameters)
    return build_header(msg_type, len(body)) + body


def data_item_message(
    msg_type: MsgType, payload: bytes, sequence_number: int | None = None
) -> bytes:
    """Build a data frame, optionally prefixed with a sequence number."""
    if not MsgType(msg_type).is_data_item:
        raise ValueError(f"{MsgType(msg_type).name} is not a data item type")

    body = bytes(payload)
    if sequence_number is not None:
        body = struct.pack("<H", sequence_number & 0xFFFF) + body
    return build_header(msg_type, len(body)) + body


def translate_message(frame: bytes) -> TranslatedMessage:
    """
    Decode a complete frame.

    Control frames yield their item code (an int when the code is not one
    the client knows). Data frames yield their sequence number.

    Raises:
        ProtocolError: If the frame is truncated or its length field
            disagrees with the number of bytes received.
    """
    msg_type, length = parse_header(frame)
    if length != len(frame):
        raise ProtocolError(f"Header announces {length} bytes, frame has {len(frame)}")

    rest = bytes(frame[HEADER_LENGTH:])
    if not rest:
        return TranslatedMessage(msg_type, None, None, b"")

    if msg_type.is_data_item:
        if len(rest) < SEQUENCE_NUMBER_LENGTH:
            raise ProtocolError("Data frame truncated before sequence number")
        (sequence,) = struct.unpack_from("<H", rest)
        return TranslatedMessage(msg_type, None, sequence, rest[SEQUENCE_NUMBER_LENGTH:])

    if len(rest) < ITEM_CODE_LENGTH:
        raise ProtocolError("Control frame truncated before item code")
    (code,) = struct.unpack_from("<H", rest)
    try:
        item_code = ControlItemCode(code)
    except ValueError:
        item_code = code
    return TranslatedMessage(msg_type, item_code, None, rest[ITEM_CODE_LENGTH:])


def is_nak(frame: bytes) -> bool:
    """A NAK is a bare header of type 0 announcing a 2-byte frame."""
    return len(frame) == HEADER_LENGTH and _HEADER.unpack_from(frame)[0] == HEADER_LENGTH


def get_samples(sample_size_bits: int, body: bytes) -> np.ndarray:
    """
    Unpack little-endian signed samples from a data frame body.

    Interleaved I/Q values are returned as a flat int32 array; bytes past the
    last whole sample are ignored.

    Args:
        sample_size_bits: 8, 16, 24 or 32.
        body: Data frame body (after the sequence number).
    """
    if sample_size_bits % 8 or not 8 <= sample_size_bits <= 32:
        raise ValueError(f"Unsupported sample size: {sample_size_bits} bits")

    width = sample_size_bits // 8
    count = len(body) // width
    if count == 0:
        return np.empty(0, dtype=np.int32)
    raw = np.frombuffer(body, dtype=np.uint8, count=count * width)

    if width == 3:
        triples = raw.reshape(count, 3).astype(np.int32)
        values = triples[:, 0] | (triples[:, 1] << 8) | (triples[:, 2] << 16)
        # Sign-extend from bit 23
        return np.where(values & 0x800000, values - (1 << 24), values).astype(np.int32)

    dtype = {1: "i1", 2: "<i2", 4: "<i4"}[width]
    return raw.view(dtype).astype(np.int32)
