"""
NetSDR Client - Protocol Module

NetSDR frame encoding and the command codec.
"""

from netsdr_client.protocol.commands import CommandCodec, ResponseKind, item_name
from netsdr_client.protocol.messages import (
    ControlItemCode,
    MsgType,
    TranslatedMessage,
    control_item_message,
    data_item_message,
    get_samples,
    is_nak,
    parse_header,
    translate_message,
)

__all__ = [
    "CommandCodec",
    "ResponseKind",
    "item_name",
    "MsgType",
    "ControlItemCode",
    "TranslatedMessage",
    "control_item_message",
    "data_item_message",
    "translate_message",
    "parse_header",
    "get_samples",
    "is_nak",
]
