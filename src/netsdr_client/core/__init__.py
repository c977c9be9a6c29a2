"""
NetSDR Client - Core Module

Error taxonomy and logging setup shared by every other module.
"""

from netsdr_client.core.errors import (
    ExchangeTimeoutError,
    NetSdrError,
    ProtocolError,
    SdrConnectionError,
    TransportSendError,
    UnexpectedResponseError,
)
from netsdr_client.core.logging_config import configure_logging, setup_logging

__all__ = [
    "NetSdrError",
    "SdrConnectionError",
    "TransportSendError",
    "ExchangeTimeoutError",
    "UnexpectedResponseError",
    "ProtocolError",
    "setup_logging",
    "configure_logging",
]
