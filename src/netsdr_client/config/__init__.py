"""
NetSDR Client - Configuration Module
"""

from netsdr_client.config.schema import (
    ControlChannelConfig,
    ExchangeConfig,
    LoggingConfig,
    NetSdrClientConfig,
    ReceiverConfig,
    RecorderConfig,
    StreamChannelConfig,
)

__all__ = [
    "NetSdrClientConfig",
    "ControlChannelConfig",
    "StreamChannelConfig",
    "ReceiverConfig",
    "ExchangeConfig",
    "RecorderConfig",
    "LoggingConfig",
]
