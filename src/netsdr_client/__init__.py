"""
NetSDR Client

Async control-and-data client for NetSDR-protocol software-defined radio
receivers: binary control items over TCP, IQ samples over UDP.

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "NetSDR Client Team"

from netsdr_client.client.sdr_client import ClientState, SdrClient
from netsdr_client.config.schema import NetSdrClientConfig

__all__ = ["SdrClient", "ClientState", "NetSdrClientConfig"]
