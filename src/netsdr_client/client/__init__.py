"""
NetSDR Client - Client Module

Architecture:
- ExchangeSlot: one pending command/response exchange at a time
- SdrClient: connection, IQ streaming and frequency control
"""

from netsdr_client.client.exchange import ExchangeSlot
from netsdr_client.client.sdr_client import ClientState, SdrClient

__all__ = ["ClientState", "ExchangeSlot", "SdrClient"]
