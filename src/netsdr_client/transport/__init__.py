"""
NetSDR Client - Transport Module

Architecture:
- ControlTransport / StreamTransport: abstract contracts
- TcpControlTransport: control channel over asyncio streams
- UdpStreamTransport: IQ stream over an asyncio datagram endpoint
"""

from netsdr_client.transport.interface import ControlTransport, StreamTransport
from netsdr_client.transport.tcp import TcpControlTransport
from netsdr_client.transport.udp import UdpStreamTransport

__all__ = [
    "ControlTransport",
    "StreamTransport",
    "TcpControlTransport",
    "UdpStreamTransport",
]
