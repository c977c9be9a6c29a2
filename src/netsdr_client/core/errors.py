"""
NetSDR Client - Error Taxonomy

All errors raised by the client derive from NetSdrError. Transport errors
also derive from the matching builtin so callers can catch either.
"""


class NetSdrError(Exception):
    """Base class for every NetSDR client error."""


class SdrConnectionError(NetSdrError, ConnectionError):
    """Control channel could not be opened, or closed under a pending exchange."""


class TransportSendError(NetSdrError):
    """A frame was sent while the control transport was not open."""


class ExchangeTimeoutError(NetSdrError, TimeoutError):
    """No response arrived within the configured response timeout."""

    def __init__(self, timeout_s: float, item: str = ""):
        self.timeout_s = timeout_s
        self.item = item
        target = f" for {item}" if item else ""
        super().__init__(f"No response{target} within {timeout_s:.3f} s")


class UnexpectedResponseError(NetSdrError):
    """The receiver answered a command with a NAK or a mismatched item."""

    def __init__(self, message: str, frame: bytes = b""):
        self.frame = frame
        super().__init__(message)


class ProtocolError(NetSdrError, ValueError):
    """A frame could not be translated."""
