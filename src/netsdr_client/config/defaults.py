"""
Centralized Configuration Defaults

Contains default values and protocol constants used throughout the client.
Import these constants instead of hardcoding values.

Usage:
    from netsdr_client.config.defaults import (
        DEFAULT_HOST,
        DEFAULT_TCP_PORT,
        MAX_FREQUENCY_HZ,
    )
"""

import os

# =========================================================================
# Network Endpoints
# =========================================================================
DEFAULT_HOST = os.getenv("NETSDR_HOST", "127.0.0.1")
DEFAULT_TCP_PORT = int(os.getenv("NETSDR_TCP_PORT", "50000"))
DEFAULT_UDP_HOST = os.getenv("NETSDR_UDP_HOST", "0.0.0.0")
DEFAULT_UDP_PORT = int(os.getenv("NETSDR_UDP_PORT", "60000"))

# =========================================================================
# Timeouts
# =========================================================================
CONNECT_TIMEOUT_SECONDS = 5.0
# None waits for a response indefinitely
RESPONSE_TIMEOUT_SECONDS = None

# =========================================================================
# Receiver Initialization
# =========================================================================
DEFAULT_IQ_SAMPLE_RATE_HZ = 100_000
DEFAULT_RF_FILTER_MODE = 0x00  # automatic filter selection
DEFAULT_AD_MODE = 0x03  # dither + 1.5x gain

# =========================================================================
# Frame Limits
# =========================================================================
HEADER_LENGTH = 2
ITEM_CODE_LENGTH = 2
SEQUENCE_NUMBER_LENGTH = 2
MAX_CONTROL_FRAME_LENGTH = 8191  # 13-bit length field
MAX_DATA_FRAME_LENGTH = 8194  # encoded as length 0

# Frequency field is 5 bytes little-endian
MIN_FREQUENCY_HZ = 0
MAX_FREQUENCY_HZ = (1 << 40) - 1
MAX_CHANNEL = 0xFF

# =========================================================================
# IQ Stream
# =========================================================================
DEFAULT_SAMPLE_SIZE_BITS = 16
SUPPORTED_SAMPLE_SIZES = (16, 24, 32)
UDP_RECEIVE_BUFFER_BYTES = 1 << 20
DEFAULT_RECORDING_PATH = os.getenv("NETSDR_RECORDING_PATH", "samples.bin")

# =========================================================================
# Logging
# =========================================================================
DEFAULT_LOG_LEVEL = os.getenv("NETSDR_LOG_LEVEL", "INFO")
