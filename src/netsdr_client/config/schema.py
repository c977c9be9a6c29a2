"""
NetSDR Client - Configuration Schema

Pydantic models for all configuration options with validation rules.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from netsdr_client.config import defaults


class ControlChannelConfig(BaseModel):
    """TCP control channel endpoint."""

    host: str = defaults.DEFAULT_HOST
    port: int = Field(default=defaults.DEFAULT_TCP_PORT, ge=1, le=65535)
    connect_timeout_s: float = Field(default=defaults.CONNECT_TIMEOUT_SECONDS, gt=0, le=120)


class StreamChannelConfig(BaseModel):
    """UDP IQ stream endpoint."""

    host: str = defaults.DEFAULT_UDP_HOST
    port: int = Field(default=defaults.DEFAULT_UDP_PORT, ge=1, le=65535)
    sample_size_bits: int = defaults.DEFAULT_SAMPLE_SIZE_BITS

    @field_validator("sample_size_bits")
    @classmethod
    def sample_size_supported(cls, v):
        if v not in defaults.SUPPORTED_SAMPLE_SIZES:
            raise ValueError(f"sample_size_bits must be one of {defaults.SUPPORTED_SAMPLE_SIZES}")
        return v


class ReceiverConfig(BaseModel):
    """Parameters carried by the three initialization control items."""

    sample_rate_hz: int = Field(default=defaults.DEFAULT_IQ_SAMPLE_RATE_HZ, gt=0, le=0xFFFFFFFF)
    rf_filter_mode: int = Field(default=defaults.DEFAULT_RF_FILTER_MODE, ge=0, le=0xFF)
    ad_mode: int = Field(default=defaults.DEFAULT_AD_MODE, ge=0, le=0xFF)


class ExchangeConfig(BaseModel):
    """Command/response correlation settings.

    response_timeout_s=None waits for a response indefinitely.
    validate_responses=True only accepts the echo of the pending item and
    turns a NAK into UnexpectedResponseError.
    """

    response_timeout_s: float | None = Field(default=defaults.RESPONSE_TIMEOUT_SECONDS, gt=0)
    validate_responses: bool = False


class RecorderConfig(BaseModel):
    """IQ sample recording."""

    enabled: bool = False
    output_path: str = defaults.DEFAULT_RECORDING_PATH


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default_factory=lambda: defaults.DEFAULT_LOG_LEVEL, validate_default=True
    )
    log_file: str | None = None
    structured: bool = False
    colored: bool = True

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class NetSdrClientConfig(BaseModel):
    """Root configuration for the NetSDR client."""

    control: ControlChannelConfig = Field(default_factory=ControlChannelConfig)
    stream: StreamChannelConfig = Field(default_factory=StreamChannelConfig)
    receiver: ReceiverConfig = Field(default_factory=ReceiverConfig)
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    recorder: RecorderConfig = Field(default_factory=RecorderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "NetSdrClientConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: str) -> None:
        """Save configuration to YAML file."""
        import yaml

        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)
