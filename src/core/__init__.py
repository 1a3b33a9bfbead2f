"""Core package: configuration and the shared exception hierarchy."""

from .config import DEFAULT_CONFIG_FILENAME, Config, TriggerConfig
from .errors import (
    ApiError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigurationError,
    ConfigValidationError,
    RunLocationError,
    SubscriptionError,
    TransportError,
    TriggerRunnerError,
)

__all__ = [
    "Config",
    "TriggerConfig",
    "DEFAULT_CONFIG_FILENAME",
    "TriggerRunnerError",
    "ConfigurationError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "TransportError",
    "ApiError",
    "SubscriptionError",
    "RunLocationError",
]
