#!/usr/bin/env python3
"""
errors.py: Exception hierarchy for the check trigger runner

Configuration, transport and subscription failures are raised as exceptions
so callers (and tests) can handle them without the process exiting.
"""

from typing import Any, Optional


class TriggerRunnerError(Exception):
    """Base exception for all trigger runner errors."""


class ConfigurationError(TriggerRunnerError):
    """Base exception for configuration-related errors."""

    def __init__(self, message: str, config_path: str = None, details: dict = None):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_path: Path to the configuration file that caused the error
            details: Additional error details
        """
        self.config_path = config_path
        self.details = details or {}
        super().__init__(message)


class ConfigFileNotFoundError(ConfigurationError):
    """Raised when a required configuration file is not found."""

    def __init__(self, config_path: str):
        message = f"Configuration file not found: {config_path}"
        super().__init__(message, config_path=config_path)


class ConfigParseError(ConfigurationError):
    """Raised when configuration file cannot be parsed."""

    def __init__(self, config_path: str, parse_error: str):
        message = f"Failed to parse configuration file {config_path}: {parse_error}"
        super().__init__(message, config_path=config_path, details={"parse_error": parse_error})


class ConfigValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, invalid_fields: list = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details=details)


class TransportError(TriggerRunnerError):
    """Raised when a request to the backend cannot be completed."""


class ApiError(TransportError):
    """Raised when the backend answers with a non-success status."""

    def __init__(self, status: int, message: str, body: Optional[Any] = None):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {message}")


class SubscriptionError(TriggerRunnerError):
    """Raised when the results broker connection or subscription fails."""


class RunLocationError(TriggerRunnerError):
    """Raised when a run location cannot be resolved."""
