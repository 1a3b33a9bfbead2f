#!/usr/bin/env python3
"""
Central configuration module for the check trigger runner.

Connection and credential values come from environment variables; the
project file (YAML) only carries run location defaults for the CLI.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigFileNotFoundError, ConfigParseError, ConfigValidationError

DEFAULT_CONFIG_FILENAME = "trigger.config.yaml"


class Config:
    """Central defaults for the check trigger runner."""

    API_BASE_URL = "https://api.checklyhq.com"
    RESULTS_BROKER_URL = "redis://localhost:6379/0"

    # Per check run, in seconds
    DEFAULT_CHECK_TIMEOUT = 240
    SUBSCRIBE_ACK_TIMEOUT = 10.0
    REQUEST_TIMEOUT = 30.0

    DEFAULT_REGION = "eu-central-1"

    # Logging configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class TriggerConfig:
    """
    Configuration for triggering checks.

    Unset values are filled from environment variables in __post_init__,
    falling back to the Config defaults.
    """
    account_id: Optional[str] = None
    api_key: Optional[str] = None
    api_base_url: Optional[str] = None
    results_broker_url: Optional[str] = None
    check_timeout_seconds: int = Config.DEFAULT_CHECK_TIMEOUT
    subscribe_ack_timeout_seconds: float = Config.SUBSCRIBE_ACK_TIMEOUT
    request_timeout_seconds: float = Config.REQUEST_TIMEOUT
    cli: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set defaults from environment variables if not specified."""
        if self.account_id is None:
            self.account_id = os.getenv("ACCOUNT_ID")
        if self.api_key is None:
            self.api_key = os.getenv("API_KEY")
        if self.api_base_url is None:
            self.api_base_url = os.getenv("API_BASE_URL", Config.API_BASE_URL)
        if self.results_broker_url is None:
            self.results_broker_url = os.getenv("RESULTS_BROKER_URL", Config.RESULTS_BROKER_URL)

    @property
    def run_location(self) -> Optional[str]:
        """Public region configured in the project file, if any."""
        return self.cli.get("runLocation")

    @property
    def private_run_location(self) -> Optional[str]:
        """Private location slug configured in the project file, if any."""
        return self.cli.get("privateRunLocation")

    def require_credentials(self) -> None:
        """Raise ConfigValidationError unless account id and API key are set."""
        missing = [
            name for name, value in (("ACCOUNT_ID", self.account_id), ("API_KEY", self.api_key))
            if not value
        ]
        if missing:
            raise ConfigValidationError(
                f"Missing credentials: {', '.join(missing)}", invalid_fields=missing
            )

    @classmethod
    def from_env(cls) -> "TriggerConfig":
        """Create configuration from environment variables.

        Environment variables:
            ACCOUNT_ID: Account the checks belong to
            API_KEY: API key used for the REST API
            API_BASE_URL: Base URL of the REST API
            RESULTS_BROKER_URL: Redis URL of the results broker
            TRIGGER_TIMEOUT_SECONDS: Per check run timeout (default: 240)
            SUBSCRIBE_ACK_TIMEOUT_SECONDS: Subscription acknowledgement timeout (default: 10)
        """
        try:
            return cls(
                check_timeout_seconds=int(
                    os.getenv("TRIGGER_TIMEOUT_SECONDS", str(Config.DEFAULT_CHECK_TIMEOUT))
                ),
                subscribe_ack_timeout_seconds=float(
                    os.getenv("SUBSCRIBE_ACK_TIMEOUT_SECONDS", str(Config.SUBSCRIBE_ACK_TIMEOUT))
                ),
            )
        except ValueError as e:
            raise ConfigValidationError(f"Invalid numeric configuration value: {e}")

    @classmethod
    def load_from_file(
        cls, config_path: Optional[str] = None, required: bool = False
    ) -> "TriggerConfig":
        """Load the project file on top of the environment configuration.

        Args:
            config_path: Path to the YAML project file. Defaults to trigger.config.yaml
            required: Raise ConfigFileNotFoundError when the file is missing

        Returns:
            TriggerConfig with the file's ``cli`` section applied
        """
        config = cls.from_env()
        if config_path is None:
            config_path = os.getenv("TRIGGER_CONFIG", DEFAULT_CONFIG_FILENAME)

        config_file = Path(config_path)
        if not config_file.exists():
            if required:
                raise ConfigFileNotFoundError(str(config_file))
            return config

        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigParseError(str(config_file), str(e))

        if not isinstance(data, dict):
            raise ConfigParseError(str(config_file), "top level must be a mapping")

        cli_section = data.get("cli") or {}
        if not isinstance(cli_section, dict):
            raise ConfigValidationError("'cli' section must be a mapping", invalid_fields=["cli"])
        config.cli = dict(cli_section)
        return config
