"""Command-line entry points."""

from .location import prepare_private_run_location, prepare_run_location
from .main import TriggerReporter, cli

__all__ = [
    "cli",
    "TriggerReporter",
    "prepare_run_location",
    "prepare_private_run_location",
]
