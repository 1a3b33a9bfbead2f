#!/usr/bin/env python3
"""
Command-line interface for triggering checks.

    check-trigger trigger --tag production --location eu-west-1
    check-trigger whoami
"""

import asyncio
import logging
import os
from typing import Optional

import click

from ..core.config import Config, TriggerConfig
from ..core.errors import ConfigurationError, TransportError, TriggerRunnerError
from ..rest.api import ApiClient
from ..rest.locations import Accounts
from ..runner import CheckTriggerRunner, Events, RunnerEvent
from .location import prepare_run_location


def setup_logging():
    """Configure logging for the CLI."""
    log_level = os.getenv("LOG_LEVEL", Config.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=Config.LOG_FORMAT,
    )
    return logging.getLogger(__name__)


def _check_label(event: RunnerEvent) -> str:
    check = event.check
    if check is None:
        return "<unknown check>"
    return check.name or check.id


class TriggerReporter:
    """Echoes runner events and tracks the command's exit code."""

    def __init__(self):
        self.exit_code = 0
        self.passed = 0
        self.failed = 0

    def __call__(self, event: RunnerEvent) -> None:
        if event.kind is Events.RUN_STARTED:
            click.echo(f"Running {len(event.checks)} checks...")
        elif event.kind is Events.CHECK_INPROGRESS:
            click.echo(f"  … {_check_label(event)}")
        elif event.kind is Events.CHECK_SUCCESSFUL:
            if getattr(event.result, "has_failures", False):
                self.failed += 1
                self.exit_code = 1
                click.echo(f"  ✗ {_check_label(event)}")
            else:
                self.passed += 1
                click.echo(f"  ✓ {_check_label(event)}")
            logs = getattr(event.result, "logs", None)
            if logs:
                click.echo(f"    logs: {logs}")
        elif event.kind is Events.CHECK_FAILED:
            self.failed += 1
            self.exit_code = 1
            click.echo(f"  ✗ {_check_label(event)}: {event.reason}")
        elif event.kind is Events.RUN_FINISHED:
            click.echo(f"Run finished: {self.passed} passed, {self.failed} failed")
        elif event.kind is Events.ERROR:
            self.exit_code = 1
            click.echo(f"❌ Error: {event.error}", err=True)


@click.group()
def cli():
    """Trigger checks and follow their results."""
    setup_logging()


@cli.command()
@click.option("--tag", "-t", "tags", multiple=True, required=True,
              help="Run checks matching the specified tag.")
@click.option("--location", "-l", default=None, help="The location to run the checks at.")
@click.option("--private-location", default=None, help="The private location to run checks at.")
@click.option("--config", "-c", "config_path", default=None, help="The project config filename.")
@click.option("--timeout", type=click.IntRange(min=1), default=None,
              help="Seconds to wait for each check run.")
@click.option("--verbose", is_flag=True, help="Fetch logs for passing checks too.")
@click.option("--record/--no-record", default=True, help="Record the check runs.")
@click.pass_context
def trigger(ctx, tags, location, private_location, config_path, timeout, verbose, record):
    """Trigger checks on the backend."""
    if location and private_location:
        raise click.UsageError("--location and --private-location are mutually exclusive")

    try:
        config = TriggerConfig.load_from_file(config_path, required=config_path is not None)
        config.require_credentials()
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    if timeout is not None:
        config.check_timeout_seconds = timeout

    reporter = TriggerReporter()

    async def _run_trigger():
        async with ApiClient.from_config(config) as api:
            run_location = await prepare_run_location(
                api, config.cli, run_location=location, private_run_location=private_location
            )
        runner = CheckTriggerRunner.from_config(
            config, list(tags), run_location, verbose=verbose, should_record=record
        )
        runner.on(reporter)
        await runner.run()

    try:
        asyncio.run(_run_trigger())
    except TriggerRunnerError as e:
        raise click.ClickException(str(e))

    ctx.exit(reporter.exit_code)


@cli.command()
def whoami():
    """See the configured account."""
    config = TriggerConfig.from_env()
    if not config.account_id:
        click.echo("You first need to login to use this command")
        return
    try:
        config.require_credentials()
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    async def _fetch_account():
        async with ApiClient.from_config(config) as api:
            return await Accounts(api).get(config.account_id)

    try:
        account = asyncio.run(_fetch_account())
    except TransportError:
        click.echo("Failed to find an account corresponding to the account id", err=True)
        return
    click.echo(f'You are currently on "{account.name}" with id {account.id}')


def main(argv: Optional[list] = None):
    cli.main(args=argv, prog_name="check-trigger")


if __name__ == "__main__":
    main()
