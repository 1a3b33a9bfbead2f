"""
Run location resolution for the trigger command.

Command line options take precedence over the project file; without either,
checks run in the default public region.
"""

import logging
from typing import Any, Dict, Optional

from ..core.config import Config
from ..core.errors import RunLocationError, TransportError
from ..rest.api import ApiClient
from ..rest.locations import Accounts, Locations, PrivateLocations
from ..rest.models import PrivateRunLocation, PublicRunLocation, RunLocation

logger = logging.getLogger(__name__)


async def prepare_run_location(
    api: ApiClient,
    config_options: Optional[Dict[str, Any]] = None,
    run_location: Optional[str] = None,
    private_run_location: Optional[str] = None,
) -> RunLocation:
    """
    Resolve where checks should run.

    Args:
        api: REST client used to validate regions and look up private locations
        config_options: The project file's ``cli`` section
        run_location: Public region from the command line
        private_run_location: Private location slug from the command line

    Raises:
        RunLocationError: If the location is unknown or configured ambiguously
    """
    config_options = config_options or {}

    if run_location:
        available = await Locations(api).get_all()
        if any(location.region == run_location for location in available):
            return PublicRunLocation(region=run_location)
        supported = "\n".join(location.region for location in available)
        raise RunLocationError(
            f'Unable to run checks on unsupported location "{run_location}". '
            f"Supported locations are:\n{supported}"
        )
    elif private_run_location:
        return await prepare_private_run_location(api, private_run_location)

    configured = config_options.get("runLocation")
    configured_private = config_options.get("privateRunLocation")
    if configured and configured_private:
        raise RunLocationError(
            "Both runLocation and privateRunLocation fields were set in the config file. "
            f'Please only specify one run location. The configured locations were '
            f'"{configured}" and "{configured_private}"'
        )
    elif configured:
        return PublicRunLocation(region=configured)
    elif configured_private:
        return await prepare_private_run_location(api, configured_private)

    return PublicRunLocation(region=Config.DEFAULT_REGION)


async def prepare_private_run_location(api: ApiClient, slug_name: str) -> PrivateRunLocation:
    """Look up a private location by slug name."""
    try:
        private_locations = await PrivateLocations(api).get_all()
    except TransportError as e:
        raise RunLocationError(f"Failed to get private locations. {e}.") from e

    for private_location in private_locations:
        if private_location.slug_name == slug_name:
            return PrivateRunLocation(id=private_location.id, slug_name=slug_name)

    try:
        account = await Accounts(api).get(api.account_id)
        account_name = account.name
    except TransportError as e:
        logger.debug(f"Could not fetch account for error message: {e}")
        account_name = api.account_id
    raise RunLocationError(
        f'The specified private location "{slug_name}" was not found on account "{account_name}".'
    )
