"""
REST API client for triggering checks and fetching their assets.

Quick Start:
    from src.rest import ApiClient, TestSessions, TriggerRequest

    async with ApiClient(base_url, account_id, api_key) as api:
        response = await TestSessions(api).trigger(request)
"""

from .api import ApiClient
from .assets import Assets
from .locations import Accounts, Locations, PrivateLocations
from .models import (
    Account,
    CheckDescriptor,
    CheckRunAssets,
    CheckRunEndResult,
    Location,
    PrivateLocation,
    PrivateRunLocation,
    PublicRunLocation,
    RunLocation,
    RunLocationType,
    TriggerRequest,
    TriggerResponse,
)
from .test_sessions import TestSessions

__all__ = [
    "ApiClient",
    "Assets",
    "Accounts",
    "Locations",
    "PrivateLocations",
    "TestSessions",
    "Account",
    "CheckDescriptor",
    "CheckRunAssets",
    "CheckRunEndResult",
    "Location",
    "PrivateLocation",
    "PrivateRunLocation",
    "PublicRunLocation",
    "RunLocation",
    "RunLocationType",
    "TriggerRequest",
    "TriggerResponse",
]
