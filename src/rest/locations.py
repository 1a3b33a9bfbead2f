"""Location and account endpoints used to resolve where checks run."""

from typing import List

from .api import ApiClient
from .models import Account, Location, PrivateLocation


class Locations:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_all(self) -> List[Location]:
        data = await self.api.get_json("/next/locations")
        return [Location.model_validate(item) for item in data or []]


class PrivateLocations:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_all(self) -> List[PrivateLocation]:
        data = await self.api.get_json("/next/private-locations")
        return [PrivateLocation.model_validate(item) for item in data or []]


class Accounts:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get(self, account_id: str) -> Account:
        data = await self.api.get_json(f"/next/accounts/{account_id}")
        return Account.model_validate(data)
