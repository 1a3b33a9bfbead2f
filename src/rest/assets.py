"""Check run asset endpoints."""

from typing import Any

from .api import ApiClient


class Assets:
    """Fetches logs and run data stored for a finished check run."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_logs(self, region: str, path: str) -> Any:
        return await self.api.get_json("/next/assets/logs", params={"region": region, "key": path})

    async def get_check_run_data(self, region: str, path: str) -> Any:
        return await self.api.get_json(
            "/next/assets/check-run-data", params={"region": region, "key": path}
        )
