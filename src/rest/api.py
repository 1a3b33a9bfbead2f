"""
Authenticated aiohttp client for the REST API.

One ClientSession is shared by all resource classes. Non-success statuses
raise ApiError; connection problems and timeouts raise TransportError.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..core.config import Config, TriggerConfig
from ..core.errors import ApiError, TransportError

logger = logging.getLogger(__name__)


class ApiClient:
    """
    Thin JSON client bound to one account.

    Usage:
        async with ApiClient(base_url, account_id, api_key) as api:
            data = await api.get_json("/next/locations")
    """

    def __init__(
        self,
        base_url: str,
        account_id: str,
        api_key: str,
        timeout: float = Config.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.account_id = account_id
        self.api_key = api_key
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: TriggerConfig) -> "ApiClient":
        """Build a client from a TriggerConfig."""
        config.require_credentials()
        return cls(
            base_url=config.api_base_url,
            account_id=config.account_id,
            api_key=config.api_key,
            timeout=config.request_timeout_seconds,
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Account-Id": self.account_id,
            "Accept": "application/json",
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            ApiError: On a non-2xx status
            TransportError: On connection failures and timeouts
        """
        url = f"{self.base_url}{path}"
        session = self._get_session()
        logger.debug(f"{method} {url}")

        try:
            async with session.request(method, url, params=params, json=payload) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None

                if resp.status >= 400:
                    message = resp.reason or "request failed"
                    if isinstance(body, dict) and body.get("message"):
                        message = body["message"]
                    logger.warning(f"{method} {path} failed: HTTP {resp.status} {message}")
                    raise ApiError(resp.status, message, body)
                return body

        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} {path} timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self.request("POST", path, payload=payload)

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"ApiClient(base_url={self.base_url!r}, account_id={self.account_id!r})"
