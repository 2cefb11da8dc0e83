"""
Clinic Backend Client

Thin httpx wrapper around the clinic's REST backend. The caller's bearer token
is forwarded on every request.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from clinic_panel.config import settings

logger = logging.getLogger(__name__)


class BackendClient:
    """Service for talking to the clinic backend"""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.base_url = base_url or settings.BACKEND_API_URL
        self.timeout = timeout or settings.BACKEND_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/json",
            },
        )

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body

        Raises:
            httpx.HTTPError: on transport failures and non-2xx responses
        """
        async with self._client() as client:
            response = await client.request(method, path, params=params, json=json)
            logger.debug("%s %s -> %s", method, path, response.status_code)
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("DELETE", path, params=params)
