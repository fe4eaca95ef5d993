"""
HTTP request execution for the Vairified client.

BaseApiClient owns the httpx client, attaches the API key headers, enforces
the per-request timeout and turns every non-2xx response into an exception
from ``vairified.errors``. Each call is a single attempt: there is no retry,
backoff or client-side rate limiting.

Usage:
    class MyClient(BaseApiClient):
        async def get_usage(self) -> dict:
            return await self._get("/partner/usage")

    async with MyClient(api_key="vair_pk_xxx", base_url="https://...") as client:
        usage = await client.get_usage()
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..errors import RequestTimeoutError, TransportError, VairifiedError, error_from_response

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

QueryValue = str | int | float | bool | None


def build_query(params: Optional[dict[str, QueryValue]]) -> dict[str, str]:
    """
    Drop ``None`` values and stringify the rest.

    Booleans are sent as ``true``/``false``.
    """
    query: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


class BaseApiClient:
    """
    Async HTTP client base for the Vairified API.

    Use as an async context manager:

        async with client:
            data = await client._get("/partner/usage")

    Or with lazy initialisation (for long-lived services):

        data = await client._get("/partner/usage")  # client auto-creates on first use
        await client.close()
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self._timeout

    # -- Lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> "BaseApiClient":
        self._client = self.client
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        """Return the HTTP client, lazily creating it if needed."""
        if self._client is None or self._client.is_closed:
            self._client = self._new_client()
        return self._client

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers(),
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {
            API_KEY_HEADER: self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _url(self, path: str, params: Optional[dict[str, QueryValue]] = None) -> str:
        """Base URL + path + encoded query string."""
        url = f"{self._base_url}{path}"
        query = build_query(params)
        if query:
            url = str(httpx.URL(url, params=query))
        return url

    # -- HTTP methods --------------------------------------------------------

    async def _get(
        self,
        path: str,
        params: Optional[dict[str, QueryValue]] = None,
        *,
        oauth: bool = False,
    ) -> Any:
        """Make a GET request."""
        return await self._request("GET", path, params=params, oauth=oauth)

    async def _post(
        self,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, QueryValue]] = None,
        *,
        oauth: bool = False,
    ) -> Any:
        """Make a POST request."""
        return await self._request("POST", path, params=params, json=json, oauth=oauth)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, QueryValue]] = None,
        json: Optional[dict[str, Any]] = None,
        *,
        oauth: bool = False,
    ) -> Any:
        """
        Make a single HTTP request and decode the JSON response.

        Raises:
            RequestTimeoutError: If no response arrives within the timeout
            TransportError: If the request could not be sent
            VairifiedError: (or a subclass) if the API returns a non-2xx status
                or a success body that is not JSON
        """
        url = self._url(path, params)

        try:
            async with asyncio.timeout(self._timeout):
                response = await self.client.request(method, url, json=json)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(
                f"{method} {path} timed out after {self._timeout}s"
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {str(e)}") from e

        logger.debug(f"{method} {path} -> {response.status_code}")

        if not response.is_success:
            error = error_from_response(response, oauth=oauth)
            logger.debug(f"{method} {path} failed: {type(error).__name__}: {error.message}")
            raise error

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise VairifiedError(
                "Invalid JSON response",
                status_code=response.status_code,
                response=response.text,
            ) from e
