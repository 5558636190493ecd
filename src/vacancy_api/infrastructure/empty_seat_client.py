from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from vacancy_api.infrastructure.errors import TransportError, UpstreamValidationError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class EmptySeatClient:
    """HTTP client for the structured empty-seat endpoint.

    The endpoint rejects requests that do not look like they come from the
    store's own vacancy page, so every call carries browser headers.
    """

    def __init__(
        self,
        api_url: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _headers(self, store_code: str) -> dict[str, str]:
        return {
            "User-Agent": USER_AGENT,
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "Accept-Language": "ja,en-US;q=0.9,en;q=0.8",
            "Referer": f"{self._base_url}/shop/detail/vacancy.html?store_code={store_code}",
            "Origin": self._base_url,
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "cross-site",
        }

    async def fetch(self, store_code: str) -> dict[str, Any]:
        """Fetch the raw seat payload for a store.

        Raises TransportError on network/HTTP failures and
        UpstreamValidationError when the payload carries a non-zero status.
        """
        logger.info("Fetching from official API: %s?store_cd=%s", self._api_url, store_code)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(
                    self._api_url,
                    params={"store_cd": store_code},
                    headers=self._headers(store_code),
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise TransportError(f"Empty-seat request failed for {store_code}: {e}") from e
        except ValueError as e:
            raise TransportError(f"Empty-seat response for {store_code} is not JSON") from e

        if not isinstance(data, dict):
            raise TransportError(f"Unexpected empty-seat payload type: {type(data).__name__}")
        if data.get("status") != 0:
            raise UpstreamValidationError(data.get("status"))
        return data
