"""HTTP ad provider — Inline ads from the hotel/flight ad network.

API reference:
  GET  /ads/session?countryCode=<cc>&label=<label>        → {"sid": ...}
  POST /ads/flight/list?countryCode=<cc>&_sid_=<sid>       → {"inlineItems": [...]}
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from searchpoll.ads.base import AdProvider
from searchpoll.core.exceptions import AdServiceError
from searchpoll.models.side_channel import AdContext, AdItem

logger = logging.getLogger(__name__)


class HttpAdProvider(AdProvider):
    """Ad provider backed by the ad network's REST API.

    Every ``fetch_ads`` call opens a fresh ad session, as the network
    requires.

    Args:
        base_url: Ad API base URL.
        bearer_token: Bearer token for authentication.
        country_code: Country code for session and listing calls.
        label: Session label.
        impression_base_url: Host prepended to relative impression URLs.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        bearer_token: str = "",
        *,
        country_code: str = "us",
        label: str = "flight.dev",
        impression_base_url: str = "https://www.kayak.com",
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bearer_token = bearer_token
        self._country_code = country_code
        self._label = label
        self._impression_base_url = impression_base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        self._client = httpx.AsyncClient(base_url=self._base_url, headers=headers, timeout=self._timeout)
        logger.info("HTTP ad provider initialized (base_url: %s)", self._base_url)

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_session(self) -> str:
        """Open an ad session and return its id."""
        data = await self._request(
            "GET",
            "/ads/session",
            params={"countryCode": self._country_code, "label": self._label},
        )
        sid = data.get("sid")
        if not sid:
            raise AdServiceError("Ad session response carried no sid")
        return str(sid)

    async def fetch_ads(self, context: AdContext) -> list[AdItem]:
        sid = await self.create_session()
        data = await self._request(
            "POST",
            "/ads/flight/list",
            params={"countryCode": self._country_code, "_sid_": sid},
            json=context.model_dump(by_alias=True),
        )
        try:
            ads = [AdItem.model_validate(item) for item in data.get("inlineItems") or []]
        except ValidationError as e:
            raise AdServiceError(f"Ad list could not be decoded: {e}") from e

        logger.debug("Fetched %d ads (sid: %s)", len(ads), sid)
        return ads

    async def track_impression(self, impression_url: str) -> bool:
        """Report an ad impression. Failures are logged, never raised.

        Returns:
            True if the impression was delivered.
        """
        if not self._client or not impression_url:
            return False
        url = f"{self._impression_base_url}{impression_url}" if impression_url.startswith("/") else impression_url
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to track impression %s: %s", url, e)
            return False
        return True

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if not self._client:
            raise AdServiceError("HTTP ad provider not initialized.")
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise AdServiceError(f"Ad API error ({e.response.status_code}): {e.response.text[:200]}") from e
        except httpx.RequestError as e:
            raise AdServiceError(f"Ad request failed: {e}") from e
        except ValueError as e:
            raise AdServiceError(f"Ad response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise AdServiceError("Ad response is not a JSON object")
        return data
