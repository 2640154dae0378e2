"""HTTP transport — Polls the flight search backend's JSON API.

API reference:
  POST /poll/?search_id=<id>&page=<n>&limit=<size>&language=<lang>&currency=<cur>
    body: filter request (only user-set fields), ``{}`` when unfiltered
  POST <next cursor URL>
    body: same filter request as the generation that produced the cursor
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import Batch
from searchpoll.transport.base.exceptions import (
    InvalidSearchIdError,
    TransientNetworkError,
    TransportNotInitializedError,
)
from searchpoll.transport.base.transport import PollTransport

logger = logging.getLogger(__name__)

# Statuses the backend uses for unknown or malformed search ids.
_INVALID_SEARCH_STATUSES = frozenset({400, 404})


class HttpPollTransport(PollTransport):
    """Poll transport for the flight search HTTP API.

    Args:
        base_url: API base URL, e.g. ``"https://api.example.com/api"``.
        language: Language code sent as query parameter and ``Accept-Language``.
        currency: Currency code sent as query parameter.
        country: Country code sent in the ``country`` header.
        timeout: HTTP request timeout in seconds.
        **httpx_kwargs: Additional keyword arguments passed to ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        language: str = "en",
        currency: str = "USD",
        country: str = "US",
        timeout: float = 30.0,
        **httpx_kwargs: Any,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._currency = currency
        self._country = country
        self._timeout = timeout
        self._httpx_kwargs = httpx_kwargs
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "accept": "application/json",
                "Content-Type": "application/json",
                "country": self._country,
                "Accept-Language": self._language,
            },
            timeout=self._timeout,
            **self._httpx_kwargs,
        )
        logger.info("HTTP poll transport initialized (base_url: %s)", self._base_url)

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def poll(
        self,
        search_id: str,
        filter_request: FilterRequest,
        *,
        page: int = 1,
        limit: int = 30,
    ) -> Batch:
        params: dict[str, Any] = {
            "search_id": search_id,
            "page": page,
            "limit": limit,
            "language": self._language,
            "currency": self._currency,
        }
        return await self._post("/poll/", filter_request, params=params, search_id=search_id)

    async def poll_by_cursor(self, cursor: str, filter_request: FilterRequest) -> Batch:
        # Cursors are absolute URLs; httpx leaves them untouched when merging with base_url.
        return await self._post(cursor, filter_request)

    async def _post(
        self,
        url: str,
        filter_request: FilterRequest,
        *,
        params: dict[str, Any] | None = None,
        search_id: str | None = None,
    ) -> Batch:
        if not self._client:
            raise TransportNotInitializedError("HTTP poll transport not initialized.")

        body = filter_request.to_wire()

        try:
            start = time.monotonic()
            response = await self._client.post(url, params=params, json=body)
            response.raise_for_status()
            took_ms = int((time.monotonic() - start) * 1000)
            batch = Batch.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if search_id is not None and status in _INVALID_SEARCH_STATUSES:
                raise InvalidSearchIdError(f"Unknown search id '{search_id}' ({status})") from e
            raise TransientNetworkError(f"Poll API error ({status}): {e.response.text[:200]}") from e
        except httpx.RequestError as e:
            raise TransientNetworkError(f"Poll request failed: {e}") from e
        except (ValidationError, ValueError) as e:
            raise TransientNetworkError(f"Poll response could not be decoded: {e}") from e

        logger.debug(
            "Poll: url=%s, filtered=%s, results=%d, count=%d, cache=%s, next=%s, took=%dms",
            url,
            bool(body),
            len(batch.results),
            batch.count,
            batch.cache,
            batch.next is not None,
            took_ms,
        )
        return batch
