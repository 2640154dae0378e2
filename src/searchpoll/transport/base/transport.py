"""Base poll transport — Abstract interface to the search backend.

The engine never talks HTTP directly. A transport is responsible for:
  1. Fetching a page of results for a search id and filter
  2. Following an opaque cursor to the next page
  3. Mapping backend failures onto the transport error taxonomy
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import Batch


class PollTransport(ABC):
    """Abstract base class for poll backends.

    Implementations must raise ``InvalidSearchIdError`` for unknown search
    ids and ``TransientNetworkError`` for anything worth retrying.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique transport name (e.g., 'http')."""

    async def initialize(self) -> None:
        """Open connections. Called once before the first poll."""

    async def shutdown(self) -> None:
        """Release connections. Called once on engine shutdown."""

    @abstractmethod
    async def poll(
        self,
        search_id: str,
        filter_request: FilterRequest,
        *,
        page: int = 1,
        limit: int = 30,
    ) -> Batch:
        """Fetch one page of results.

        Args:
            search_id: Opaque search token.
            filter_request: Filter predicate of the current generation.
            page: 1-based page number.
            limit: Page size.

        Returns:
            The decoded batch.
        """

    @abstractmethod
    async def poll_by_cursor(self, cursor: str, filter_request: FilterRequest) -> Batch:
        """Fetch the page an opaque cursor points at.

        Args:
            cursor: The ``next`` token of a previous batch.
            filter_request: Filter predicate of the current generation.

        Returns:
            The decoded batch.
        """
