"""Base ad provider — Abstract interface for side-channel content."""

from __future__ import annotations

from abc import ABC, abstractmethod

from searchpoll.models.side_channel import AdContext, AdItem


class AdProvider(ABC):
    """Fetches promotional items for a search route.

    Implementations raise ``AdServiceError`` on failure.
    """

    async def initialize(self) -> None:
        """Open connections. Called once on engine startup."""

    async def shutdown(self) -> None:
        """Release connections. Called once on engine shutdown."""

    @abstractmethod
    async def fetch_ads(self, context: AdContext) -> list[AdItem]:
        """Fetch ads for the searched route.

        Args:
            context: Route, cabin class and passengers of the search.

        Returns:
            Ads in display order.
        """
