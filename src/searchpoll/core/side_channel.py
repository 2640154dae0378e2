"""Side-Channel Preserver — Keeps ads alive across session resets.

Ads are loaded independently of polling and shown between results. Resetting
the session for a filter change must not drop them; switching to another
search id must.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from searchpoll.ads.base import AdProvider
from searchpoll.core.exceptions import SearchPollError
from searchpoll.core.session import SearchSession
from searchpoll.models.side_channel import AdContext, SideChannelData

logger = logging.getLogger(__name__)


class SideChannelPreserver:
    """Owns every write to ``SearchSession.side_channel``."""

    @contextmanager
    def preserving(self, session: SearchSession, *, teardown: bool = False) -> Iterator[None]:
        """Run a session reset without losing side-channel data.

        Args:
            session: The session about to be reset.
            teardown: The reset is a full teardown (new search id, new route);
                side-channel data is cleared instead of restored.
        """
        snapshot = session.side_channel.model_copy(deep=True)
        with session.batched():
            yield
            if teardown:
                session.clear_side_channel()
            else:
                session.set_side_channel(snapshot)

    def reset(self, session: SearchSession, *, teardown: bool = False) -> None:
        """``SearchSession.reset()`` wrapped in :meth:`preserving`."""
        with self.preserving(session, teardown=teardown):
            session.reset()

    async def load(self, session: SearchSession, provider: AdProvider, context: AdContext) -> bool:
        """Fetch ads and attach them to the session.

        The result is dropped if the session switched to another search id
        while the request was in flight. Failures leave the current data
        untouched.

        Returns:
            True if ads were attached.
        """
        search_id = session.search_id
        try:
            items = await provider.fetch_ads(context)
        except SearchPollError as e:
            logger.warning("Side-channel load failed: %s", e)
            return False

        if session.search_id != search_id:
            logger.debug("Dropping ads for superseded search %s", search_id)
            return False

        session.set_side_channel(SideChannelData(items=items, loaded=True))
        logger.info("Side channel loaded: %d items", len(items))
        return True
