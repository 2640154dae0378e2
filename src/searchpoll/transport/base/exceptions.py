"""Transport-specific exceptions."""

from searchpoll.core.exceptions import SearchPollError


class TransportError(SearchPollError):
    """Base exception for poll transport errors."""


class TransientNetworkError(TransportError):
    """A poll failed in a way that is worth retrying (timeouts, 5xx, bad bodies)."""


class InvalidSearchIdError(TransportError):
    """The backend does not know the search id. Never retried."""


class TransportNotInitializedError(TransportError):
    """Raised when the transport is used before ``initialize()``."""
