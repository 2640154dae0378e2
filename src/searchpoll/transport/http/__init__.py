"""HTTP poll transport."""

from searchpoll.transport.http.transport import HttpPollTransport

__all__ = ["HttpPollTransport"]
