"""Base transport interface — Abstract class for poll backends."""

from searchpoll.transport.base.transport import PollTransport

__all__ = ["PollTransport"]
