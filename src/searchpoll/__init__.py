"""searchpoll — Asynchronous search-result polling and pagination engine."""

__version__ = "0.1.0"
