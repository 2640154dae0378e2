"""Configuration layer."""

from searchpoll.config.settings import PollBudget, Settings

__all__ = ["PollBudget", "Settings"]
