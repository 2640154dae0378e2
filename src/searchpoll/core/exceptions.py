"""Engine error taxonomy.

Transient errors are retried inside the scheduler and only logged. Fatal
errors end the current generation and are surfaced through
``SearchState.error_message``. Non-fatal errors are logged and never remove
results that are already displayed.
"""


class SearchPollError(Exception):
    """Base exception for all searchpoll errors."""


class EmptyResultTransient(SearchPollError):
    """An empty batch arrived while the backend cache was still filling."""


class BudgetExhaustedError(SearchPollError):
    """The global poll budget ran out before the search settled."""

    def __init__(self, poll_count: int) -> None:
        super().__init__("Search timed out")
        self.poll_count = poll_count


class RetriesExhaustedError(SearchPollError):
    """Transport kept failing after every allowed retry."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Search failed after {attempts} attempts")
        self.attempts = attempts


class FilterApplicationError(SearchPollError):
    """A filter could not be applied; prior results stay visible."""


class ReconciliationPollError(SearchPollError):
    """The one-shot reconciliation poll failed; existing results are kept."""


class AdServiceError(SearchPollError):
    """The advertisement service returned an error or an unusable body."""
