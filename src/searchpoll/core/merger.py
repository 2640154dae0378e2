"""Result Merger — Folds poll batches into the displayed result list.

Merge rule: ``current ++ [b for b in batch if b.id not in ids(current)]``.

Modes:
  - append:    pagination; arrival order is kept so the scroll position
               does not jump.
  - reconcile: final poll; the merged list is stable-sorted by
               (is_best desc, is_cheapest desc, is_fastest desc, price asc).

Merging is pure and idempotent: merging the same batch twice changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from searchpoll.models.results import ResultItem


class MergeMode(str, Enum):
    APPEND = "append"
    RECONCILE = "reconcile"


class ResultMerger:
    """Deduplicating merge of result batches."""

    @staticmethod
    def merge(
        current: list[ResultItem],
        batch: Iterable[ResultItem],
        mode: MergeMode = MergeMode.APPEND,
    ) -> list[ResultItem]:
        """Merge a batch into the current list.

        Args:
            current: Results already held. Not modified.
            batch: Newly fetched results, possibly overlapping ``current``
                or containing repeated ids.
            mode: Append (keep order) or reconcile (re-rank).

        Returns:
            A new list with no duplicate ids.
        """
        seen = {item.id for item in current}
        merged = list(current)
        for item in batch:
            if item.id in seen:
                continue
            seen.add(item.id)
            merged.append(item)

        if mode is MergeMode.RECONCILE:
            merged.sort(key=ResultMerger.rank_key)
        return merged

    @staticmethod
    def append(current: list[ResultItem], batch: Iterable[ResultItem]) -> list[ResultItem]:
        return ResultMerger.merge(current, batch, MergeMode.APPEND)

    @staticmethod
    def reconcile(current: list[ResultItem], batch: Iterable[ResultItem]) -> list[ResultItem]:
        return ResultMerger.merge(current, batch, MergeMode.RECONCILE)

    @staticmethod
    def rank_key(item: ResultItem) -> tuple[bool, bool, bool, float]:
        """Sort key for reconcile mode (flags first, then cheapest)."""
        return (not item.is_best, not item.is_cheapest, not item.is_fastest, item.price)
