"""Counting of records skipped or defaulted during reconciliation."""

from __future__ import annotations

import logging
from collections import Counter

logger = logging.getLogger(__name__)

MISSING_CUSTOMER = "missing_customer"
ORPHANED_ROUTE = "orphaned_route"
DUPLICATE_DELIVERY = "duplicate_delivery"
MALFORMED_ROW = "malformed_row"


class AnomalyLog:
    """Collects per-kind counts of bad collaborator records.

    A single bad record must never abort an aggregation, so callers record it
    here and carry on. The totals are surfaced to API clients as ``skipped``.
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def record(self, kind: str, detail: str | None = None) -> None:
        self._counts[kind] += 1
        if detail:
            logger.warning("Skipping record (%s): %s", kind, detail)
        else:
            logger.warning("Skipping record (%s)", kind)

    def merge(self, other: "AnomalyLog | None") -> "AnomalyLog":
        if other is not None:
            self._counts.update(other._counts)
        return self

    def count(self, kind: str) -> int:
        return self._counts.get(kind, 0)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def as_dict(self) -> dict[str, int]:
        return dict(sorted(self._counts.items()))
