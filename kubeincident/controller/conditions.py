"""Ordering of pod conditions by recency."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from kubeincident.models.workload import PodCondition

_OLDEST = datetime.min.replace(tzinfo=UTC)


def _transition_key(condition: PodCondition) -> datetime:
    ts = condition.last_transition_time
    if ts is None:
        return _OLDEST
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def sort_conditions(conditions: Iterable[PodCondition]) -> list[PodCondition]:
    """Return conditions most recent first.

    The sort is stable, so conditions sharing a transition time keep their
    original relative order and re-sorting a sorted list is a no-op. A
    condition without a transition time sorts as the oldest.
    """
    return sorted(conditions, key=_transition_key, reverse=True)


def latest_condition(conditions: Iterable[PodCondition]) -> PodCondition | None:
    ordered = sort_conditions(conditions)
    return ordered[0] if ordered else None
