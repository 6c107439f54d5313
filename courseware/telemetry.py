"""
Process-local counters for evaluation, progress and access events.

Series are identified by a counter name plus a sorted tuple of label pairs,
e.g. `access_redemptions_total{outcome=expired}`. Nothing is exported; the
health endpoint reports totals and tests read snapshots.
"""
from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Dict, Tuple

LabelKey = Tuple[Tuple[str, str], ...]


class _Registry:
    def __init__(self) -> None:
        self._series: Dict[str, Counter] = {}
        self._lock = Lock()

    def add(self, name: str, labels: LabelKey, amount: int) -> None:
        with self._lock:
            self._series.setdefault(name, Counter())[labels] += amount

    def series(self, name: str) -> dict[LabelKey, int]:
        with self._lock:
            return dict(self._series.get(name, {}))

    def totals(self) -> dict[str, int]:
        with self._lock:
            return {name: sum(values.values()) for name, values in sorted(self._series.items())}

    def clear(self) -> None:
        with self._lock:
            self._series = {}


_registry = _Registry()


def increment_counter(name: str, *, amount: int = 1, **labels: str) -> None:
    if amount:
        _registry.add(name, tuple(sorted((k, str(v)) for k, v in labels.items())), amount)


def counter_snapshot(name: str) -> dict[LabelKey, int]:
    """Copy of every labelled series recorded under `name`."""
    return _registry.series(name)


def counter_total(name: str) -> int:
    return sum(_registry.series(name).values())


def counter_totals() -> dict[str, int]:
    return _registry.totals()


def reset_for_tests() -> None:
    _registry.clear()
