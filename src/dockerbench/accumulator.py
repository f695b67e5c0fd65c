"""Per-scenario running sums and counts."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from dockerbench.scenarios import ScenarioId


@dataclass
class AccumulatorEntry:
    """Running statistics for one scenario."""

    total: float = 0.0
    count: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return self.count + len(self.failures)

    @property
    def mean(self) -> Optional[float]:
        if self.count == 0:
            return None
        return self.total / self.count


class ScenarioAccumulator:
    """
    Maps scenario identifiers to running sums and counts.

    Only successful samples enter the mean; failed trials are kept as
    reasons so the report can tell "no successful trials" apart from a real
    zero. Entries are never removed and iterate in insertion order. Not safe
    for concurrent mutation.
    """

    def __init__(self) -> None:
        self._entries: Dict[ScenarioId, AccumulatorEntry] = {}

    def begin(self, scenario: ScenarioId) -> AccumulatorEntry:
        """Create the scenario's entry if it does not exist yet."""
        entry = self._entries.get(scenario)
        if entry is None:
            entry = self._entries[scenario] = AccumulatorEntry()
        return entry

    def add_sample(self, scenario: ScenarioId, value: float) -> None:
        value = float(value)
        if math.isnan(value) or value < 0:
            raise ValueError(f"Trial result for {scenario} must be a non-negative number, got {value}")
        entry = self.begin(scenario)
        entry.total += value
        entry.count += 1

    def record_failure(self, scenario: ScenarioId, reason: str) -> None:
        self.begin(scenario).failures.append(reason)

    def mean(self, scenario: ScenarioId) -> Optional[float]:
        """Arithmetic mean of the recorded samples, or None when unavailable."""
        entry = self._entries.get(scenario)
        return entry.mean if entry is not None else None

    def get(self, scenario: ScenarioId) -> Optional[AccumulatorEntry]:
        return self._entries.get(scenario)

    def items(self) -> Iterator[Tuple[ScenarioId, AccumulatorEntry]]:
        return iter(list(self._entries.items()))

    def failed(self) -> List[Tuple[ScenarioId, AccumulatorEntry]]:
        return [(sid, entry) for sid, entry in self._entries.items() if entry.failures]

    def __contains__(self, scenario: object) -> bool:
        return scenario in self._entries

    def __iter__(self) -> Iterator[ScenarioId]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
