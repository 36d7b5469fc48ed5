"""
Histogram aggregation for the activity charts.

    by day        one bucket per UTC calendar date present, ascending;
                  days without events are simply absent.
    by magnitude  always four bands, in this order:

                      <2.0      (−∞, 2.0)
                      2.0-3.9   [2.0, 4.0)
                      4.0-5.9   [4.0, 6.0)
                      6.0+      [6.0, ∞)

                  Bands are checked in ascending order and the first match
                  wins. An event without a magnitude is counted as 0 and
                  lands in the first band, so the band counts always sum
                  to the number of events.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from backend.quakescope.seismic.models import Bucket, Event

# (label, lower inclusive, upper exclusive)
MAGNITUDE_BANDS: Tuple[Tuple[str, float, float], ...] = (
    ("<2.0", -math.inf, 2.0),
    ("2.0-3.9", 2.0, 4.0),
    ("4.0-5.9", 4.0, 6.0),
    ("6.0+", 6.0, math.inf),
)


def bucket_by_day(events: Iterable[Event]) -> List[Bucket]:
    counts = Counter(e.day for e in events)
    return [Bucket(day, counts[day]) for day in sorted(counts)]


def bucket_by_magnitude(events: Iterable[Event]) -> List[Bucket]:
    counts = [0] * len(MAGNITUDE_BANDS)
    for event in events:
        mag = event.magnitude if event.magnitude is not None else 0.0
        for i, (_, lo, hi) in enumerate(MAGNITUDE_BANDS):
            if lo <= mag < hi:
                counts[i] += 1
                break
    return [Bucket(label, n) for (label, _, _), n in zip(MAGNITUDE_BANDS, counts)]


@dataclass
class Aggregation:
    total: int = 0
    by_day: List[Bucket] = field(default_factory=list)
    by_magnitude: List[Bucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_day": [b.to_dict() for b in self.by_day],
            "by_magnitude": [b.to_dict() for b in self.by_magnitude],
        }


def aggregate(events: Sequence[Event]) -> Aggregation:
    return Aggregation(
        total=len(events),
        by_day=bucket_by_day(events),
        by_magnitude=bucket_by_magnitude(events),
    )
