"""
Filtering pipeline — raw fetch output → working set.

Stage order is fixed: magnitude, then depth, then count cap. Each stage
preserves arrival order, so the output is always an ordered subsequence
of the input.

Magnitude policy depends on how the events were fetched:

    CUSTOM_RANGE  the orchestrator already sent minmagnitude/maxmagnitude
                  to the server; the filter is re-applied here and is a
                  no-op for well-behaved responses.
    NAMED_WINDOW  the summary feeds accept no parameters, so this is the
                  first and only magnitude filter. Events without a
                  magnitude are dropped.

Both branches resolve bounds through FilterConfig.magnitude_bounds(), so
with no explicit range the single slider value is the upper cap over
[0, slider]. Do not merge the branches: the asymmetry is observable in
what each mode returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from backend.quakescope.seismic.models import Event, FilterConfig, QueryMode
from backend.quakescope.seismic.predicates import (
    apply_count_cap,
    depth_in_range,
    magnitude_in_range,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkingSet:
    """The filtered events handed to display and aggregation."""
    events: Tuple[Event, ...] = ()

    @property
    def count(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "events": [e.to_dict() for e in self.events],
        }


def apply_filters(
    raw: Sequence[Event],
    filters: FilterConfig,
    mode: QueryMode,
) -> WorkingSet:
    bounds = filters.magnitude_bounds()

    if mode is QueryMode.NAMED_WINDOW:
        # First pass: the feed returned every magnitude.
        events = [e for e in raw if magnitude_in_range(e, bounds)]
    else:
        # Server already applied these bounds; re-check for consistency.
        events = [e for e in raw if magnitude_in_range(e, bounds)]
        if len(events) != len(raw):
            logger.debug(
                "%d event(s) outside server-side magnitude bounds dropped",
                len(raw) - len(events),
            )

    if filters.depth_range is not None:
        events = [e for e in events if depth_in_range(e, filters.depth_range)]

    events = apply_count_cap(events, filters.max_count)

    logger.info(
        "Filtered %d raw → %d events (%s)",
        len(raw), len(events), mode.value,
        extra={"event_count": len(events)},
    )
    return WorkingSet(tuple(events))
