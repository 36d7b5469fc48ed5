"""
Pure filter predicates over events. Bounds are inclusive on both ends.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple, TypeVar

from backend.quakescope.seismic.models import Event

T = TypeVar("T")


def magnitude_in_range(event: Event, bounds: Tuple[float, float]) -> bool:
    """False for events without a magnitude."""
    if event.magnitude is None:
        return False
    lo, hi = bounds
    return lo <= event.magnitude <= hi


def depth_in_range(event: Event, bounds: Tuple[float, float]) -> bool:
    lo, hi = bounds
    return lo <= event.depth_km <= hi


def apply_count_cap(items: Sequence[T], cap: Optional[int]) -> Sequence[T]:
    """First ``cap`` items in arrival order; no truncation when cap is None or <= 0."""
    if cap is None or cap <= 0 or len(items) <= cap:
        return items
    return items[:cap]
