"""
models.py — Earthquake event model and query value objects.

USGS GeoJSON feature format:
    feature = {
        "type": "Feature",
        "id": "us7000m...",
        "properties": { "mag": 5.2, "place": "...", "time": 1708617600000,
                        "url": "...", ... },
        "geometry": { "type": "Point", "coordinates": [lon, lat, depth_km] }
    }

Events are immutable once parsed. A fetch produces a fresh list; nothing
here is ever mutated in place.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from backend.quakescope.core.errors import ValidationError
from backend.quakescope.spatial.geodesic import format_distance

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class QueryMode(str, Enum):
    """How the primary event set is acquired."""
    NAMED_WINDOW = "named_window"  # fixed recent summary feed
    CUSTOM_RANGE = "custom_range"  # explicit start/end dates


class TimeWindow(str, Enum):
    """USGS summary feed windows."""
    DAY = "day"
    WEEK = "week"

    @property
    def feed_name(self) -> str:
        return f"all_{self.value}.geojson"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TimeWindow":
        """Unknown or missing window names fall back to the day feed."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.DAY


# ═══════════════════════════════════════════════════════════════════════════
# Event
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Event:
    """A single earthquake as reported by the feed."""

    event_id: str
    magnitude: Optional[float]  # the feed occasionally reports null
    depth_km: float  # negative for sources above sea level
    time_ms: int
    latitude: float
    longitude: float
    place: str = ""
    url: str = ""

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.time_ms / 1000.0, tz=timezone.utc)

    @property
    def day(self) -> str:
        """UTC calendar date as ISO string."""
        return self.timestamp.date().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "magnitude": self.magnitude,
            "depth_km": self.depth_km,
            "time_ms": self.time_ms,
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "place": self.place,
            "url": self.url,
        }


def parse_feature(feature: Dict[str, Any]) -> Optional[Event]:
    """
    Parse one GeoJSON feature into an Event.

    Returns None (and logs a warning) for features missing an id,
    coordinates, or time, and for entries that are not JSON objects.
    """
    if not isinstance(feature, dict):
        logger.warning("Skipping non-object USGS feature: %r", feature)
        return None
    try:
        props = feature.get("properties") or {}
        coords = feature["geometry"]["coordinates"]  # [lon, lat, depth]

        mag = props.get("mag")
        return Event(
            event_id=str(feature["id"]),
            magnitude=float(mag) if mag is not None else None,
            depth_km=float(coords[2]) if len(coords) > 2 and coords[2] is not None else 0.0,
            time_ms=int(props["time"]),
            latitude=float(coords[1]),
            longitude=float(coords[0]),
            place=str(props.get("place") or ""),
            url=str(props.get("url") or ""),
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        logger.warning("Failed to parse USGS feature %r: %s", feature.get("id"), exc)
        return None


# ═══════════════════════════════════════════════════════════════════════════
# Time ranges
# ═══════════════════════════════════════════════════════════════════════════

def add_months(d: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_span(start: date, end: date) -> int:
    """Whole-calendar-month difference, ignoring the day of month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


@dataclass(frozen=True)
class TimeRange:
    """
    Calendar date interval, both ends inclusive.

    ``end`` may be None only for named-window queries, where the feed
    itself defines the span.
    """
    start: date
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if self.end is not None and self.start > self.end:
            raise ValidationError(
                f"start {self.start} is after end {self.end}",
                field="time_range",
            )

    @property
    def is_bounded(self) -> bool:
        return self.end is not None

    @property
    def days(self) -> Optional[int]:
        if self.end is None:
            return None
        return (self.end - self.start).days + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else None,
        }


def clamp_range(time_range: TimeRange, max_months: int) -> TimeRange:
    """
    Limit a bounded range to ``max_months`` calendar months.

    A clamped range ends the day before ``start + max_months``.
    """
    if time_range.end is None or max_months <= 0:
        return time_range
    limit = add_months(time_range.start, max_months) - timedelta(days=1)
    if time_range.end <= limit:
        return time_range
    logger.info(
        "Clamping range %s..%s to %d months (ends %s)",
        time_range.start, time_range.end, max_months, limit,
    )
    return TimeRange(time_range.start, limit)


# ═══════════════════════════════════════════════════════════════════════════
# Filters
# ═══════════════════════════════════════════════════════════════════════════

def _check_bounds(name: str, bounds: Optional[Tuple[float, float]]) -> None:
    if bounds is None:
        return
    lo, hi = bounds
    if lo > hi:
        raise ValidationError(f"{name} lower bound {lo} exceeds upper bound {hi}", field=name)


@dataclass(frozen=True)
class FilterConfig:
    """
    User-selected constraints on the working set.

    ``min_magnitude`` is the single magnitude slider. When no explicit
    ``magnitude_range`` is set, that scalar acts as the *upper* cap over
    [0, min_magnitude] rather than as a floor.
    """
    min_magnitude: float = 2.0
    magnitude_range: Optional[Tuple[float, float]] = None
    depth_range: Optional[Tuple[float, float]] = None
    max_count: Optional[int] = None

    def __post_init__(self) -> None:
        _check_bounds("magnitude_range", self.magnitude_range)
        _check_bounds("depth_range", self.depth_range)

    def magnitude_bounds(self) -> Tuple[float, float]:
        if self.magnitude_range is not None:
            return self.magnitude_range
        return (0.0, self.min_magnitude)

    def to_dict(self) -> Dict[str, Any]:
        lo, hi = self.magnitude_bounds()
        return {
            "magnitude": {"min": lo, "max": hi},
            "depth": (
                {"min": self.depth_range[0], "max": self.depth_range[1]}
                if self.depth_range else None
            ),
            "max_count": self.max_count,
        }


@dataclass(frozen=True)
class FetchRequest:
    """Everything the orchestrator and pipeline need for one fetch."""
    mode: QueryMode
    filters: FilterConfig = field(default_factory=FilterConfig)
    window: TimeWindow = TimeWindow.DAY
    time_range: Optional[TimeRange] = None

    def __post_init__(self) -> None:
        if self.mode is QueryMode.CUSTOM_RANGE:
            if self.time_range is None or not self.time_range.is_bounded:
                raise ValidationError(
                    "custom range queries need both start and end dates",
                    field="time_range",
                )

    @classmethod
    def named(cls, window: Optional[str] = None, filters: Optional[FilterConfig] = None) -> "FetchRequest":
        return cls(
            mode=QueryMode.NAMED_WINDOW,
            window=TimeWindow.parse(window),
            filters=filters or FilterConfig(),
        )

    @classmethod
    def custom(cls, start: date, end: date, filters: Optional[FilterConfig] = None) -> "FetchRequest":
        return cls(
            mode=QueryMode.CUSTOM_RANGE,
            time_range=TimeRange(start, end),
            filters=filters or FilterConfig(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "window": self.window.value if self.mode is QueryMode.NAMED_WINDOW else None,
            "time_range": self.time_range.to_dict() if self.time_range else None,
            "filters": self.filters.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════
# Outputs
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RankedEvent:
    event: Event
    distance_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.event.to_dict(),
            "distance_km": round(self.distance_km, 2),
            "distance_label": format_distance(self.distance_km),
        }


@dataclass(frozen=True)
class Bucket:
    label: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "count": self.count}
