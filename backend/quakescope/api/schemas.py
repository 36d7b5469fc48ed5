"""
Pydantic response schemas for the earthquake API.

Separated from the route handlers so they are reusable by other
consumers (background refreshers, tests).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class EventOut(BaseModel):
    event_id: str
    magnitude: Optional[float] = None
    depth_km: float
    time_ms: int
    timestamp: str
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    place: str = ""
    url: str = ""


class RankedEventOut(EventOut):
    distance_km: float = Field(..., ge=0.0)
    distance_label: str = Field(..., examples=["12.3 km"])


class FetchOutcomeOut(BaseModel):
    """Result contract: in progress, succeeded with N events, or failed."""
    state: str = Field(..., examples=["succeeded"])
    generation: int
    count: int = 0
    error: Optional[str] = None
    request: Optional[dict] = None
    last_updated: Optional[str] = None


class EarthquakeListResponse(BaseModel):
    outcome: FetchOutcomeOut
    count: int
    events: List[EventOut]


class BucketOut(BaseModel):
    label: str
    count: int = Field(..., ge=0)


class HistogramResponse(BaseModel):
    total: int
    by_day: List[BucketOut]
    by_magnitude: List[BucketOut] = Field(..., min_length=4, max_length=4)


class NearestResponse(BaseModel):
    reference: EventOut
    source: str = Field(..., description="'regional' or 'working_set' (fallback)")
    count: int
    nearest: List[RankedEventOut]
    error: Optional[str] = None
