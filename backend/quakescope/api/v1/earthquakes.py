"""
FastAPI earthquake endpoints.

Endpoints:
    GET  /api/v1/earthquakes                      — Fetch + filter a new working set
    GET  /api/v1/earthquakes/status               — Current fetch outcome
    GET  /api/v1/earthquakes/histograms           — Day / magnitude-band buckets
    GET  /api/v1/earthquakes/{event_id}/nearest   — Ten closest events
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from backend.quakescope.api.schemas import (
    EarthquakeListResponse,
    FetchOutcomeOut,
    HistogramResponse,
    NearestResponse,
)
from backend.quakescope.core.config import settings
from backend.quakescope.core.errors import ValidationError
from backend.quakescope.seismic.models import FetchRequest, FilterConfig, TimeRange, clamp_range
from backend.quakescope.seismic.session import QuakeSession, StaleResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/earthquakes", tags=["earthquakes"])


def get_session(request: Request) -> QuakeSession:
    return request.app.state.session


def _pair(name: str, lo: Optional[float], hi: Optional[float]) -> Optional[Tuple[float, float]]:
    if lo is None and hi is None:
        return None
    if lo is None or hi is None:
        raise ValidationError(f"{name} needs both a lower and an upper bound", field=name)
    return (lo, hi)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=EarthquakeListResponse)
async def list_earthquakes(
    window: str = Query("day", description="Named window: day or week"),
    start: Optional[date] = Query(None, description="Custom range start (ISO date)"),
    end: Optional[date] = Query(None, description="Custom range end (ISO date)"),
    min_magnitude: float = Query(settings.DEFAULT_MIN_MAGNITUDE, ge=0, le=10),
    mag_min: Optional[float] = Query(None, ge=0, le=10),
    mag_max: Optional[float] = Query(None, ge=0, le=10),
    depth_min: Optional[float] = Query(None, ge=-10, le=800),
    depth_max: Optional[float] = Query(None, ge=-10, le=800),
    max_count: Optional[int] = Query(settings.DEFAULT_MAX_COUNT, description="<= 0 disables the cap"),
    session: QuakeSession = Depends(get_session),
):
    """
    Fetch a new working set and return it.

    Both ``start`` and ``end`` select a custom date range (clamped to
    MAX_RANGE_MONTHS); otherwise the named ``window`` feed is used.
    """
    filters = FilterConfig(
        min_magnitude=min_magnitude,
        magnitude_range=_pair("magnitude_range", mag_min, mag_max),
        depth_range=_pair("depth_range", depth_min, depth_max),
        max_count=max_count,
    )

    if start is not None and end is not None:
        time_range = clamp_range(TimeRange(start, end), settings.MAX_RANGE_MONTHS)
        fetch_request = FetchRequest.custom(time_range.start, time_range.end, filters)
    else:
        fetch_request = FetchRequest.named(window, filters)

    try:
        outcome = await session.refresh(fetch_request)
    except StaleResult as exc:
        raise HTTPException(409, f"Superseded by a newer request ({exc})")

    working_set = session.working_set
    return {
        "outcome": outcome.to_dict(),
        "count": working_set.count,
        "events": [e.to_dict() for e in working_set],
    }


@router.get("/status", response_model=FetchOutcomeOut)
async def fetch_status(session: QuakeSession = Depends(get_session)):
    """Loading / succeeded / failed state of the latest refresh."""
    return session.outcome.to_dict()


@router.get("/histograms", response_model=HistogramResponse)
async def histograms(session: QuakeSession = Depends(get_session)):
    return session.histograms().to_dict()


@router.get("/{event_id}/nearest", response_model=NearestResponse)
async def nearest(
    event_id: str,
    regional: bool = Query(True, description="Query a 500 km region instead of the working set"),
    session: QuakeSession = Depends(get_session),
):
    """
    The ten closest events to ``event_id``, nearest first.

    With ``regional=true`` a fresh regional query supplies the candidates;
    if it fails, ranking falls back to the working set and ``source``
    reports ``working_set``.
    """
    ranking = await session.nearest(event_id, regional=regional)
    return ranking.to_dict()
