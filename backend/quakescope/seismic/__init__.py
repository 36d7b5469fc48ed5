"""
Earthquake acquisition and analysis.

This package provides:
- Event model and query value objects
- Async USGS feed client
- Chunked, paced date-range fetching
- Magnitude / depth / count filtering into a working set
- Nearest-neighbour ranking and histogram aggregation
- A session object that owns the working set and its fetch state
"""

from .models import (
    Bucket,
    Event,
    FetchRequest,
    FilterConfig,
    QueryMode,
    RankedEvent,
    TimeRange,
    TimeWindow,
)
from .usgs_client import USGSClient
from .orchestrator import ChunkedFetchOrchestrator, plan_chunks
from .pipeline import WorkingSet, apply_filters
from .ranker import RegionalRanking, rank_nearest, rank_regional
from .aggregator import Aggregation, aggregate
from .session import FetchOutcome, FetchState, QuakeSession, StaleResult

__all__ = [
    "Bucket",
    "Event",
    "FetchRequest",
    "FilterConfig",
    "QueryMode",
    "RankedEvent",
    "TimeRange",
    "TimeWindow",
    "USGSClient",
    "ChunkedFetchOrchestrator",
    "plan_chunks",
    "WorkingSet",
    "apply_filters",
    "RegionalRanking",
    "rank_nearest",
    "rank_regional",
    "Aggregation",
    "aggregate",
    "FetchOutcome",
    "FetchState",
    "QuakeSession",
    "StaleResult",
]
