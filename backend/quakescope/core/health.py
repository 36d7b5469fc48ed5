"""
Health check aggregation.

Checks:
    • USGS feed reachability (HEAD on the hourly summary feed)
    • Session state (last refresh failed → degraded)

Returns a structured report suitable for readiness probes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from backend.quakescope.core.config import settings
from backend.quakescope.core.errors import FetchFailure

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


async def check_usgs(client) -> ComponentHealth:
    comp = ComponentHealth(name="usgs_feed")
    start = time.monotonic()
    try:
        status_code = await client.ping()
        if 200 <= status_code < 300:
            comp.message = "Feed reachable"
        else:
            comp.status = HealthStatus.UNHEALTHY
            comp.message = f"HTTP {status_code}"
    except FetchFailure as e:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = e.message
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


def check_session(session) -> ComponentHealth:
    outcome = session.outcome
    comp = ComponentHealth(name="session")
    if outcome.state.value == "failed":
        comp.status = HealthStatus.DEGRADED
        comp.message = outcome.error or "Last refresh failed"
    else:
        comp.message = f"{outcome.state.value}, {outcome.count} events"
    comp.details = {"generation": outcome.generation}
    return comp


async def run_health_check(session) -> HealthReport:
    """Run all checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )
    report.components.append(await check_usgs(session.client))
    report.components.append(check_session(session))

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    return report
