"""
geodesic.py — Great-circle distance between two (lat, lon) points.

Mathematical Foundation — Haversine Formula
============================================
Given two points P₁(φ₁, λ₁) and P₂(φ₂, λ₂):

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    c = 2 · atan2(√a, √(1 − a))
    d = R · c

Where φ is latitude and λ longitude in radians, and R = 6371 km
(spherical Earth). The result is symmetric in its two points and zero for
identical points.

No range validation is done here: callers supply lat ∈ [-90, 90] and
lon ∈ [-180, 180]. Any real input produces a finite, non-negative number.
"""

from __future__ import annotations

import math

EARTH_RADIUS_KM: float = 6_371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometres between two points.

    Examples
    --------
    >>> distance_km(0.0, 0.0, 0.0, 0.0)
    0.0
    >>> round(distance_km(0.0, 0.0, 0.0, 1.0), 1)
    111.2
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    # Floating-point noise can push `a` a hair outside [0, 1]
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def format_distance(km: float) -> str:
    """
    Human-readable distance label for insight tables.

    >>> format_distance(0.25)
    '250 m'
    >>> format_distance(12.345)
    '12.3 km'
    >>> format_distance(480.6)
    '481 km'
    """
    if km < 1.0:
        return f"{km * 1000:.0f} m"
    if km < 100.0:
        return f"{km:.1f} km"
    return f"{km:.0f} km"
