"""
Value types shared by the route search pipeline.

Everything here is a frozen dataclass: the proposer, controller and assembler
hand new instances down the pipeline instead of mutating old ones, so every
search attempt stays an inspectable snapshot.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

# Fixed degree/km conversion. Longitude degrees shrink with latitude, so
# distances measured with this constant are only approximate away from the
# equator; it is good enough for the 0.5-80 km spans the proposers work with.
KM_PER_DEGREE = 111.0


class Activity(str, Enum):
    WALKING = "walking"
    CYCLING = "cycling"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def is_valid(self, null_tolerance_deg: float = 0.0) -> bool:
        """Finite, inside lat/lng bounds and not on the (0, 0) sentinel."""
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            return False
        if not (-90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0):
            return False
        if null_tolerance_deg > 0:
            return not (
                abs(self.lat) < null_tolerance_deg and abs(self.lng) < null_tolerance_deg
            )
        return not (self.lat == 0.0 and self.lng == 0.0)

    def distance_km_approx(self, other: "Coordinate") -> float:
        """Straight-line distance using the flat 111 km/degree approximation."""
        return math.hypot(other.lat - self.lat, other.lng - self.lng) * KM_PER_DEGREE

    def as_lng_lat(self) -> Tuple[float, float]:
        return (self.lng, self.lat)


@dataclass(frozen=True)
class DistanceRange:
    min_km: float
    max_km: float

    def contains(self, distance_km: float) -> bool:
        return self.min_km <= distance_km <= self.max_km

    def within(self, other: "DistanceRange") -> bool:
        return other.min_km <= self.min_km and self.max_km <= other.max_km


@dataclass(frozen=True)
class SearchGoal:
    activity: Activity
    target_distance_km: float
    acceptable_range: DistanceRange
    ideal_range: DistanceRange
    max_attempts: int
    profiles: Tuple[str, ...]
    require_loop: bool = False


@dataclass(frozen=True)
class SearchPolicy:
    """How the controller reacts to each outcome."""

    # Attempts (0-based index below this) that may still resize on too short/long;
    # None means every attempt may
    adjust_limit: Optional[int] = None
    # Stop at the first candidate inside the acceptable band instead of pushing for ideal
    accept_within_acceptable: bool = True
    transient_retries: int = 2
    backoff_base_s: float = 0.5
    backoff_cap_s: float = 3.0


@dataclass(frozen=True)
class WaypointSet:
    """Ordered provider request plus the proposer parameters that produced it."""

    coordinates: Tuple[Coordinate, ...]
    radius_km: float
    bearing_deg: float = 0.0
    snap_radius_m: float = 5000.0

    @property
    def start(self) -> Coordinate:
        return self.coordinates[0]

    @property
    def end(self) -> Coordinate:
        return self.coordinates[-1]


@dataclass(frozen=True)
class CandidateRoute:
    waypoints: WaypointSet
    path: Tuple[Coordinate, ...]
    distance_km: float
    duration_min: float
    elevation_gain_m: float
    profile: str
    duration_suspect: bool = False
    instructions: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class Verdict(str, Enum):
    WITHIN_IDEAL = "within_ideal"
    WITHIN_ACCEPTABLE = "within_acceptable"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    UNUSABLE = "unusable"


@dataclass(frozen=True)
class Classification:
    verdict: Verdict
    distance_km: float
    # distance_km - target_distance_km
    error_km: float
    # Signed distance outside the ideal band, 0.0 inside it
    ideal_error_km: float = 0.0
    reason: Optional[str] = None


class Quality(str, Enum):
    IDEAL = "ideal"
    ACCEPTABLE = "acceptable"
    CLOSEST_ACHIEVABLE = "closest_achievable"


@dataclass(frozen=True)
class Success:
    candidate: CandidateRoute
    classification: Classification


@dataclass(frozen=True)
class Rejected:
    reason: str
    measured_distance_km: Optional[float]


@dataclass(frozen=True)
class ProviderFailure:
    kind: str
    message: str


AttemptOutcome = Union[Success, Rejected, ProviderFailure]


@dataclass(frozen=True)
class SearchAttempt:
    attempt_index: int
    waypoints: WaypointSet
    profile: str
    outcome: AttemptOutcome


@dataclass(frozen=True)
class SearchResult:
    candidate: CandidateRoute
    classification: Classification
    attempts: Tuple[SearchAttempt, ...]
    quality: Quality

    @property
    def attempts_used(self) -> int:
        return len(self.attempts)


@dataclass(frozen=True)
class DayPlan:
    day_number: int
    distance_km: float
    duration_min: float
    elevation_gain_m: float
    start_point: Coordinate
    end_point: Coordinate
    path: Tuple[Coordinate, ...]
    quality: Quality


@dataclass(frozen=True)
class RouteResult:
    activity: Activity
    distance_km: float
    duration_min: float
    elevation_gain_m: float
    path: Tuple[Coordinate, ...]
    start_point: Coordinate
    end_point: Coordinate
    is_multi_day: bool
    quality: Quality
    attempts_used: int
    day_plans: Optional[Tuple[DayPlan, ...]] = None
    instructions: Tuple[str, ...] = ()
    country: Optional[str] = None
    city: Optional[str] = None
