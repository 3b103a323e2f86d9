"""
Waypoint proposer - synthesizes the coordinates sent to the routing provider.

Two strategies:
- CircularProposer (walking): evenly spaced ring around the city center,
  closed back onto its first point, resized until the loop length fits.
- RadialProposer (cycling, one per day): start point plus a far end point
  along a bearing, stretched/shrunk on distance misses and rotated into new
  territory when the provider cannot route the current pair.

Proposers are frozen; every method is a pure function of its arguments and
the construction parameters, returning a new WaypointSet. The radial seed
draws from random.Random(seed), so a fixed seed replays exactly.

Precision boundary: radii are converted to degrees with the flat
1 degree = 111 km rule, not corrected per latitude. East-west offsets come
out short away from the equator; only the measured provider distance is
trusted for acceptance.
"""
import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from wayfinder.models.route import (
    KM_PER_DEGREE,
    Classification,
    Coordinate,
    WaypointSet,
)


def offset_point(origin: Coordinate, distance_km: float, bearing_deg: float) -> Coordinate:
    """Point distance_km away from origin; bearing 0 = north, 90 = east."""
    distance_deg = distance_km / KM_PER_DEGREE
    bearing_rad = math.radians(bearing_deg)
    return Coordinate(
        lat=origin.lat + distance_deg * math.cos(bearing_rad),
        lng=origin.lng + distance_deg * math.sin(bearing_rad),
    )


def ring_points(
    center: Coordinate, radius_km: float, num_points: int, phase_deg: float = 0.0
) -> Tuple[Coordinate, ...]:
    points = [
        offset_point(center, radius_km, phase_deg + 360.0 * i / num_points)
        for i in range(num_points)
    ]
    # Close the loop
    points.append(points[0])
    return tuple(points)


def points_for_distance(target_km: float) -> int:
    return min(max(6, int(target_km * 1.2)), 10)


def seed_radius_km(target_km: float) -> float:
    # Roads wind, so start well inside the geometric circumference estimate
    return max(target_km / (2 * math.pi * 3), 0.5)


class WaypointProposer(ABC):
    @abstractmethod
    def seed(self) -> WaypointSet:
        """Attempt 0 proposal"""

    @abstractmethod
    def adjust(
        self, previous: WaypointSet, classification: Classification, attempt_index: int
    ) -> WaypointSet:
        """Resize after a measured distance miss"""

    @abstractmethod
    def reroute(self, previous: WaypointSet, attempt_index: int) -> WaypointSet:
        """Move somewhere else after the provider could not route the proposal"""


@dataclass(frozen=True)
class CircularProposer(WaypointProposer):
    center: Coordinate
    target_km: float
    num_points: int
    shrink_factor: float = 0.8
    grow_factor: float = 1.3
    snap_radius_m: float = 5000.0
    max_snap_radius_m: float = 20000.0
    snap_growth: float = 1.5

    @classmethod
    def for_target(cls, center: Coordinate, target_km: float, **kwargs) -> "CircularProposer":
        return cls(center=center, target_km=target_km, num_points=points_for_distance(target_km), **kwargs)

    def seed(self) -> WaypointSet:
        radius_km = seed_radius_km(self.target_km)
        return WaypointSet(
            coordinates=ring_points(self.center, radius_km, self.num_points),
            radius_km=radius_km,
            bearing_deg=0.0,
            snap_radius_m=self.snap_radius_m,
        )

    def adjust(
        self, previous: WaypointSet, classification: Classification, attempt_index: int
    ) -> WaypointSet:
        if classification.ideal_error_km > 0:
            radius_km = previous.radius_km * self.shrink_factor
        elif classification.ideal_error_km < 0:
            radius_km = previous.radius_km * self.grow_factor
        else:
            return previous
        return WaypointSet(
            coordinates=ring_points(self.center, radius_km, self.num_points, previous.bearing_deg),
            radius_km=radius_km,
            bearing_deg=previous.bearing_deg,
            snap_radius_m=previous.snap_radius_m,
        )

    def reroute(self, previous: WaypointSet, attempt_index: int) -> WaypointSet:
        # Half a ring step puts every point between two of the old ones
        phase_deg = (previous.bearing_deg + 180.0 / self.num_points) % 360.0
        snap_radius_m = min(previous.snap_radius_m * self.snap_growth, self.max_snap_radius_m)
        return WaypointSet(
            coordinates=ring_points(self.center, previous.radius_km, self.num_points, phase_deg),
            radius_km=previous.radius_km,
            bearing_deg=phase_deg,
            snap_radius_m=snap_radius_m,
        )


@dataclass(frozen=True)
class RadialProposer(WaypointProposer):
    start: Coordinate
    min_distance_km: float = 15.0
    max_distance_km: float = 30.0
    seed_value: Optional[int] = None
    # Bearing of the previous day; the seed heads roughly the other way
    avoid_bearing_deg: Optional[float] = None
    shrink_factor: float = 0.6
    grow_factor: float = 2.0
    bearing_step_deg: float = 45.0
    growth_factor: float = 1.25
    max_leg_km: float = 80.0
    snap_radius_m: float = 5000.0

    def seed(self) -> WaypointSet:
        rng = random.Random(self.seed_value)
        if self.avoid_bearing_deg is None:
            bearing_deg = rng.uniform(0.0, 360.0)
        else:
            bearing_deg = (self.avoid_bearing_deg + 180.0 + rng.uniform(-90.0, 90.0)) % 360.0
        distance_km = rng.uniform(self.min_distance_km, self.max_distance_km)
        return self._leg(distance_km, bearing_deg, self.snap_radius_m)

    def adjust(
        self, previous: WaypointSet, classification: Classification, attempt_index: int
    ) -> WaypointSet:
        if classification.ideal_error_km > 0:
            distance_km = previous.radius_km * self.shrink_factor
        elif classification.ideal_error_km < 0:
            distance_km = previous.radius_km * self.grow_factor
        else:
            return previous
        return self._leg(distance_km, previous.bearing_deg, previous.snap_radius_m)

    def reroute(self, previous: WaypointSet, attempt_index: int) -> WaypointSet:
        bearing_deg = (previous.bearing_deg + self.bearing_step_deg) % 360.0
        distance_km = previous.radius_km * self.growth_factor
        return self._leg(distance_km, bearing_deg, previous.snap_radius_m)

    def _leg(self, distance_km: float, bearing_deg: float, snap_radius_m: float) -> WaypointSet:
        # Stay just inside the client-side leg limit despite float rounding
        distance_km = min(distance_km, self.max_leg_km * 0.99)
        return WaypointSet(
            coordinates=(self.start, offset_point(self.start, distance_km, bearing_deg)),
            radius_km=distance_km,
            bearing_deg=bearing_deg,
            snap_radius_m=snap_radius_m,
        )
