"""
Distance evaluator - side-effect free classification of provider candidates
against a search goal.
"""
from typing import Sequence, Tuple

from wayfinder.models.route import (
    CandidateRoute,
    Classification,
    Coordinate,
    SearchGoal,
    Verdict,
)

# ~100 m at the 111 km/degree approximation
LOOP_CLOSURE_TOLERANCE_DEG = 0.001


def valid_points(path: Sequence[Coordinate]) -> Tuple[Coordinate, ...]:
    """Drop NaN, out-of-range and (0, 0) points from a provider path."""
    return tuple(point for point in path if point.is_valid())


def is_closed_loop(
    path: Sequence[Coordinate], tolerance_deg: float = LOOP_CLOSURE_TOLERANCE_DEG
) -> bool:
    if len(path) < 2:
        return False
    first, last = path[0], path[-1]
    return (
        abs(first.lat - last.lat) <= tolerance_deg
        and abs(first.lng - last.lng) <= tolerance_deg
    )


def classify(candidate: CandidateRoute, goal: SearchGoal) -> Classification:
    distance_km = candidate.distance_km
    error_km = distance_km - goal.target_distance_km

    points = valid_points(candidate.path)
    if len(points) < 2:
        return Classification(
            verdict=Verdict.UNUSABLE,
            distance_km=distance_km,
            error_km=error_km,
            reason=f"only {len(points)} valid path points",
        )
    if goal.require_loop and not is_closed_loop(points):
        return Classification(
            verdict=Verdict.UNUSABLE,
            distance_km=distance_km,
            error_km=error_km,
            reason="path does not return to its start",
        )

    ideal = goal.ideal_range
    if distance_km > ideal.max_km:
        ideal_error_km = distance_km - ideal.max_km
    elif distance_km < ideal.min_km:
        ideal_error_km = distance_km - ideal.min_km
    else:
        ideal_error_km = 0.0

    if ideal.contains(distance_km):
        verdict = Verdict.WITHIN_IDEAL
    elif goal.acceptable_range.contains(distance_km):
        verdict = Verdict.WITHIN_ACCEPTABLE
    elif distance_km < goal.acceptable_range.min_km:
        verdict = Verdict.TOO_SHORT
    else:
        verdict = Verdict.TOO_LONG

    return Classification(
        verdict=verdict,
        distance_km=distance_km,
        error_km=error_km,
        ideal_error_km=ideal_error_km,
    )


def closeness(distance_km: float, goal: SearchGoal) -> float:
    """Ranking key for best-observed bookkeeping: lower is closer to target."""
    return abs(distance_km - goal.target_distance_km)


def effective_duration_min(candidate: CandidateRoute, fallback_speed_kmh: float) -> float:
    """Provider duration, or a speed-based estimate when the provider's was flagged."""
    if candidate.duration_suspect:
        return candidate.distance_km / fallback_speed_kmh * 60
    return candidate.duration_min
