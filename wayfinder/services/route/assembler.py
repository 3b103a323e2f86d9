"""
Route assembler - turns terminal search results into the RouteResult handed
back to callers.
"""
from typing import List, Optional, Sequence

from loguru import logger

from wayfinder.config.activities import fallback_speed_kmh
from wayfinder.models.route import (
    Activity,
    DayPlan,
    Quality,
    RouteResult,
    SearchResult,
)
from wayfinder.services.route.evaluator import effective_duration_min, is_closed_loop, valid_points

_QUALITY_ORDER = [Quality.IDEAL, Quality.ACCEPTABLE, Quality.CLOSEST_ACHIEVABLE]


def _worst_quality(qualities: Sequence[Quality]) -> Quality:
    return max(qualities, key=_QUALITY_ORDER.index)


class RouteAssembler:
    def assemble_walking(
        self,
        result: SearchResult,
        *,
        country: Optional[str] = None,
        city: Optional[str] = None,
    ) -> RouteResult:
        candidate = result.candidate
        path = valid_points(candidate.path)
        if not is_closed_loop(path):
            raise ValueError("walking route must start and end at the same point")

        duration_min = effective_duration_min(candidate, fallback_speed_kmh(Activity.WALKING))
        return RouteResult(
            activity=Activity.WALKING,
            distance_km=candidate.distance_km,
            duration_min=duration_min,
            elevation_gain_m=candidate.elevation_gain_m,
            path=path,
            start_point=path[0],
            end_point=path[-1],
            is_multi_day=False,
            quality=result.quality,
            attempts_used=result.attempts_used,
            instructions=candidate.instructions,
            country=country,
            city=city,
        )

    def assemble_multi_day(
        self,
        results: Sequence[SearchResult],
        *,
        country: Optional[str] = None,
        city: Optional[str] = None,
    ) -> RouteResult:
        """Chain per-day results into one route; every day is required."""
        if len(results) < 2:
            raise ValueError("a multi-day route needs at least two days")

        speed_kmh = fallback_speed_kmh(Activity.CYCLING)
        day_plans: List[DayPlan] = []
        for day_number, result in enumerate(results, start=1):
            candidate = result.candidate
            path = valid_points(candidate.path)
            # Day N starts exactly where day N-1 ended
            start_point = day_plans[-1].end_point if day_plans else path[0]
            day_plans.append(
                DayPlan(
                    day_number=day_number,
                    distance_km=candidate.distance_km,
                    duration_min=effective_duration_min(candidate, speed_kmh),
                    elevation_gain_m=candidate.elevation_gain_m,
                    start_point=start_point,
                    end_point=path[-1],
                    path=path,
                    quality=result.quality,
                )
            )

        combined_path = tuple(point for plan in day_plans for point in plan.path)
        route = RouteResult(
            activity=Activity.CYCLING,
            distance_km=sum(plan.distance_km for plan in day_plans),
            duration_min=sum(plan.duration_min for plan in day_plans),
            elevation_gain_m=sum(plan.elevation_gain_m for plan in day_plans),
            path=combined_path,
            start_point=day_plans[0].start_point,
            end_point=day_plans[-1].end_point,
            is_multi_day=True,
            quality=_worst_quality([plan.quality for plan in day_plans]),
            attempts_used=sum(result.attempts_used for result in results),
            day_plans=tuple(day_plans),
            instructions=tuple(
                text for result in results for text in result.candidate.instructions
            ),
            country=country,
            city=city,
        )
        logger.info(
            "✅ Multi-day route: "
            + ", ".join(f"Day{plan.day_number}={plan.distance_km:.2f}km" for plan in day_plans)
            + f", Total={route.distance_km:.2f}km"
        )
        return route
