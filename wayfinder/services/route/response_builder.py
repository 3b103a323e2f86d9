"""
Response builder service - converts internal route results to API response format
"""
from typing import Iterable, List

from wayfinder.models.response import (
    DayDetail,
    ErrorDetail,
    ErrorResponse,
    LocationPoint,
    RouteData,
    RouteResponse,
)
from wayfinder.models.route import Coordinate, RouteResult
from wayfinder.services.route.errors import ExhaustedSearchError, RouteSearchError


def _point(coordinate: Coordinate) -> LocationPoint:
    return LocationPoint(lat=coordinate.lat, lng=coordinate.lng)


def _points(path: Iterable[Coordinate]) -> List[LocationPoint]:
    return [_point(coordinate) for coordinate in path]


class ResponseBuilderService:
    """Response builder service - converts internal data to API response format"""

    def build_response(self, route: RouteResult) -> RouteResponse:
        """
        Build API response from an assembled route

        Args:
            route: Route returned by the generation service

        Returns:
            RouteResponse with geometry, per-day details and quality
        """
        day_details = None
        if route.day_plans:
            day_details = [
                DayDetail(
                    day=plan.day_number,
                    distance_km=round(plan.distance_km, 2),
                    duration_min=round(plan.duration_min, 1),
                    elevation_gain_m=round(plan.elevation_gain_m, 1),
                    start_point=_point(plan.start_point),
                    end_point=_point(plan.end_point),
                    path=_points(plan.path),
                    quality=plan.quality.value,
                )
                for plan in route.day_plans
            ]

        data = RouteData(
            route_type=route.activity.value,
            country=route.country,
            city=route.city,
            distance_km=round(route.distance_km, 2),
            duration_min=round(route.duration_min, 1),
            elevation_gain_m=round(route.elevation_gain_m, 1),
            path=_points(route.path),
            start_point=_point(route.start_point),
            end_point=_point(route.end_point),
            is_multi_day=route.is_multi_day,
            day_details=day_details,
            instructions=list(route.instructions),
            quality=route.quality.value,
            attempts_used=route.attempts_used,
        )

        if route.is_multi_day:
            message = f"{len(day_details)}-day {route.activity.value} route generated successfully"
        else:
            message = f"{route.activity.value.capitalize()} route generated successfully"
        return RouteResponse(message=message, data=data)

    def build_error(self, error: RouteSearchError) -> ErrorResponse:
        best = None
        if isinstance(error, ExhaustedSearchError):
            best = error.best_observed_distance_km
        return ErrorResponse(
            message=error.user_message,
            error=ErrorDetail(kind=error.kind, best_observed_distance_km=best),
        )
