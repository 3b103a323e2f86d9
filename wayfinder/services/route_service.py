"""
Main route service - runs route planning under a deadline and builds the API response
"""
import asyncio
from typing import Optional

from loguru import logger

from wayfinder.config import settings
from wayfinder.models.request import RouteRequest
from wayfinder.models.response import RouteResponse
from wayfinder.services.route.errors import PlanningTimeoutError
from wayfinder.services.route.generation_service import RouteGenerationService
from wayfinder.services.route.response_builder import ResponseBuilderService


class RouteService:
    """
    Main route service - two-step processing flow

    Architecture: Route planning (bounded by route_timeout_s) → Response building
    """

    def __init__(
        self,
        generation_service: Optional[RouteGenerationService] = None,
        response_builder: Optional[ResponseBuilderService] = None,
        timeout_s: Optional[float] = None,
    ):
        self.generation_service = generation_service or RouteGenerationService()
        self.response_builder = response_builder or ResponseBuilderService()
        self.timeout_s = timeout_s or settings.route_timeout_s

    async def generate_route(self, request: RouteRequest) -> RouteResponse:
        try:
            route = await asyncio.wait_for(
                self.generation_service.plan_route(request), timeout=self.timeout_s
            )
        except asyncio.TimeoutError as exc:
            # wait_for cancels the in-flight search before raising
            logger.error(f"⏱️ Route planning for {request.country} timed out after {self.timeout_s}s")
            raise PlanningTimeoutError(self.timeout_s) from exc

        logger.info(
            f"🎉 {route.activity.value} route ready: {route.distance_km:.2f}km, "
            f"{route.attempts_used} attempts, quality {route.quality.value}"
        )
        return self.response_builder.build_response(route)
