import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from wayfinder.config import Settings, settings as default_settings
from wayfinder.config.activities import build_goal, build_policy, parse_activity
from wayfinder.models.request import RouteRequest
from wayfinder.models.route import Activity, Coordinate, RouteResult, SearchGoal, SearchResult
from wayfinder.services.map.country_service import CountryService
from wayfinder.services.map.errors import ProviderAuthError, TransientProviderError
from wayfinder.services.map.geocoding_service import GeocodingError, GeocodingService
from wayfinder.services.map.map_service import RoutingService
from wayfinder.services.map.ors_service import OpenRouteService
from wayfinder.services.map.rate_limiter import RateLimiter
from wayfinder.services.route.assembler import RouteAssembler
from wayfinder.services.route.errors import (
    InvalidGoalError,
    NoStartLocationError,
    ProviderFatalError,
    ProviderUnavailableError,
    RouteSearchError,
)
from wayfinder.services.route.evaluator import valid_points
from wayfinder.services.route.proposer import CircularProposer, RadialProposer
from wayfinder.services.route.search_controller import AdaptiveSearchController, validate_goal


class RouteGenerationService:
    """
    Route generation service - resolves the start location, runs the adaptive
    search for each leg of the trip and assembles the final route.
    """

    def __init__(
        self,
        routing_service: Optional[RoutingService] = None,
        geocoding_service: Optional[GeocodingService] = None,
        country_service: Optional[CountryService] = None,
        *,
        limiter: Optional[RateLimiter] = None,
        assembler: Optional[RouteAssembler] = None,
        config: Settings = default_settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.routing_service = routing_service or OpenRouteService()
        self.geocoding_service = geocoding_service or GeocodingService(limiter=limiter)
        self.country_service = country_service or CountryService()
        self.controller = AdaptiveSearchController(
            self.routing_service, limiter=limiter, sleep=sleep
        )
        self.assembler = assembler or RouteAssembler()
        self.config = config

    async def plan_route(self, request: RouteRequest) -> RouteResult:
        """
        Plan a walking loop or a multi-day cycling route.

        Args:
            request: Country, optional city and route type

        Returns:
            RouteResult whose distance sits inside the acceptable band

        Raises:
            InvalidGoalError: Unknown route type or missing country
            NoStartLocationError: City/country could not be resolved to coordinates
            ProviderFatalError: A provider rejected our credentials, or no profile is left
            ProviderUnavailableError: A lookup or routing provider kept failing transiently
            ExhaustedSearchError: No acceptable route within the attempt budget
        """
        try:
            activity = parse_activity(request.route_type or "")
        except ValueError as exc:
            raise InvalidGoalError(
                f"Unknown route type '{request.route_type}'. Use 'walking' or 'cycling'."
            ) from exc

        country = (request.country or "").strip()
        if not country:
            raise InvalidGoalError("Country is required")
        city = (request.city or "").strip() or None
        goal = build_goal(activity, self.config)
        validate_goal(goal)
        if activity is Activity.CYCLING and self.config.cycling_days < 2:
            raise InvalidGoalError("A cycling trip needs at least two days")

        city = await self._resolve_city(country, city)
        start = await self._resolve_start(country, city)

        logger.info(f"🚀 Planning {activity.value} route from {city}, {country}")
        if activity is Activity.WALKING:
            return await self._plan_walking(goal, start, country, city)
        return await self._plan_cycling(goal, start, country, city)

    async def _resolve_city(self, country: str, city: Optional[str]) -> str:
        if city:
            return city
        try:
            capital = await self.country_service.get_capital(country)
        except TransientProviderError as exc:
            raise ProviderUnavailableError(
                f"Capital lookup for {country} unavailable: {exc}"
            ) from exc
        if not capital:
            raise NoStartLocationError(
                f"Unable to determine a city for route generation in {country}"
            )
        logger.info(f"🏛️ No city given, using the capital of {country}: {capital}")
        return capital

    async def _resolve_start(self, country: str, city: str) -> Coordinate:
        try:
            start = await self.geocoding_service.resolve(country, city)
        except ProviderAuthError as exc:
            logger.critical(f"🚨 Geocoding provider rejected our configuration: {exc}")
            raise ProviderFatalError(str(exc)) from exc
        except TransientProviderError as exc:
            raise ProviderUnavailableError(
                f"Geocoding {city}, {country} unavailable: {exc}"
            ) from exc
        except GeocodingError as exc:
            raise NoStartLocationError(f"Unable to look up {city}, {country}") from exc
        if start is None:
            raise NoStartLocationError(f"Unable to find {city}, {country}")
        return start

    async def _plan_walking(
        self, goal: SearchGoal, start: Coordinate, country: str, city: str
    ) -> RouteResult:
        proposer = CircularProposer.for_target(
            start,
            goal.target_distance_km,
            shrink_factor=self.config.ring_shrink_factor,
            grow_factor=self.config.ring_grow_factor,
            snap_radius_m=self.config.snap_radius_m,
            max_snap_radius_m=self.config.max_snap_radius_m,
        )
        result = await self.controller.search(
            goal, proposer, build_policy(Activity.WALKING, self.config), label="walking route"
        )
        return self.assembler.assemble_walking(result, country=country, city=city)

    async def _plan_cycling(
        self, goal: SearchGoal, start: Coordinate, country: str, city: str
    ) -> RouteResult:
        policy = build_policy(Activity.CYCLING, self.config)

        results: List[SearchResult] = []
        day_start = start
        previous_bearing: Optional[float] = None
        for day in range(1, self.config.cycling_days + 1):
            proposer = RadialProposer(
                start=day_start,
                min_distance_km=self.config.cycling_seed_min_km,
                max_distance_km=self.config.cycling_seed_max_km,
                seed_value=self._day_seed(day),
                avoid_bearing_deg=previous_bearing,
                shrink_factor=self.config.leg_shrink_factor,
                grow_factor=self.config.leg_grow_factor,
                bearing_step_deg=self.config.reroute_bearing_step_deg,
                growth_factor=self.config.reroute_growth_factor,
                max_leg_km=self.config.max_leg_km,
                snap_radius_m=self.config.snap_radius_m,
            )
            try:
                result = await self.controller.search(
                    goal, proposer, policy, label=f"day {day} route"
                )
            except RouteSearchError as exc:
                logger.error(f"❌ Cycling day {day} failed, dropping the whole trip: {exc}")
                raise

            results.append(result)
            # Next day starts where this one actually ended, not at the proposed end point
            day_start = valid_points(result.candidate.path)[-1]
            previous_bearing = result.candidate.waypoints.bearing_deg

        return self.assembler.assemble_multi_day(results, country=country, city=city)

    def _day_seed(self, day: int) -> Optional[int]:
        if self.config.random_seed is None:
            return None
        return self.config.random_seed + day
