import math
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from wayfinder.config import settings
from wayfinder.models.route import CandidateRoute, Coordinate, WaypointSet
from wayfinder.services.map.errors import (
    InvalidRequestError,
    ProfileUnavailableError,
    ProviderAuthError,
    TransientProviderError,
    UnroutableError,
)
from wayfinder.services.map.map_service import RoutingService


class OpenRouteService(RoutingService):
    """OpenRouteService directions API implementation"""

    name = "openrouteservice"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = settings.ors_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.ors_base_url).rstrip("/")
        self.timeout = timeout or settings.ors_timeout_s
        self._client = client

    async def route(self, waypoints: WaypointSet, profile: str) -> CandidateRoute:
        """Route through the waypoints with OpenRouteService (GeoJSON output)"""
        if not self.api_key:
            raise ProviderAuthError("OpenRouteService API key is not configured")

        # Reject doomed requests before spending a network round trip
        self._validate_waypoints(waypoints)

        url = f"{self.base_url}/{profile}/geojson"
        body = self._build_request_body(waypoints)

        try:
            response = await self._post(url, body)
        except httpx.TimeoutException as exc:
            raise TransientProviderError(f"OpenRouteService timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransientProviderError(f"OpenRouteService unreachable: {exc}") from exc

        if response.status_code >= 400:
            self._raise_for_status(response, profile)

        try:
            data = response.json()
        except ValueError as exc:
            raise TransientProviderError("OpenRouteService returned invalid JSON") from exc

        return self._convert_route_response(data, waypoints, profile)

    async def _post(self, url: str, body: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
        }
        if self._client is not None:
            return await self._client.post(url, json=body, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(url, json=body, headers=headers, timeout=self.timeout)

    def _validate_waypoints(self, waypoints: WaypointSet) -> None:
        coords = waypoints.coordinates
        if len(coords) < 2:
            raise InvalidRequestError("At least two waypoints are required")

        for index, coord in enumerate(coords):
            if not coord.is_valid(settings.null_island_tolerance_deg):
                raise InvalidRequestError(
                    f"Invalid coordinates at index {index}: [{coord.lng}, {coord.lat}]"
                )

        for index in range(1, len(coords)):
            leg_km = coords[index - 1].distance_km_approx(coords[index])
            if leg_km > settings.max_leg_km:
                raise InvalidRequestError(
                    f"Points {index - 1} and {index} are {leg_km:.1f}km apart "
                    f"(max {settings.max_leg_km:.0f}km)"
                )

    def _build_request_body(self, waypoints: WaypointSet) -> Dict[str, Any]:
        """Build request body for the ORS directions endpoint ([lng, lat] order)"""
        return {
            "coordinates": [list(coord.as_lng_lat()) for coord in waypoints.coordinates],
            "continue_straight": False,
            "preference": "recommended",
            "elevation": True,
            "instructions": True,
            # Snap tolerance: how far each point may move to reach a routable road
            "radiuses": [waypoints.snap_radius_m] * len(waypoints.coordinates),
        }

    def _raise_for_status(self, response: httpx.Response, profile: str) -> None:
        status = response.status_code
        detail = self._error_detail(response)

        if status in (401, 403):
            raise ProviderAuthError(
                f"OpenRouteService rejected credentials ({status}){detail}", status_code=status
            )
        if status == 429 or status >= 500:
            raise TransientProviderError(
                f"OpenRouteService error {status}{detail}", status_code=status
            )
        if status == 404:
            if "profile" in detail.lower():
                raise ProfileUnavailableError(
                    profile, f"Profile '{profile}' not found{detail}", status_code=status
                )
            raise UnroutableError(f"No route between waypoints{detail}", status_code=status)
        raise InvalidRequestError(
            f"Bad request ({status}): Invalid request parameters{detail}", status_code=status
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            error = response.json().get("error", "")
        except (ValueError, AttributeError):
            return f" - {response.text}" if response.text else ""
        if isinstance(error, dict):
            error = error.get("message", "")
        return f" - {error}" if error else ""

    def _convert_route_response(
        self, data: Dict[str, Any], waypoints: WaypointSet, profile: str
    ) -> CandidateRoute:
        """Convert ORS GeoJSON into a CandidateRoute in km / minutes"""
        features = data.get("features") or []
        if not features:
            raise UnroutableError("OpenRouteService returned no route")

        feature = features[0]
        raw_coords = (feature.get("geometry") or {}).get("coordinates") or []
        path = tuple(self._to_coordinate(coord) for coord in raw_coords)

        properties = feature.get("properties") or {}
        segments: List[Dict[str, Any]] = properties.get("segments") or []
        summary = properties.get("summary") or {}

        distance_m = sum(float(seg.get("distance", 0) or 0) for seg in segments)
        duration_s = sum(float(seg.get("duration", 0) or 0) for seg in segments)
        if not segments:
            distance_m = float(summary.get("distance", 0) or 0)
        if duration_s <= 0 and summary.get("duration"):
            duration_s = float(summary["duration"])

        ascent = properties.get("ascent")
        if ascent is None:
            ascent = sum(float(seg.get("ascent", 0) or 0) for seg in segments)

        instructions = tuple(
            step["instruction"]
            for seg in segments
            for step in seg.get("steps") or []
            if step.get("instruction")
        )

        distance_km = distance_m / 1000
        duration_min = duration_s / 60
        suspect = self._is_duration_suspect(distance_km, duration_min)
        if suspect:
            logger.warning(
                f"⚠️ Implausible duration from {profile}: {duration_min:.2f}min for {distance_km:.2f}km"
            )

        return CandidateRoute(
            waypoints=waypoints,
            path=path,
            distance_km=distance_km,
            duration_min=duration_min,
            elevation_gain_m=float(ascent),
            profile=profile,
            duration_suspect=suspect,
            instructions=instructions,
            raw=data,
        )

    @staticmethod
    def _to_coordinate(raw: Any) -> Coordinate:
        # Malformed points become NaN and are filtered out by the evaluator
        try:
            lng, lat = raw[0], raw[1]
            return Coordinate(lat=float(lat), lng=float(lng))
        except (TypeError, ValueError, IndexError):
            return Coordinate(lat=math.nan, lng=math.nan)

    @staticmethod
    def _is_duration_suspect(distance_km: float, duration_min: float) -> bool:
        if distance_km <= 0:
            return False
        if not math.isfinite(duration_min) or duration_min <= 0:
            return True
        speed_kmh = distance_km / (duration_min / 60)
        return speed_kmh > settings.max_plausible_speed_kmh
