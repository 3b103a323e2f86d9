"""Forward geocoding of country/city names through the OpenCage API."""
from typing import Optional

import httpx
from loguru import logger

from wayfinder.config import settings
from wayfinder.models.route import Coordinate
from wayfinder.services.map.errors import ProviderAuthError, TransientProviderError
from wayfinder.services.map.rate_limiter import RateLimiter, rate_limiter as shared_limiter


class GeocodingError(Exception):
    """OpenCage refused the query itself (as opposed to an outage or "no match")."""


class GeocodingService:
    """
    Raises:
        ProviderAuthError: Key missing, invalid or suspended (401/403)
        TransientProviderError: Network failure, quota (402/429) or 5xx
        GeocodingError: Any other 4xx for the query
    """

    name = "opencage"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        limiter: Optional[RateLimiter] = None,
    ):
        self.api_key = settings.opencage_api_key if api_key is None else api_key
        self.url = url or settings.opencage_url
        self.timeout = timeout or settings.lookup_timeout_s
        self._client = client
        self._limiter = limiter or shared_limiter

    async def resolve(self, country: str, city: Optional[str] = None) -> Optional[Coordinate]:
        """Coordinates of "city, country" (or just the country), None if unknown"""
        if not self.api_key:
            raise ProviderAuthError("OpenCage API key is not configured")

        query = f"{city}, {country}" if city else country
        params = {"q": query, "key": self.api_key, "limit": 1, "no_annotations": 1}

        await self._limiter.await_slot(self.name)
        # The request URL carries the key, so only status codes and exception
        # class names are logged or put in error messages
        try:
            if self._client is not None:
                response = await self._client.get(self.url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(self.url, params=params, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.error(f"❌ Geocoding '{query}' failed: {type(exc).__name__}")
            raise TransientProviderError(f"OpenCage unreachable ({type(exc).__name__})") from None

        status = response.status_code
        if status >= 400:
            logger.error(f"❌ Geocoding '{query}' failed with status {status}")
            if status in (401, 403):
                raise ProviderAuthError(f"OpenCage rejected credentials ({status})", status_code=status)
            if status in (402, 429) or status >= 500:
                raise TransientProviderError(f"OpenCage error {status}", status_code=status)
            raise GeocodingError(f"OpenCage rejected the query '{query}' ({status})")

        try:
            data = response.json()
        except ValueError:
            raise TransientProviderError("OpenCage returned invalid JSON") from None

        results = data.get("results") or []
        if not results:
            logger.info(f"🔍 No geocoding match for '{query}'")
            return None

        geometry = results[0].get("geometry") or {}
        try:
            coordinate = Coordinate(lat=float(geometry["lat"]), lng=float(geometry["lng"]))
        except (KeyError, TypeError, ValueError):
            return None
        if not coordinate.is_valid():
            return None

        logger.info(f"📍 Resolved '{query}' to ({coordinate.lat:.4f}, {coordinate.lng:.4f})")
        return coordinate
