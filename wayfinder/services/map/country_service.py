"""Capital city lookup used when the caller names a country but no city."""
from typing import Optional
from urllib.parse import quote

import httpx
from loguru import logger

from wayfinder.config import settings
from wayfinder.services.map.errors import TransientProviderError


class CountryService:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.restcountries_url).rstrip("/")
        self.timeout = timeout or settings.lookup_timeout_s
        self._client = client

    async def get_capital(self, country: str) -> Optional[str]:
        """
        Capital of the named country, None if the country is unknown.

        Raises:
            TransientProviderError: Network failure, 429 or 5xx from REST Countries
        """
        url = f"{self.base_url}/name/{quote(country.strip())}"
        params = {"fields": "name,capital"}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, params=params, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.error(f"❌ Capital lookup for {country} failed: {type(exc).__name__}")
            raise TransientProviderError(
                f"REST Countries unreachable ({type(exc).__name__})"
            ) from exc

        status = response.status_code
        if status == 429 or status >= 500:
            logger.error(f"❌ Capital lookup for {country} failed with status {status}")
            raise TransientProviderError(f"REST Countries error {status}", status_code=status)
        if status >= 400:
            logger.warning(f"⚠️ No country named '{country}' ({status})")
            return None

        try:
            countries = response.json()
        except ValueError as exc:
            raise TransientProviderError("REST Countries returned invalid JSON") from exc

        for entry in countries if isinstance(countries, list) else []:
            capitals = entry.get("capital") or []
            if capitals:
                logger.info(f"🏛️ Capital city for {country}: {capitals[0]}")
                return capitals[0]
        return None
