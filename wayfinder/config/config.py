from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # OpenRouteService configuration
    ors_api_key: str = ""
    ors_base_url: str = "https://api.openrouteservice.org/v2/directions"
    ors_timeout_s: float = 20.0

    # Geocoding / country lookup
    opencage_api_key: str = ""
    opencage_url: str = "https://api.opencagedata.com/geocode/v1/json"
    restcountries_url: str = "https://restcountries.com/v3.1"
    lookup_timeout_s: float = 10.0

    # API configuration
    api_version: str = "1.0"
    log_level: str = "INFO"
    route_timeout_s: float = 120.0

    # Request validation before hitting the provider
    snap_radius_m: float = 5000.0
    max_snap_radius_m: float = 20000.0
    max_leg_km: float = 80.0
    null_island_tolerance_deg: float = 0.1

    # Walking preset (circular loop around the city center)
    walking_target_km: float = 10.0
    walking_ideal_min_km: float = 5.0
    walking_ideal_max_km: float = 15.0
    walking_acceptable_min_km: float = 3.0
    walking_acceptable_max_km: float = 20.0
    walking_max_attempts: int = 8
    walking_fallback_speed_kmh: float = 5.0

    # Cycling preset (two chained days)
    cycling_days: int = 2
    cycling_target_km: float = 25.0
    cycling_ideal_min_km: float = 15.0
    cycling_ideal_max_km: float = 35.0
    cycling_acceptable_min_km: float = 5.0
    cycling_acceptable_max_km: float = 60.0
    cycling_max_attempts: int = 8
    cycling_adjust_limit: int = 3
    cycling_seed_min_km: float = 15.0
    cycling_seed_max_km: float = 30.0
    cycling_fallback_speed_kmh: float = 20.0

    # Proposer tuning
    ring_shrink_factor: float = 0.8
    ring_grow_factor: float = 1.3
    leg_shrink_factor: float = 0.6
    leg_grow_factor: float = 2.0
    reroute_bearing_step_deg: float = 45.0
    reroute_growth_factor: float = 1.25

    # Transient provider failures
    transient_retries: int = 2
    backoff_base_s: float = 0.5
    backoff_cap_s: float = 3.0

    # Anything faster than this is treated as a bogus provider duration
    max_plausible_speed_kmh: float = 80.0

    # Provider budgets (requests per window)
    ors_max_requests: int = 40
    ors_window_s: float = 60.0
    ors_min_interval_s: float = 1.5
    opencage_max_requests: int = 200
    opencage_window_s: float = 3600.0
    opencage_min_interval_s: float = 0.5

    # Fixed seed makes cycling proposals reproducible
    random_seed: Optional[int] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
