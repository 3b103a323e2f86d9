"""
Terminal route planning failures.

Only these cross the search controller boundary. Each one names a different
corrective action for the user, so they are never collapsed into a generic
"generation failed".
"""
from typing import Optional


class RouteSearchError(Exception):
    kind = "route_search_error"
    status_code = 500

    def __init__(self, message: str, *, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class InvalidGoalError(RouteSearchError):
    kind = "invalid_goal"
    status_code = 400


class NoStartLocationError(RouteSearchError):
    kind = "no_start_location"
    status_code = 404

    def __init__(self, message: str):
        super().__init__(
            message,
            user_message=(
                f"{message}. Please check the country and city names and try again."
            ),
        )


class ProviderFatalError(RouteSearchError):
    """Authentication or configuration problem with the routing provider."""

    kind = "provider_fatal"
    status_code = 502

    def __init__(self, reason: str):
        super().__init__(
            reason,
            user_message="Route planning is misconfigured on our side. Please try again later.",
        )
        self.reason = reason


class ProviderUnavailableError(RouteSearchError):
    kind = "provider_unavailable"
    status_code = 503

    def __init__(self, message: str):
        super().__init__(
            message,
            user_message="A map service we rely on is temporarily unavailable. Please try again in a few minutes.",
        )


class ExhaustedSearchError(RouteSearchError):
    """Every attempt was used without landing in the acceptable band."""

    kind = "exhausted_search"
    status_code = 422

    def __init__(self, best_observed_distance_km: Optional[float], attempts: int, label: str = "route"):
        self.best_observed_distance_km = best_observed_distance_km
        self.attempts = attempts
        if best_observed_distance_km is None:
            message = f"No routable {label} found after {attempts} attempts"
            user_message = (
                "We could not find a suitable road network here. "
                "Please try a different city or location."
            )
        else:
            message = (
                f"Closest {label} after {attempts} attempts was "
                f"{best_observed_distance_km:.2f}km, outside the acceptable range"
            )
            user_message = (
                f"The closest achievable {label} was {best_observed_distance_km:.2f}km, "
                "which is outside the range we can offer. Please try a different city."
            )
        super().__init__(message, user_message=user_message)


class PlanningTimeoutError(RouteSearchError):
    kind = "timeout"
    status_code = 504

    def __init__(self, timeout_s: float):
        super().__init__(
            f"Route planning did not finish within {timeout_s:.0f}s",
            user_message="Route planning took too long. Please try again.",
        )
        self.timeout_s = timeout_s
