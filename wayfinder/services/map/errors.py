"""Typed failures raised by routing provider clients."""
from typing import Optional


class OracleError(Exception):
    """Base class for everything a routing provider call can fail with."""

    kind = "oracle_error"

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidRequestError(OracleError):
    """Malformed request; resending the same parameters will fail again."""

    kind = "invalid_request"


class ProfileUnavailableError(OracleError):
    kind = "profile_unavailable"

    def __init__(self, profile: str, message: Optional[str] = None, **kwargs):
        super().__init__(message or f"Routing profile '{profile}' is not available", **kwargs)
        self.profile = profile


class UnroutableError(OracleError):
    """No path between the requested points; coordinates must change."""

    kind = "unroutable"


class ProviderAuthError(OracleError):
    kind = "auth_error"


class TransientProviderError(OracleError):
    """Network failure, 429 or 5xx. Safe to retry unchanged after a backoff."""

    kind = "transient"
