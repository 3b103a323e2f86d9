from abc import ABC, abstractmethod

from wayfinder.models.route import CandidateRoute, WaypointSet


class RoutingService(ABC):
    """Routing provider abstract interface"""

    # Key used for the shared rate limiter budget
    name: str = "routing"

    @abstractmethod
    async def route(self, waypoints: WaypointSet, profile: str) -> CandidateRoute:
        """Route through the waypoints in order

        Args:
            waypoints: Ordered coordinates plus snap tolerance
            profile: Provider travel profile, e.g. "foot-walking"

        Raises:
            OracleError subclasses from wayfinder.services.map.errors
        """
        pass
