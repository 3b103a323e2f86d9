import asyncio

import pytest
from fastapi.testclient import TestClient

from wayfinder.config import Settings
from wayfinder.main import app, get_route_service
from wayfinder.models.route import CandidateRoute, Coordinate
from wayfinder.services.map.errors import ProviderAuthError, TransientProviderError
from wayfinder.services.map.map_service import RoutingService
from wayfinder.services.map.rate_limiter import RateLimiter
from wayfinder.services.route.generation_service import RouteGenerationService
from wayfinder.services.route_service import RouteService

SINGAPORE = Coordinate(lat=1.2834, lng=103.8607)


class StubRoutingService(RoutingService):
    name = "stub"

    def __init__(self, script):
        self.script = list(script)

    async def route(self, waypoints, profile):
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return CandidateRoute(
            waypoints=waypoints,
            path=waypoints.coordinates,
            distance_km=item,
            duration_min=item * 12,
            elevation_gain_m=8.0,
            profile=profile,
        )


class StubGeocoder:
    def __init__(self, coordinate=SINGAPORE):
        self.coordinate = coordinate

    async def resolve(self, country, city=None):
        return self.coordinate


class StubCountryService:
    async def get_capital(self, country):
        return "Singapore"


class SlowGenerationService:
    async def plan_route(self, request):
        await asyncio.sleep(5)


async def no_sleep(_delay):
    return None


def route_service_for(script, geocoder=None):
    generation = RouteGenerationService(
        StubRoutingService(script),
        geocoder or StubGeocoder(),
        StubCountryService(),
        limiter=RateLimiter(budgets={}),
        config=Settings(random_seed=3),
        sleep=no_sleep,
    )
    return RouteService(generation_service=generation)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def use(route_service):
    app.dependency_overrides[get_route_service] = lambda: route_service


def test_generate_walking_route(client):
    use(route_service_for([11.2]))

    response = client.post(
        "/api/v1/routes/generate",
        json={"country": "Singapore", "city": "Singapore", "route_type": "walking"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    data = body["data"]
    assert data["route_type"] == "walking"
    assert data["distance_km"] == 11.2
    assert data["quality"] == "ideal"
    assert data["attempts_used"] == 1
    assert data["start_point"] == data["end_point"]
    assert data["is_multi_day"] is False


def test_generate_cycling_route_has_day_details(client):
    use(route_service_for([25.0, 28.0]))

    response = client.post(
        "/api/v1/routes/generate",
        json={"country": "Singapore", "route_type": "cycling"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_multi_day"] is True
    assert data["city"] == "Singapore"
    day1, day2 = data["day_details"]
    assert day2["start_point"] == day1["end_point"]
    assert data["distance_km"] == pytest.approx(53.0)


def test_exhausted_search_reports_closest_distance(client):
    use(route_service_for([2.0]))

    response = client.post("/api/v1/routes/generate", json={"country": "Singapore", "city": "Singapore"})

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert body["error"]["kind"] == "exhausted_search"
    assert body["error"]["best_observed_distance_km"] == 2.0
    assert "2.00km" in body["message"]


def test_provider_misconfiguration_is_not_blamed_on_the_user(client):
    use(route_service_for([ProviderAuthError("Invalid API key xyz123")]))

    response = client.post("/api/v1/routes/generate", json={"country": "Singapore", "city": "Singapore"})

    assert response.status_code == 502
    body = response.json()
    assert body["error"]["kind"] == "provider_fatal"
    assert "xyz123" not in body["message"]


def test_provider_outage_is_reported_as_unavailable(client):
    use(route_service_for([TransientProviderError("503 Service Unavailable")]))

    response = client.post("/api/v1/routes/generate", json={"country": "Singapore", "city": "Singapore"})

    assert response.status_code == 503
    assert response.json()["error"]["kind"] == "provider_unavailable"


def test_unknown_location_is_not_found(client):
    use(route_service_for([11.2], geocoder=StubGeocoder(coordinate=None)))

    response = client.post("/api/v1/routes/generate", json={"country": "Singapore", "city": "Gotham"})

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "no_start_location"


def test_unknown_route_type_is_bad_request(client):
    use(route_service_for([11.2]))

    response = client.post(
        "/api/v1/routes/generate",
        json={"country": "Singapore", "city": "Singapore", "route_type": "sailing"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "invalid_goal"


def test_planning_timeout(client):
    use(RouteService(generation_service=SlowGenerationService(), timeout_s=0.05))

    response = client.post("/api/v1/routes/generate", json={"country": "Singapore", "city": "Singapore"})

    assert response.status_code == 504
    assert response.json()["error"]["kind"] == "timeout"


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert isinstance(body["routing_requests_remaining"], int)
