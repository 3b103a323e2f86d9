import asyncio
import json

import httpx
import pytest

from wayfinder.models.route import Coordinate, WaypointSet
from wayfinder.services.map.errors import (
    InvalidRequestError,
    ProfileUnavailableError,
    ProviderAuthError,
    TransientProviderError,
    UnroutableError,
)
from wayfinder.services.map.ors_service import OpenRouteService

START = Coordinate(lat=1.2834, lng=103.8607)
MIDDLE = Coordinate(lat=1.3000, lng=103.8700)
WAYPOINTS = WaypointSet(coordinates=(START, MIDDLE, START), radius_km=1.0, snap_radius_m=5000.0)

ORS_RESPONSE = {
    "type": "FeatureCollection",
    "features": [
        {
            "geometry": {
                "type": "LineString",
                "coordinates": [[103.8607, 1.2834, 5.0], [103.8700, 1.3000, 9.0], [103.8607, 1.2834, 5.0]],
            },
            "properties": {
                "ascent": 42.5,
                "segments": [
                    {
                        "distance": 6000.0,
                        "duration": 4320.0,
                        "steps": [{"instruction": "Head north"}, {"instruction": "Turn right"}],
                    },
                    {
                        "distance": 4500.0,
                        "duration": 3240.0,
                        "steps": [{"instruction": "Arrive at destination"}],
                    },
                ],
                "summary": {"distance": 10500.0, "duration": 7560.0},
            },
        }
    ],
}


class RecordingHandler:
    def __init__(self, status_code=200, payload=None, exc=None):
        self.status_code = status_code
        self.payload = ORS_RESPONSE if payload is None else payload
        self.exc = exc
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.payload)


def make_service(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenRouteService(api_key=api_key, base_url="https://ors.test/v2/directions", client=client)


def test_route_converts_geojson_to_candidate():
    handler = RecordingHandler()
    service = make_service(handler)

    candidate = asyncio.run(service.route(WAYPOINTS, "foot-walking"))

    assert candidate.distance_km == pytest.approx(10.5)
    assert candidate.duration_min == pytest.approx(126.0)
    assert candidate.elevation_gain_m == 42.5
    assert candidate.path[0] == START
    assert candidate.path[1] == MIDDLE
    assert candidate.instructions == ("Head north", "Turn right", "Arrive at destination")
    assert candidate.profile == "foot-walking"
    assert not candidate.duration_suspect


def test_route_request_uses_lng_lat_order_and_snap_radiuses():
    handler = RecordingHandler()
    service = make_service(handler)

    asyncio.run(service.route(WAYPOINTS, "cycling-road"))

    request = handler.requests[0]
    body = json.loads(request.content)
    assert request.url.path == "/v2/directions/cycling-road/geojson"
    assert request.headers["Authorization"] == "test-key"
    assert body["coordinates"][0] == [103.8607, 1.2834]
    assert body["radiuses"] == [5000.0, 5000.0, 5000.0]
    assert body["elevation"] is True
    assert body["instructions"] is True


@pytest.mark.parametrize(
    "status_code, payload, error",
    [
        (401, {"error": "Access to this API has been disallowed"}, ProviderAuthError),
        (403, {"error": "Quota exceeded"}, ProviderAuthError),
        (429, {"error": "Rate limit exceeded"}, TransientProviderError),
        (502, {"error": "Bad gateway"}, TransientProviderError),
        (404, {"error": {"code": 2099, "message": "Route could not be found"}}, UnroutableError),
        (404, {"error": "Requested profile 'foot-hiking' not found"}, ProfileUnavailableError),
        (400, {"error": {"code": 2003, "message": "Parameter 'radiuses' has incorrect value"}}, InvalidRequestError),
    ],
)
def test_http_errors_map_to_oracle_errors(status_code, payload, error):
    service = make_service(RecordingHandler(status_code=status_code, payload=payload))

    with pytest.raises(error) as excinfo:
        asyncio.run(service.route(WAYPOINTS, "foot-hiking"))

    assert excinfo.value.status_code == status_code


def test_profile_unavailable_names_the_profile():
    payload = {"error": "Requested profile 'foot-hiking' not found"}
    service = make_service(RecordingHandler(status_code=404, payload=payload))

    with pytest.raises(ProfileUnavailableError) as excinfo:
        asyncio.run(service.route(WAYPOINTS, "foot-hiking"))

    assert excinfo.value.profile == "foot-hiking"


def test_empty_feature_collection_is_unroutable():
    service = make_service(RecordingHandler(payload={"type": "FeatureCollection", "features": []}))

    with pytest.raises(UnroutableError):
        asyncio.run(service.route(WAYPOINTS, "foot-walking"))


def test_timeout_is_transient():
    handler = RecordingHandler(exc=httpx.ReadTimeout("timed out"))
    service = make_service(handler)

    with pytest.raises(TransientProviderError):
        asyncio.run(service.route(WAYPOINTS, "foot-walking"))


def test_missing_api_key_fails_without_network_call():
    handler = RecordingHandler()
    service = make_service(handler, api_key="")

    with pytest.raises(ProviderAuthError):
        asyncio.run(service.route(WAYPOINTS, "foot-walking"))

    assert handler.requests == []


def test_overlong_leg_is_rejected_before_network_call():
    handler = RecordingHandler()
    service = make_service(handler)
    far = Coordinate(lat=START.lat + 1.0, lng=START.lng)  # ~111 km north
    waypoints = WaypointSet(coordinates=(START, far), radius_km=111.0)

    with pytest.raises(InvalidRequestError):
        asyncio.run(service.route(waypoints, "cycling-road"))

    assert handler.requests == []


def test_null_island_waypoint_is_rejected():
    handler = RecordingHandler()
    service = make_service(handler)
    waypoints = WaypointSet(
        coordinates=(Coordinate(lat=0.05, lng=0.02), Coordinate(lat=0.2, lng=0.2)), radius_km=1.0
    )

    with pytest.raises(InvalidRequestError):
        asyncio.run(service.route(waypoints, "foot-walking"))

    assert handler.requests == []


def test_implausible_duration_is_flagged():
    payload = json.loads(json.dumps(ORS_RESPONSE))
    for segment in payload["features"][0]["properties"]["segments"]:
        segment["duration"] = 10.0

    service = make_service(RecordingHandler(payload=payload))
    candidate = asyncio.run(service.route(WAYPOINTS, "foot-walking"))

    assert candidate.duration_suspect


def test_malformed_path_points_become_invalid_coordinates():
    payload = json.loads(json.dumps(ORS_RESPONSE))
    payload["features"][0]["geometry"]["coordinates"].insert(1, [None])

    service = make_service(RecordingHandler(payload=payload))
    candidate = asyncio.run(service.route(WAYPOINTS, "foot-walking"))

    assert len(candidate.path) == 4
    assert not candidate.path[1].is_valid()
