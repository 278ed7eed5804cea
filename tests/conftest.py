import asyncio
import json
import re

import httpx
import pytest

from tripboard.core.settings import Settings

BACKEND_URL = "http://backend.test"


class FakeBackend:
    """In-memory stand-in for the trip-planning REST backend."""

    def __init__(self):
        self.token = "tok-123"
        self.itineraries: dict[str, dict] = {
            "4": {
                "title": "NYC Long Weekend",
                "days": [
                    {"day": 1, "pois": [{"poiId": 1}, {"poiId": 2}]},
                    {"day": 2, "pois": [{"poiId": 3}]},
                    {"day": 3, "pois": [{"poiId": 4}, {"poiId": 5}]},
                ],
            },
            "7": {
                "days": [
                    {"day": 1, "pois": [{"poiId": 3}]},
                ],
            },
        }
        self.pois: dict[str, dict] = {
            "1": {"name": "Times Square", "lat": 40.758, "lng": -73.9855, "type": "landmark"},
            "2": {"name": "Central Park", "lat": 40.7829, "lng": -73.9654, "type": "park"},
            "3": {"name": "The Met", "lat": "40.7794", "lng": "-73.9632", "type": "museum"},
            "4": {"name": "Brooklyn Bridge", "latitude": 40.7061, "longitude": -73.9969},
            "5": {"name": "Hidden Speakeasy", "lat": "unknown", "lng": None, "type": "bar"},
            "9": {"name": "High Line", "lat": 40.748, "lng": -74.0048, "type": "park"},
        }
        self.trips = [
            {"id": 2, "city": "New York City", "startDate": "2026-01-10", "poiCount": 5},
            {"id": 1, "city": "New York City", "startDate": "2026-02-15", "poiCount": 8},
            {"id": 3, "city": "New York City", "startDate": "2025-12-20", "poiCount": 10},
        ]
        self.failing_pois: set[str] = set()
        self.saved: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.gates: dict[str, asyncio.Event] = {}

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def poi_requests(self) -> list[str]:
        return [r.url.path for r in self.requests if r.url.path.startswith("/pois/")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        gate = self.gates.get(path)
        if gate is not None:
            await gate.wait()

        if path == "/auth/login" and request.method == "POST":
            body = json.loads(request.content)
            if body.get("password") != "secret":
                return httpx.Response(401, json={"message": "Invalid credentials"})
            return httpx.Response(
                200,
                json={
                    "token": self.token,
                    "user": {"id": 42, "email": body["email"], "username": "wanderer"},
                },
            )

        if path == "/itineraries" and request.method == "GET":
            return httpx.Response(200, json={"success": True, "data": self.trips})

        match = re.fullmatch(r"/itineraries/([^/]+)/content", path)
        if match:
            itinerary_id = match.group(1)
            if request.method == "PUT":
                self.saved[itinerary_id] = json.loads(request.content)
                return httpx.Response(200, json={"success": True, "data": {"ok": True}})
            content = self.itineraries.get(itinerary_id)
            if content is None:
                return httpx.Response(404, json={"message": "Itinerary not found"})
            return httpx.Response(200, json={"success": True, "data": {"data": content}})

        match = re.fullmatch(r"/pois/([^/]+)", path)
        if match:
            poi_id = match.group(1)
            if poi_id in self.failing_pois:
                return httpx.Response(500, json={"error": "lookup exploded"})
            if poi_id not in self.pois:
                return httpx.Response(404, json={"success": False, "message": "No such POI"})
            return httpx.Response(200, json={"success": True, "data": self.pois[poi_id]})

        return httpx.Response(404, text="not found")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=BACKEND_URL, lookup_timeout=2, request_timeout=2)
