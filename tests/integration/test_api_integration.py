import pytest
from httpx import ASGITransport, AsyncClient

from tripboard.main import create_app

LOGIN = {"email": "traveller@tripboard.io", "password": "secret"}


def client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def sign_in(ac: AsyncClient) -> str:
    response = await ac.post("/auth/login", json=LOGIN)
    session_id = response.json()["session_id"]
    ac.headers["Authorization"] = f"Bearer {session_id}"
    return session_id


@pytest.mark.asyncio
async def test_healthz_integration(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as ac:
        response = await ac.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_itinerary_routes_require_login(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as ac:
        response = await ac.get("/itineraries/4")
        assert response.status_code == 401

        response = await ac.get("/itineraries")
        assert response.status_code == 401

    assert backend.requests == []


@pytest.mark.asyncio
async def test_login_logout_integration(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as ac:
        bad = await ac.post("/auth/login", json={**LOGIN, "password": "wrong"})
        assert bad.status_code == 401
        assert bad.json()["detail"] == "Invalid credentials"

        invalid = await ac.post("/auth/login", json={"email": "nope", "password": "x"})
        assert invalid.status_code == 422

        ok = await ac.post("/auth/login", json=LOGIN)
        assert ok.status_code == 200
        assert ok.json()["authenticated"] is True
        assert ok.json()["user"]["username"] == "wanderer"
        session_id = ok.json()["session_id"]
        assert session_id.startswith("tbs_")
        # the backend token never leaves the server
        assert "tok-123" not in ok.text

        ac.headers["Authorization"] = f"Bearer {session_id}"
        session = await ac.get("/auth/session")
        assert session.json()["authenticated"] is True

        out = await ac.post("/auth/logout")
        assert out.json()["authenticated"] is False
        assert (await ac.get("/auth/session")).json()["authenticated"] is False
        assert (await ac.get("/itineraries/4")).status_code == 401


@pytest.mark.asyncio
async def test_sessions_are_isolated_between_clients(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as alice, client_for(app) as bob:
        alice_id = await sign_in(alice)
        assert (await alice.get("/itineraries/4")).status_code == 200

        anonymous = await bob.get("/itineraries/4")
        assert anonymous.status_code == 401
        assert (await bob.get("/itineraries")).status_code == 401
        assert (await bob.get("/auth/session")).json()["authenticated"] is False

        bob.headers["Authorization"] = "Bearer tbs_made-up"
        assert (await bob.get("/itineraries/4")).status_code == 401

        bob_id = await sign_in(bob)
        assert bob_id != alice_id
        opened = await bob.get("/itineraries/7")
        assert opened.json()["itinerary_id"] == "7"

        # bob opening 7 did not change what alice has open
        selected = await alice.put("/itineraries/4/selection", json={"day": 2})
        assert selected.status_code == 200
        assert selected.json()["itinerary_id"] == "4"

        await bob.post("/auth/logout")
        assert (await bob.get("/itineraries/7")).status_code == 401
        assert (await alice.get("/auth/session")).json()["authenticated"] is True
        assert (await alice.get("/itineraries/4")).status_code == 200


@pytest.mark.asyncio
async def test_trip_list_is_sorted_newest_first(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as ac:
        await sign_in(ac)
        response = await ac.get("/itineraries")

    assert response.status_code == 200
    assert [trip["id"] for trip in response.json()] == [1, 2, 3]
    assert response.json()[0]["poi_count"] == 8


@pytest.mark.asyncio
async def test_edit_flow_integration(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as ac:
        await sign_in(ac)

        opened = await ac.get("/itineraries/4")
        assert opened.status_code == 200
        view = opened.json()
        assert view["title"] == "NYC Long Weekend"
        assert view["stats"] == {"total_days": 3, "total_stops": 5}
        assert view["selected_day"] is None
        assert view["activities"] == []

        selected = await ac.put("/itineraries/4/selection", json={"day": 1})
        view = selected.json()
        assert view["selected_day"] == 1
        assert [a["label"] for a in view["activities"]] == ["1", "2"]
        assert view["bounds"] is not None

        moved = await ac.post("/itineraries/4/pois/2/move", json={"day": 1, "direction": "down"})
        view = moved.json()
        assert [e["poi_id"] for e in view["timelines"][0]["entries"]] == [1]
        assert [e["poi_id"] for e in view["timelines"][1]["entries"]] == [2, 3]
        assert view["dirty"] is True

        # first stop of the first day cannot go further up
        noop = await ac.post("/itineraries/4/pois/1/move", json={"day": 1, "direction": "up"})
        assert noop.json()["version"] == view["version"]

        added = await ac.post("/itineraries/4/days/1/pois", json={"poi_id": 9})
        assert added.json()["timelines"][0]["entries"][-1]["name"] == "High Line"

        deleted = await ac.delete("/itineraries/4/pois/5")
        assert deleted.json()["stats"]["total_stops"] == 5

        saved = await ac.post("/itineraries/4/save")
        assert saved.status_code == 200
        assert saved.json()["dirty"] is False

    assert backend.saved["4"]["days"][0] == {"day": 1, "pois": [{"poiId": 1}, {"poiId": 9}]}


@pytest.mark.asyncio
async def test_mutation_errors_integration(backend, settings):
    app = create_app(settings, transport=backend.transport())
    async with client_for(app) as ac:
        await sign_in(ac)
        await ac.get("/itineraries/4")

        not_open = await ac.post("/itineraries/7/pois/3/move", json={"day": 1, "direction": "up"})
        assert not_open.status_code == 409

        bad_direction = await ac.post(
            "/itineraries/4/pois/1/move", json={"day": 1, "direction": "sideways"}
        )
        assert bad_direction.status_code == 422

        bad_id = await ac.get("/itineraries/not%20valid")
        assert bad_id.status_code == 422

        missing = await ac.get("/itineraries/404")
        assert missing.status_code == 502

        # the failed open did not replace the open itinerary
        still_open = await ac.put("/itineraries/4/selection", json={"day": 3})
        assert still_open.status_code == 200
        assert still_open.json()["itinerary_id"] == "4"
