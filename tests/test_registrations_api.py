from __future__ import annotations

from conftest import bearer, make_event


async def test_last_seat_handover_between_two_users(client, session, admin, alice, bob):
    event = await make_event(session, admin, max_participants=1)
    url = f"/api/events/{event.id}/register"

    r = await client.post(url, headers=bearer(alice))
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["data"]["registration"]["status"] == "pending"
    assert body["data"]["event"]["current_participants"] == 1

    r = await client.post(url, headers=bearer(bob))
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Event is full"}

    r = await client.request("DELETE", url, headers=bearer(alice), json={"reason": "conflict"})
    assert r.status_code == 200
    cancelled = r.json()["data"]["registration"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancellation_reason"] == "conflict"
    assert cancelled["cancellation_date"] is not None

    r = await client.post(url, headers=bearer(bob))
    assert r.status_code == 201

    await session.refresh(event)
    assert event.current_participants == 1


async def test_register_twice_conflicts(client, session, admin, alice):
    event = await make_event(session, admin)
    url = f"/api/events/{event.id}/register"

    assert (await client.post(url, headers=bearer(alice))).status_code == 201
    r = await client.post(url, headers=bearer(alice))
    assert r.status_code == 409
    assert r.json()["message"] == "You are already registered for this event"

    await session.refresh(event)
    assert event.current_participants == 1


async def test_register_for_past_event(client, session, admin, alice):
    event = await make_event(session, admin, days=-2)
    r = await client.post(f"/api/events/{event.id}/register", headers=bearer(alice))
    assert r.status_code == 400
    assert r.json()["message"] == "Cannot register for past events"


async def test_register_for_inactive_event(client, session, admin, alice):
    event = await make_event(session, admin, is_active=False)
    r = await client.post(f"/api/events/{event.id}/register", headers=bearer(alice))
    assert r.status_code == 404


async def test_register_with_details(client, session, admin, alice):
    event = await make_event(session, admin)
    r = await client.post(
        f"/api/events/{event.id}/register",
        headers=bearer(alice),
        json={
            "special_requirements": "vegetarian",
            "emergency_contact": {"name": "Sam", "phone": "+65 8123 4567", "relationship": "sibling"},
            "payment_method": "credit_card",
        },
    )
    assert r.status_code == 201
    reg = r.json()["data"]["registration"]
    assert reg["special_requirements"] == "vegetarian"
    assert reg["emergency_contact"]["name"] == "Sam"
    assert reg["payment_method"] == "credit_card"
    assert reg["payment_status"] == "pending"


async def test_cancel_twice_leaves_count_alone(client, session, admin, alice, bob):
    event = await make_event(session, admin, max_participants=5)
    url = f"/api/events/{event.id}/register"
    await client.post(url, headers=bearer(alice))
    await client.post(url, headers=bearer(bob))

    assert (await client.delete(url, headers=bearer(alice))).status_code == 200
    r = await client.delete(url, headers=bearer(alice))
    assert r.status_code == 400
    assert r.json()["message"] == "Cannot cancel this registration"

    await session.refresh(event)
    assert event.current_participants == 1


async def test_cancel_without_registration(client, session, admin, alice):
    event = await make_event(session, admin)
    r = await client.delete(f"/api/events/{event.id}/register", headers=bearer(alice))
    assert r.status_code == 404


async def test_access_gate_on_registration(client, session, admin, alice):
    event = await make_event(session, admin)
    url = f"/api/events/{event.id}/register"

    r = await client.post(url)
    assert r.status_code == 401
    assert r.json()["message"] == "Access token required"

    r = await client.post(url, headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"

    r = await client.post(url, headers=bearer(admin))
    assert r.status_code == 403
    assert r.json()["message"] == "User access required"


async def test_event_detail_shows_viewer_registration(client, session, admin, alice):
    event = await make_event(session, admin, max_participants=4)
    await client.post(f"/api/events/{event.id}/register", headers=bearer(alice))

    r = await client.get(f"/api/events/{event.id}", headers=bearer(alice))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["event"]["available_spots"] == 3
    assert data["event"]["is_full"] is False
    assert data["user_registration"]["status"] == "pending"

    anonymous = (await client.get(f"/api/events/{event.id}")).json()["data"]
    assert anonymous["user_registration"] is None


async def test_my_registrations_include_event(client, session, admin, alice):
    first = await make_event(session, admin, title="Hornbill Watch")
    second = await make_event(session, admin, title="Reef Cleanup")
    await client.post(f"/api/events/{first.id}/register", headers=bearer(alice))
    await client.post(f"/api/events/{second.id}/register", headers=bearer(alice))
    await client.delete(f"/api/events/{second.id}/register", headers=bearer(alice))

    r = await client.get("/api/events/user/registrations", headers=bearer(alice))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["pagination"]["total_items"] == 2
    assert {reg["event"]["title"] for reg in data["registrations"]} == {"Hornbill Watch", "Reef Cleanup"}

    r = await client.get("/api/events/user/registrations?status=cancelled", headers=bearer(alice))
    regs = r.json()["data"]["registrations"]
    assert [reg["event"]["title"] for reg in regs] == ["Reef Cleanup"]


async def test_public_listing_filters(client, session, admin):
    await make_event(session, admin, title="Night Safari Walk", days=3)
    await make_event(session, admin, title="Hidden Trek", days=5, is_active=False)
    await make_event(session, admin, title="Old Birding", days=-3)

    r = await client.get("/api/events")
    assert r.status_code == 200
    data = r.json()["data"]
    titles = [e["title"] for e in data["events"]]
    assert "Night Safari Walk" in titles
    assert "Hidden Trek" not in titles
    assert data["pagination"]["items_per_page"] == 12
    assert data["filters"]["categories"] == ["Nature Trek"]

    r = await client.get("/api/events", params={"search": "safari"})
    assert [e["title"] for e in r.json()["data"]["events"]] == ["Night Safari Walk"]

    r = await client.get("/api/events", params={"status": "bogus"})
    assert r.status_code == 400
