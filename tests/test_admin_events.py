from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ecotour_svc.core.lifecycle import RegStatus
from ecotour_svc.models import Registration
from ecotour_svc.services.events import registration_for

from conftest import bearer, make_event


def _event_payload(**overrides) -> dict:
    payload = {
        "title": "Turtle Hatchery Night",
        "description": "Watch hatchlings make their way to the sea.",
        "category": "Conservation",
        "date": (datetime.now(timezone.utc) + timedelta(days=10)).isoformat(),
        "location": "Pulau Ubin",
        "coordinates": {"latitude": 1.41, "longitude": 103.96},
        "max_participants": 12,
        "price": 25,
        "duration_hours": 2.5,
        "difficulty": "Easy",
        "highlights": ["guided walk"],
        "organizer": {"name": "NParks"},
    }
    payload.update(overrides)
    return payload


async def _register(client, event, account) -> str:
    r = await client.post(f"/api/events/{event.id}/register", headers=bearer(account))
    assert r.status_code == 201
    return r.json()["data"]["registration"]["id"]


async def test_create_event(client, admin):
    r = await client.post("/api/admin/events", headers=bearer(admin), json=_event_payload())
    assert r.status_code == 201
    event = r.json()["data"]["event"]
    assert event["current_participants"] == 0
    assert event["status"] == "upcoming"
    assert event["progress"] == 0
    assert event["latitude"] == 1.41
    assert event["created_by"] == str(admin.id)


async def test_create_event_validation(client, admin):
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    r = await client.post("/api/admin/events", headers=bearer(admin), json=_event_payload(date=past))
    assert r.status_code == 400
    assert r.json()["message"] == "Event date must be in the future"

    r = await client.post("/api/admin/events", headers=bearer(admin), json=_event_payload(max_participants=0))
    assert r.status_code == 400
    assert r.json()["success"] is False

    r = await client.post("/api/admin/events", headers=bearer(admin), json=_event_payload(duration_hours=0.25))
    assert r.status_code == 400


async def test_user_cannot_manage_events(client, alice):
    r = await client.post("/api/admin/events", headers=bearer(alice), json=_event_payload())
    assert r.status_code == 403
    assert r.json()["message"] == "Admin access required"


async def test_other_admins_event_is_not_found(client, session, admin, other_admin):
    event = await make_event(session, admin)
    assert (await client.get(f"/api/admin/events/{event.id}", headers=bearer(admin))).status_code == 200

    for method, suffix, body in [
        ("GET", "", None),
        ("PUT", "", {"title": "Hijacked"}),
        ("PATCH", "/progress", {"progress": 10}),
        ("DELETE", "", None),
    ]:
        r = await client.request(method, f"/api/admin/events/{event.id}{suffix}", headers=bearer(other_admin), json=body)
        assert r.status_code == 404, (method, suffix)


async def test_price_and_capacity_locked_once_booked(client, session, admin, alice):
    event = await make_event(session, admin, max_participants=5, price=40.0)
    await _register(client, event, alice)

    r = await client.put(
        f"/api/admin/events/{event.id}",
        headers=bearer(admin),
        json={"title": "Renamed Trail", "price": 99, "max_participants": 50},
    )
    assert r.status_code == 200
    updated = r.json()["data"]["event"]
    assert updated["title"] == "Renamed Trail"
    assert updated["price"] == 40.0
    assert updated["max_participants"] == 5


async def test_update_without_registrations(client, session, admin):
    event = await make_event(session, admin, max_participants=5)
    r = await client.put(
        f"/api/admin/events/{event.id}",
        headers=bearer(admin),
        json={"max_participants": 8, "coordinates": {"latitude": 1.3, "longitude": 103.8}},
    )
    assert r.status_code == 200
    updated = r.json()["data"]["event"]
    assert updated["max_participants"] == 8
    assert updated["longitude"] == 103.8


async def test_progress(client, session, admin):
    event = await make_event(session, admin)
    url = f"/api/admin/events/{event.id}/progress"

    r = await client.patch(url, headers=bearer(admin), json={"progress": 150})
    assert r.status_code == 400

    r = await client.patch(url, headers=bearer(admin), json={"progress": 42.6})
    assert r.status_code == 200
    assert r.json()["data"]["event"]["progress"] == 42.6


async def test_status_change(client, session, admin):
    event = await make_event(session, admin)
    r = await client.patch(f"/api/admin/events/{event.id}/status", headers=bearer(admin), json={"status": "ongoing"})
    assert r.status_code == 200
    assert r.json()["data"]["event"]["status"] == "ongoing"

    r = await client.patch(f"/api/admin/events/{event.id}/status", headers=bearer(admin), json={"status": "paused"})
    assert r.status_code == 400


async def test_delete_rules(client, session, admin, alice):
    booked = await make_event(session, admin)
    empty = await make_event(session, admin)
    await _register(client, booked, alice)

    r = await client.delete(f"/api/admin/events/{booked.id}", headers=bearer(admin))
    assert r.status_code == 400
    assert r.json()["message"] == "Cannot delete event with existing registrations"

    r = await client.delete(f"/api/admin/events/{empty.id}", headers=bearer(admin))
    assert r.status_code == 200
    assert (await client.get(f"/api/admin/events/{empty.id}", headers=bearer(admin))).status_code == 404


async def test_confirm_then_complete_releases_seat(client, session, admin, alice):
    event = await make_event(session, admin, max_participants=3)
    rid = await _register(client, event, alice)
    base = f"/api/admin/events/{event.id}/registrations/{rid}"

    r = await client.post(f"{base}/confirm", headers=bearer(admin))
    assert r.status_code == 200
    assert r.json()["data"]["registration"]["status"] == "confirmed"
    await session.refresh(event)
    assert event.current_participants == 1

    r = await client.post(f"{base}/complete", headers=bearer(admin))
    assert r.json()["data"]["registration"]["status"] == "completed"
    await session.refresh(event)
    assert event.current_participants == 0

    r = await client.post(f"{base}/confirm", headers=bearer(admin))
    assert r.status_code == 400
    r = await client.post(f"{base}/cancel", headers=bearer(admin))
    assert r.status_code == 400
    await session.refresh(event)
    assert event.current_participants == 0


async def test_admin_cancel_with_reason(client, session, admin, alice):
    event = await make_event(session, admin)
    rid = await _register(client, event, alice)

    r = await client.post(
        f"/api/admin/events/{event.id}/registrations/{rid}/cancel",
        headers=bearer(admin),
        json={"reason": "weather"},
    )
    assert r.status_code == 200
    assert r.json()["data"]["registration"]["cancellation_reason"] == "weather"
    await session.refresh(event)
    assert event.current_participants == 0


async def test_force_transition_reconciles_capacity(client, session, admin, alice, bob):
    event = await make_event(session, admin, max_participants=1)
    rid = await _register(client, event, alice)
    url = f"/api/admin/events/{event.id}/registrations/{rid}"

    r = await client.patch(url, headers=bearer(admin), json={"status": "cancelled", "notes": "no-show risk"})
    assert r.status_code == 200
    reg = r.json()["data"]["registration"]
    assert reg["status"] == "cancelled"
    assert reg["cancellation_reason"] == "no-show risk"
    await session.refresh(event)
    assert event.current_participants == 0

    await _register(client, event, bob)

    # reopening alice would overbook the event
    r = await client.patch(url, headers=bearer(admin), json={"status": "pending"})
    assert r.status_code == 400
    assert r.json()["message"] == "Event is full"
    await session.refresh(event)
    assert event.current_participants == 1

    alice_reg = await registration_for(session, alice.id, event.id)
    assert alice_reg.status == RegStatus.CANCELLED


async def test_force_transition_updates_payment_only(client, session, admin, alice):
    event = await make_event(session, admin)
    rid = await _register(client, event, alice)

    r = await client.patch(
        f"/api/admin/events/{event.id}/registrations/{rid}",
        headers=bearer(admin),
        json={"payment_status": "paid", "notes": "paid at counter"},
    )
    assert r.status_code == 200
    reg = r.json()["data"]["registration"]
    assert reg["payment_status"] == "paid"
    assert reg["status"] == "pending"
    assert reg["notes"] == "paid at counter"


async def test_registration_must_belong_to_event(client, session, admin, alice):
    first = await make_event(session, admin)
    second = await make_event(session, admin)
    rid = await _register(client, first, alice)

    r = await client.post(f"/api/admin/events/{second.id}/registrations/{rid}/confirm", headers=bearer(admin))
    assert r.status_code == 404
    assert r.json()["message"] == "Registration not found"


async def test_event_registrations_listing(client, session, admin, alice, bob):
    event = await make_event(session, admin, max_participants=4)
    await _register(client, event, alice)
    await _register(client, event, bob)

    r = await client.get(f"/api/admin/events/{event.id}/registrations", headers=bearer(admin))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["event"]["current_participants"] == 2
    assert data["pagination"]["total_items"] == 2
    assert {reg["account"]["email"] for reg in data["registrations"]} == {alice.email, bob.email}


async def test_dashboard_counts_own_events_only(client, session, admin, other_admin, alice):
    mine = await make_event(session, admin)
    await make_event(session, admin, is_active=False)
    await make_event(session, other_admin)
    await _register(client, mine, alice)

    r = await client.get("/api/admin/events/dashboard", headers=bearer(admin))
    assert r.status_code == 200
    stats = r.json()["data"]["stats"]
    assert stats == {
        "total_events": 2,
        "active_events": 1,
        "upcoming_events": 2,
        "total_registrations": 1,
    }

    r = await client.get("/api/admin/events", headers=bearer(admin))
    assert r.json()["data"]["pagination"]["total_items"] == 2


def test_registration_model_reports_seat_holding():
    assert Registration(status=RegStatus.CONFIRMED).is_active
    assert not Registration(status=RegStatus.COMPLETED).is_active
