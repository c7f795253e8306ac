"""Tests for admin fee overrides and the operator event log."""

from uuid import uuid4

from app.core.security import create_access_token
from app.services.event_log_service import EventLogService


def auth(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


# ============ BROKER FEES ============


async def test_set_and_list_fee_override(client, admin, broker):
    response = await client.put(
        "/api/v1/admin/broker-fees",
        json={"user_id": str(broker.id), "fee_percent": 8},
        headers=auth(admin),
    )

    assert response.status_code == 200, response.text
    assert response.json()["fee_percent"] == 8

    listing = await client.get("/api/v1/admin/broker-fees", headers=auth(admin))
    assert [(o["user_id"], o["fee_percent"]) for o in listing.json()] == [(str(broker.id), 8)]


async def test_updating_override_replaces_it(client, admin, broker):
    for percent in (8, 20):
        await client.put(
            "/api/v1/admin/broker-fees",
            json={"user_id": str(broker.id), "fee_percent": percent},
            headers=auth(admin),
        )

    listing = await client.get("/api/v1/admin/broker-fees", headers=auth(admin))
    assert [o["fee_percent"] for o in listing.json()] == [20]


async def test_override_changes_quote(client, admin, property_):
    await client.put(
        "/api/v1/admin/broker-fees",
        json={"user_id": str(property_.owner_id), "fee_percent": 0},
        headers=auth(admin),
    )

    response = await client.post(
        f"/api/v1/properties/{property_.id}/quote",
        json={"check_in": "2030-06-10", "check_out": "2030-06-12"},
    )

    assert response.json()["platform_fee_cents"] == 0
    assert response.json()["broker_net_cents"] == 22000


async def test_fee_percent_must_be_an_integer_percentage(client, admin, broker):
    for bad in (101, -1, True, "10", 10.5):
        response = await client.put(
            "/api/v1/admin/broker-fees",
            json={"user_id": str(broker.id), "fee_percent": bad},
            headers=auth(admin),
        )
        assert response.status_code == 422, bad


async def test_override_requires_a_broker(client, admin, guest_user):
    response = await client.put(
        "/api/v1/admin/broker-fees",
        json={"user_id": str(guest_user.id), "fee_percent": 5},
        headers=auth(admin),
    )

    assert response.status_code == 404


async def test_delete_override(client, admin, broker):
    await client.put(
        "/api/v1/admin/broker-fees",
        json={"user_id": str(broker.id), "fee_percent": 8},
        headers=auth(admin),
    )

    first = await client.delete(f"/api/v1/admin/broker-fees/{broker.id}", headers=auth(admin))
    second = await client.delete(f"/api/v1/admin/broker-fees/{broker.id}", headers=auth(admin))

    assert first.status_code == 204
    assert second.status_code == 404


async def test_broker_cannot_manage_fees(client, broker):
    response = await client.put(
        "/api/v1/admin/broker-fees",
        json={"user_id": str(broker.id), "fee_percent": 0},
        headers=auth(broker),
    )

    assert response.status_code == 403


# ============ EVENT LOGS ============


async def test_list_and_acknowledge_event_logs(client, db, admin):
    events = EventLogService()
    error = await events.record(db, "error", "stripe-webhook", "Conflict", {"booking_id": "x"})
    await events.record(db, "info", "stripe-webhook", "Refund noted")
    await db.commit()

    errors = await client.get(
        "/api/v1/admin/event-logs", params={"level": "error"}, headers=auth(admin)
    )
    assert errors.status_code == 200, errors.text
    assert errors.json()["total"] == 1
    assert errors.json()["items"][0]["event_metadata"] == {"booking_id": "x"}

    first = await client.post(f"/api/v1/admin/event-logs/{error.id}/acknowledge", headers=auth(admin))
    second = await client.post(f"/api/v1/admin/event-logs/{error.id}/acknowledge", headers=auth(admin))
    assert first.status_code == 200
    assert first.json()["acknowledged_at"] is not None
    assert second.json()["acknowledged_at"] == first.json()["acknowledged_at"]

    open_events = await client.get(
        "/api/v1/admin/event-logs", params={"unacknowledged": True}, headers=auth(admin)
    )
    assert [e["message"] for e in open_events.json()["items"]] == ["Refund noted"]


async def test_acknowledge_unknown_event(client, admin):
    response = await client.post(f"/api/v1/admin/event-logs/{uuid4()}/acknowledge", headers=auth(admin))

    assert response.status_code == 404


async def test_invalid_level_filter(client, admin):
    response = await client.get(
        "/api/v1/admin/event-logs", params={"level": "debug"}, headers=auth(admin)
    )

    assert response.status_code == 422
