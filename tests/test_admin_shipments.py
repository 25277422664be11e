import re

import pytest
from sqlalchemy import select

from app.concierge.db.models import AuditEvent, Device, Location, Shipment
from app.concierge.services import short_codes
from tests.factories import creation_payload, make_location, make_shipment, receive_payload


def _devices(db_session, shipment_id):
    db_session.expire_all()
    rows = db_session.execute(select(Device).where(Device.shipment_id == shipment_id)).scalars().all()
    return {device.serial_number: device for device in rows}


def test_admin_endpoints_require_a_token(client):
    response = client.get("/api/shipments")
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


def test_create_shipment_creates_location_by_name(client, db_session, admin_headers):
    response = client.post(
        "/api/shipments",
        headers=admin_headers,
        json=creation_payload("Berlin Office", notify_emails="a@example.com, b@example.com,,"),
    )

    assert response.status_code == 201
    payload = response.json()
    assert re.fullmatch(r"[A-Z]{6}", payload["short_code"])
    assert payload["status"] == "PENDING"
    assert payload["location"]["name"] == "Berlin Office"
    assert payload["notify_emails"] == ["a@example.com", "b@example.com"]
    assert payload["device_count"] == 2
    assert payload["checked_in_count"] == 0
    assert db_session.execute(select(Location).where(Location.name == "Berlin Office")).scalars().one()


def test_create_shipment_reuses_location_case_insensitively(client, db_session, admin_headers):
    location = make_location(db_session, name="Berlin Office")
    first = client.post("/api/shipments", headers=admin_headers, json=creation_payload("berlin office"))
    second = client.post("/api/shipments", headers=admin_headers, json=creation_payload(str(location.id)))

    assert first.json()["location"]["id"] == str(location.id)
    assert second.json()["location"]["id"] == str(location.id)
    assert first.json()["short_code"] != second.json()["short_code"]
    assert len(db_session.execute(select(Location)).scalars().all()) == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"devices": []},
        {"devices": [{"serial_number": "A1"}, {"serial_number": "A1"}]},
        {"sender_email": "not-an-email"},
        {"sender_name": "  "},
    ],
)
def test_create_shipment_validation(client, db_session, admin_headers, overrides):
    response = client.post("/api/shipments", headers=admin_headers, json=creation_payload("HQ", **overrides))
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert db_session.execute(select(Shipment)).scalars().all() == []


def test_create_shipment_exhaustion_is_a_conflict(client, db_session, admin_headers, monkeypatch):
    make_shipment(db_session, short_code="TAKENX")
    original_init = short_codes.ShortCodeAllocator.__init__

    def init_with_fixed_generator(self, db, **kwargs):
        kwargs["generator"] = lambda length: "TAKENX"
        original_init(self, db, **kwargs)

    monkeypatch.setattr(short_codes.ShortCodeAllocator, "__init__", init_with_fixed_generator)

    response = client.post("/api/shipments", headers=admin_headers, json=creation_payload("HQ"))

    assert response.status_code == 409
    assert response.json()["code"] == "SHORT_CODE_EXHAUSTED"
    assert len(db_session.execute(select(Shipment)).scalars().all()) == 1


def test_list_shipments_filters_and_searches(client, db_session, admin_headers):
    hq = make_location(db_session, name="Headquarters")
    make_shipment(db_session, short_code="AAAAAA", serials=("SER-1",), location=hq)
    make_shipment(db_session, short_code="BBBBBB", serials=("SER-2",), status="RECEIVED")

    by_status = client.get("/api/shipments", headers=admin_headers, params={"status": "RECEIVED"}).json()
    assert [row["short_code"] for row in by_status["rows"]] == ["BBBBBB"]

    by_serial = client.get("/api/shipments", headers=admin_headers, params={"search": "ser-1"}).json()
    assert [row["short_code"] for row in by_serial["rows"]] == ["AAAAAA"]

    by_location = client.get("/api/shipments", headers=admin_headers, params={"search": "headquart"}).json()
    assert [row["short_code"] for row in by_location["rows"]] == ["AAAAAA"]

    paged = client.get("/api/shipments", headers=admin_headers, params={"limit": 1, "page": 2}).json()
    assert paged["total"] == 2
    assert paged["total_pages"] == 2
    assert len(paged["rows"]) == 1


def test_get_shipment_returns_full_record(client, db_session, admin_headers):
    make_shipment(db_session)
    client.put("/api/public/shipments/ABCDEF", json=receive_payload())

    response = client.get("/api/shipments/abcdef", headers=admin_headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["recipient_name"] == "Jane"
    assert payload["recipient_signature"].startswith("data:image/png;base64,")
    assert payload["checked_in_count"] == 1


def test_edit_completed_shipment_back_to_pending_is_a_conflict(client, db_session, admin_headers):
    shipment = make_shipment(db_session, status="COMPLETED")

    response = client.put("/api/shipments/ABCDEF", headers=admin_headers, json={"status": "PENDING"})

    assert response.status_code == 409
    assert response.json()["details"]["current_status"] == "COMPLETED"
    db_session.expire_all()
    assert db_session.get(Shipment, shipment.id).status == "COMPLETED"


def test_edit_received_shipment_to_completed_checks_in_selected(client, db_session, admin_headers):
    shipment = make_shipment(db_session, status="RECEIVED", serials=("A1", "A2"))

    response = client.put(
        "/api/shipments/ABCDEF",
        headers=admin_headers,
        json={"status": "COMPLETED", "checked_serials": ["A2"], "tracking_number": "TRK-1"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"
    assert response.json()["tracking_number"] == "TRK-1"
    devices = _devices(db_session, shipment.id)
    assert devices["A2"].is_checked_in is True
    assert devices["A1"].is_checked_in is False


def test_edit_completed_to_completed_is_allowed_but_cancelled_is_not(client, db_session, admin_headers):
    make_shipment(db_session, short_code="AAAAAA", status="COMPLETED")
    make_shipment(db_session, short_code="BBBBBB", status="CANCELLED")

    assert client.put("/api/shipments/AAAAAA", headers=admin_headers, json={"status": "COMPLETED"}).status_code == 200
    assert client.put("/api/shipments/BBBBBB", headers=admin_headers, json={"status": "COMPLETED"}).status_code == 409
    assert client.put("/api/shipments/AAAAAA", headers=admin_headers, json={"notes": "late"}).status_code == 409


def test_edit_checked_serials_ignored_unless_completing(client, db_session, admin_headers):
    shipment = make_shipment(db_session, status="PENDING", serials=("A1",))
    response = client.put(
        "/api/shipments/ABCDEF",
        headers=admin_headers,
        json={"status": "IN_TRANSIT", "checked_serials": ["A1"]},
    )
    assert response.status_code == 200
    assert _devices(db_session, shipment.id)["A1"].is_checked_in is False


def test_verify_completes_received_shipment(client, db_session, admin_headers):
    shipment = make_shipment(db_session, serials=("A1", "A2"))
    client.put("/api/public/shipments/ABCDEF", json=receive_payload(received=["A1"]))
    received_at = _devices(db_session, shipment.id)["A1"].checked_in_at

    response = client.post(
        "/api/shipments/ABCDEF/verify",
        headers=admin_headers,
        json={"verified_serials": ["A1", "A2"]},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"
    devices = _devices(db_session, shipment.id)
    assert devices["A1"].checked_in_at == received_at
    assert devices["A2"].is_checked_in is True
    audit = db_session.execute(select(AuditEvent).where(AuditEvent.action == "shipment.verify")).scalars().one()
    assert audit.event_metadata["verified_serials"] == ["A1", "A2"]


def test_verify_requires_received_status(client, db_session, admin_headers):
    make_shipment(db_session, status="PENDING")
    response = client.post("/api/shipments/ABCDEF/verify", headers=admin_headers, json={"verified_serials": ["A1"]})
    assert response.status_code == 409
    assert response.json()["code"] == "SHIPMENT_STATUS_CONFLICT"


def test_verify_rejects_foreign_serials(client, db_session, admin_headers):
    shipment = make_shipment(db_session, status="RECEIVED")
    response = client.post(
        "/api/shipments/ABCDEF/verify",
        headers=admin_headers,
        json={"verified_serials": ["A1", "ZZ"]},
    )
    assert response.status_code == 422
    assert response.json()["details"]["unknown_serials"] == ["ZZ"]
    db_session.expire_all()
    assert db_session.get(Shipment, shipment.id).status == "RECEIVED"


def test_direct_check_in(client, db_session, admin_headers):
    make_shipment(db_session, serials=("A1",))

    first = client.post("/api/shipments/ABCDEF/checkin", headers=admin_headers, json={"serial_number": "A1"})
    second = client.post("/api/shipments/ABCDEF/checkin", headers=admin_headers, json={"serial_number": "A1"})
    missing = client.post("/api/shipments/ABCDEF/checkin", headers=admin_headers, json={"serial_number": "XX"})

    assert first.status_code == 200
    assert first.json()["status"] == "checked_in"
    assert second.json()["status"] == "already_checked_in"
    assert second.json()["checked_in_at"] == first.json()["checked_in_at"]
    assert missing.status_code == 404
    assert missing.json()["code"] == "DEVICE_NOT_FOUND"


def test_delete_shipment_removes_devices(client, db_session, admin_headers):
    shipment_id = make_shipment(db_session).id

    response = client.delete("/api/shipments/ABCDEF", headers=admin_headers)

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.get(Shipment, shipment_id) is None
    assert db_session.execute(select(Device).where(Device.shipment_id == shipment_id)).scalars().all() == []
    assert client.get("/api/shipments/ABCDEF", headers=admin_headers).status_code == 404


def test_field_only_edit_keeps_status(client, db_session, admin_headers):
    make_shipment(db_session, status="IN_TRANSIT")

    response = client.put(
        "/api/shipments/ABCDEF",
        headers=admin_headers,
        json={"notes": "left dock 3", "carrier": "UPS", "sender_name": None},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "IN_TRANSIT"
    assert body["notes"] == "left dock 3"
    assert body["carrier"] == "UPS"
    assert body["sender_name"] == "IT Operations"


@pytest.mark.parametrize("status", ["PENDING", "IN_TRANSIT", "DELIVERED"])
def test_edit_back_before_receipt_clears_recipient(client, db_session, admin_headers, status):
    shipment_id = make_shipment(db_session).id
    assert client.put("/api/public/shipments/ABCDEF", json=receive_payload(name="Jane")).status_code == 200

    response = client.put("/api/shipments/ABCDEF", headers=admin_headers, json={"status": status})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == status
    assert body["recipient_name"] is None
    assert body["recipient_signature"] is None
    assert body["received_at"] is None
    db_session.expire_all()
    stored = db_session.get(Shipment, shipment_id)
    assert (stored.recipient_name, stored.recipient_signature, stored.received_at) == (None, None, None)

    again = client.put("/api/public/shipments/ABCDEF", json=receive_payload(name="Mallory"))
    assert again.status_code == 200
    assert client.get("/api/shipments/ABCDEF", headers=admin_headers).json()["recipient_name"] == "Mallory"


def test_cancelling_a_received_shipment_keeps_the_receipt(client, db_session, admin_headers):
    make_shipment(db_session)
    client.put("/api/public/shipments/ABCDEF", json=receive_payload(name="Jane"))

    response = client.put("/api/shipments/ABCDEF", headers=admin_headers, json={"status": "CANCELLED"})

    assert response.status_code == 200
    assert response.json()["recipient_name"] == "Jane"
    assert response.json()["received_at"] is not None


def test_edit_rejects_blank_sender_name(client, db_session, admin_headers):
    make_shipment(db_session)

    response = client.put("/api/shipments/ABCDEF", headers=admin_headers, json={"sender_name": "   "})
    trimmed = client.put("/api/shipments/ABCDEF", headers=admin_headers, json={"sender_name": "  Ops Team "})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert trimmed.json()["sender_name"] == "Ops Team"
