from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.models import Device
from app.concierge.services.checkin import CheckInTracker
from tests.factories import make_shipment


def _devices(db_session, shipment_id):
    db_session.expire_all()
    rows = db_session.execute(select(Device).where(Device.shipment_id == shipment_id)).scalars().all()
    return {device.serial_number: device for device in rows}


def test_conditional_check_in_keeps_earlier_timestamp(db_session):
    shipment = make_shipment(db_session, serials=("A1", "A2", "A3"))
    tracker = CheckInTracker(db_session)
    first = datetime(2026, 1, 1, 9, 0, 0)
    later = first + timedelta(hours=2)

    assert tracker.mark_checked_in(shipment.id, ["A1"], first, only_unchecked=True) == 1
    db_session.commit()
    assert tracker.mark_checked_in(shipment.id, ["A1", "A2"], later, only_unchecked=True) == 1
    db_session.commit()

    devices = _devices(db_session, shipment.id)
    assert devices["A1"].checked_in_at == first
    assert devices["A2"].checked_in_at == later
    assert devices["A3"].is_checked_in is False


def test_unconditional_check_in_overwrites(db_session):
    shipment = make_shipment(db_session, serials=("A1",))
    tracker = CheckInTracker(db_session)
    first = datetime(2026, 1, 1, 9, 0, 0)
    later = first + timedelta(days=1)
    tracker.mark_checked_in(shipment.id, ["A1"], first, only_unchecked=True)
    tracker.mark_checked_in(shipment.id, ["A1"], later, only_unchecked=False)
    db_session.commit()

    assert _devices(db_session, shipment.id)["A1"].checked_in_at == later


def test_check_in_ignores_other_shipments(db_session):
    first = make_shipment(db_session, short_code="AAAAAA", serials=("A1",))
    second = make_shipment(db_session, short_code="BBBBBB", serials=("A1",))
    CheckInTracker(db_session).mark_checked_in(first.id, ["A1"], datetime.utcnow(), only_unchecked=False)
    db_session.commit()

    assert _devices(db_session, first.id)["A1"].is_checked_in is True
    assert _devices(db_session, second.id)["A1"].is_checked_in is False


def test_single_check_in_is_idempotent(db_session):
    shipment = make_shipment(db_session, serials=("A1",))
    tracker = CheckInTracker(db_session)
    at = datetime(2026, 3, 1, 12, 0, 0)

    first = tracker.check_in_one(shipment.id, "A1", at)
    second = tracker.check_in_one(shipment.id, "A1", at + timedelta(hours=1))

    assert first.status == "checked_in"
    assert second.status == "already_checked_in"
    assert second.checked_in_at == at


def test_single_check_in_unknown_serial(db_session):
    shipment = make_shipment(db_session, serials=("A1",))
    with pytest.raises(AppError) as exc_info:
        CheckInTracker(db_session).check_in_one(shipment.id, "NOPE", datetime.utcnow())
    assert exc_info.value.error == ErrorCatalog.DEVICE_NOT_FOUND
