import re
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.models import Device, Shipment
from app.concierge.services.short_codes import ShortCodeAllocator, generate_short_code, normalize_short_code
from tests.factories import make_location, make_shipment


def _builder(db_session, location_id, serials=("A1",)):
    def build(code: str) -> Shipment:
        shipment = Shipment(
            short_code=code,
            sender_name="IT Operations",
            sender_email="it@example.com",
            location_id=location_id,
            notify_emails=[],
        )
        shipment.devices = [Device(serial_number=serial) for serial in serials]
        db_session.add(shipment)
        return shipment

    return build


def _scripted(*codes):
    remaining = list(codes)
    return lambda length: remaining.pop(0)


def test_generated_codes_are_six_uppercase_letters():
    for _ in range(200):
        assert re.fullmatch(r"[A-Z]{6}", generate_short_code())


def test_normalize_short_code_upper_cases_and_rejects_malformed():
    assert normalize_short_code(" abcdef ") == "ABCDEF"
    for bad in ("ABCDE", "ABCDEFG", "ABC1EF", "", None):
        with pytest.raises(AppError) as exc_info:
            normalize_short_code(bad)
        assert exc_info.value.error == ErrorCatalog.VALIDATION_ERROR


def test_allocator_retries_after_short_code_collision(db_session):
    existing = make_shipment(db_session, short_code="TAKENX")
    allocator = ShortCodeAllocator(db_session, generator=_scripted("TAKENX", "FRESHY"))

    shipment = allocator.allocate(_builder(db_session, existing.location_id))

    assert shipment.short_code == "FRESHY"
    assert shipment.status == "PENDING"
    count = db_session.execute(select(func.count()).select_from(Shipment)).scalar_one()
    assert count == 2


def test_allocator_exhaustion_leaves_no_partial_shipment(db_session):
    existing = make_shipment(db_session, short_code="TAKENX")
    allocator = ShortCodeAllocator(db_session, max_attempts=5, generator=lambda length: "TAKENX")

    with pytest.raises(AppError) as exc_info:
        allocator.allocate(_builder(db_session, existing.location_id, serials=("Z1", "Z2")))

    assert exc_info.value.error == ErrorCatalog.SHORT_CODE_EXHAUSTED
    assert exc_info.value.error.status_code == 409
    assert db_session.execute(select(func.count()).select_from(Shipment)).scalar_one() == 1
    orphan_devices = db_session.execute(select(Device).where(Device.serial_number.in_(["Z1", "Z2"]))).all()
    assert orphan_devices == []


def test_allocator_does_not_retry_other_integrity_errors(db_session):
    location = make_location(db_session)
    attempts = []

    def generator(length):
        attempts.append(length)
        return "DUPSER"

    allocator = ShortCodeAllocator(db_session, generator=generator)
    with pytest.raises(IntegrityError):
        allocator.allocate(_builder(db_session, location.id, serials=("SAME", "SAME")))

    assert len(attempts) == 1
    assert db_session.execute(select(func.count()).select_from(Shipment)).scalar_one() == 0


def test_allocated_codes_are_unique(db_session):
    location = make_location(db_session)
    allocator = ShortCodeAllocator(db_session)
    codes = {
        allocator.allocate(_builder(db_session, location.id, serials=(uuid.uuid4().hex,))).short_code
        for _ in range(20)
    }
    assert len(codes) == 20
