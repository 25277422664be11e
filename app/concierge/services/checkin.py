from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.models import Device


@dataclass(frozen=True)
class CheckInResult:
    status: str
    serial_number: str
    checked_in_at: datetime | None


class CheckInTracker:
    def __init__(self, db):
        self.db = db

    def mark_checked_in(
        self,
        shipment_id,
        serial_numbers: Iterable[str],
        at: datetime,
        *,
        only_unchecked: bool,
    ) -> int:
        """Flag the shipment's devices whose serial is in ``serial_numbers``.

        Runs inside the caller's transaction. With ``only_unchecked`` devices
        that are already checked in keep their original timestamp.
        """
        serials = sorted({serial for serial in serial_numbers if serial})
        if not serials:
            return 0
        stmt = update(Device).where(
            Device.shipment_id == shipment_id,
            Device.serial_number.in_(serials),
        )
        if only_unchecked:
            stmt = stmt.where(Device.is_checked_in.is_(False))
        result = self.db.execute(
            stmt.values(is_checked_in=True, checked_in_at=at).execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def check_in_one(self, shipment_id, serial_number: str, at: datetime) -> CheckInResult:
        result = self.db.execute(
            update(Device)
            .where(
                Device.shipment_id == shipment_id,
                Device.serial_number == serial_number,
                Device.is_checked_in.is_(False),
            )
            .values(is_checked_in=True, checked_in_at=at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            self.db.commit()
            return CheckInResult(status="checked_in", serial_number=serial_number, checked_in_at=at)

        self.db.rollback()
        device = (
            self.db.execute(
                select(Device).where(Device.shipment_id == shipment_id, Device.serial_number == serial_number)
            )
            .scalars()
            .first()
        )
        if device is None or not device.is_checked_in:
            raise AppError(
                ErrorCatalog.DEVICE_NOT_FOUND,
                details={"message": f"Device with serial {serial_number} not found in shipment",
                         "serial_number": serial_number},
            )
        return CheckInResult(
            status="already_checked_in",
            serial_number=serial_number,
            checked_in_at=device.checked_in_at,
        )
