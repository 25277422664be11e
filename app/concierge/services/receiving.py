from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.metrics import metrics
from app.concierge.db.models import Device, Shipment
from app.concierge.repos.shipments import ShipmentRepository
from app.concierge.services.checkin import CheckInTracker
from app.concierge.services.lifecycle import Actor, ShipmentStatus, ensure_transition, source_values, status_conflict
from app.concierge.services.short_codes import normalize_short_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptOutcome:
    shipment_id: object
    short_code: str
    status: ShipmentStatus
    received_at: datetime
    received_serials: list[str]
    extra_serials: list[str]


class ReceivingService:
    """Confirms delivery of a shipment in a single transaction.

    The shipment row is re-read with a row lock, the status change is applied
    as a compare-and-set against the allowed source states, manifest devices
    are checked in and extra devices inserted. Nothing is persisted unless all
    of it succeeds. Side effects (unlock, notification) are the caller's job
    and must run after ``receive`` returns.
    """

    def __init__(self, db):
        self.db = db
        self.repo = ShipmentRepository(db)
        self.tracker = CheckInTracker(db)

    def receive(self, short_code: str, command) -> ReceiptOutcome:
        code = normalize_short_code(short_code)
        try:
            outcome = self._receive_locked(code, command)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        metrics.increment_receipt()
        logger.info(
            "shipment_received",
            extra={
                "short_code": outcome.short_code,
                "checked_in": len(outcome.received_serials),
                "extra_devices": len(outcome.extra_serials),
            },
        )
        return outcome

    def _receive_locked(self, code: str, command) -> ReceiptOutcome:
        shipment = self.repo.get_by_short_code(code, for_update=True)
        if shipment is None:
            raise AppError(ErrorCatalog.SHIPMENT_NOT_FOUND, details={"short_code": code})
        ensure_transition(Actor.PUBLIC_RECEIVE, shipment.status, ShipmentStatus.RECEIVED)

        now = datetime.utcnow()
        result = self.db.execute(
            update(Shipment)
            .where(
                Shipment.id == shipment.id,
                Shipment.status.in_(source_values(Actor.PUBLIC_RECEIVE, ShipmentStatus.RECEIVED)),
            )
            .values(
                status=ShipmentStatus.RECEIVED.value,
                recipient_name=command.recipient_name.strip(),
                recipient_signature=command.signature,
                received_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise status_conflict(Actor.PUBLIC_RECEIVE, self.repo.get_status(shipment.id), ShipmentStatus.RECEIVED)

        manifest = self.repo.get_serials(shipment.id)
        received = sorted(set(command.received_serials) & manifest)
        self.tracker.mark_checked_in(shipment.id, received, now, only_unchecked=False)
        extra = self._register_extra_devices(shipment.id, command.extra_devices, manifest, now)
        return ReceiptOutcome(
            shipment_id=shipment.id,
            short_code=code,
            status=ShipmentStatus.RECEIVED,
            received_at=now,
            received_serials=received,
            extra_serials=extra,
        )

    def _register_extra_devices(self, shipment_id, extra_devices, existing_serials: set[str], at: datetime) -> list[str]:
        """Insert devices found on arrival; serials already known are skipped."""
        seen = set(existing_serials)
        inserted: list[str] = []
        for entry in extra_devices:
            serial = entry.serial_number.strip()
            if not serial or serial in seen:
                continue
            seen.add(serial)
            self.db.add(
                Device(
                    shipment_id=shipment_id,
                    serial_number=serial,
                    asset_tag=entry.asset_tag,
                    model=entry.model,
                    is_extra_device=True,
                    is_checked_in=True,
                    checked_in_at=at,
                    created_at=at,
                )
            )
            inserted.append(serial)
        self.db.flush()
        return inserted
