from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.models import Shipment
from app.concierge.repos.shipments import ShipmentRepository
from app.concierge.services.checkin import CheckInResult, CheckInTracker
from app.concierge.services.lifecycle import (
    NON_TERMINAL_STATES,
    RECIPIENT_STATES,
    Actor,
    ShipmentStatus,
    ensure_transition,
    parse_status,
    source_values,
    status_conflict,
)
from app.concierge.services.short_codes import normalize_short_code

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("sender_name", "sender_email", "tracking_number", "carrier", "notes")
_REQUIRED_FIELDS = ("sender_name", "sender_email")
_CLEARED_RECIPIENT = {"recipient_name": None, "recipient_signature": None, "received_at": None}


class ShipmentAdminService:
    def __init__(self, db):
        self.db = db
        self.repo = ShipmentRepository(db)
        self.tracker = CheckInTracker(db)

    def get(self, short_code: str) -> Shipment:
        code = normalize_short_code(short_code)
        shipment = self.repo.get_by_short_code(code)
        if shipment is None:
            raise AppError(ErrorCatalog.SHIPMENT_NOT_FOUND, details={"short_code": code})
        return shipment

    def _lock(self, code: str) -> Shipment:
        shipment = self.repo.get_by_short_code(code, for_update=True)
        if shipment is None:
            raise AppError(ErrorCatalog.SHIPMENT_NOT_FOUND, details={"short_code": code})
        return shipment

    def _compare_and_set(self, shipment: Shipment, actor: Actor, target: ShipmentStatus, values: dict,
                         sources: list[str] | None = None) -> None:
        """Apply ``values`` only while the row is still in an allowed source state.

        With explicit ``sources`` the status column itself is left untouched.
        """
        if sources is None:
            sources = source_values(actor, target)
            values = {**values, "status": target.value}
        result = self.db.execute(
            update(Shipment)
            .where(Shipment.id == shipment.id, Shipment.status.in_(sources))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise status_conflict(actor, self.repo.get_status(shipment.id), target)

    def edit(self, short_code: str, payload) -> Shipment:
        """Administrative edit.

        An edit without a status keeps the current one and is only allowed on
        shipments that are not completed or cancelled. Moving a shipment back
        to a pre-receipt status clears the recipient fields.
        """
        code = normalize_short_code(short_code)
        try:
            shipment = self._lock(code)
            requested = parse_status(payload.status)
            target = requested or ShipmentStatus(shipment.status)
            sources = None
            if requested is None:
                if target not in NON_TERMINAL_STATES:
                    raise status_conflict(Actor.ADMIN_EDIT, target, target)
                sources = sorted(state.value for state in NON_TERMINAL_STATES)
            else:
                ensure_transition(Actor.ADMIN_EDIT, shipment.status, requested)

            now = datetime.utcnow()
            changes = {
                key: value
                for key, value in payload.model_dump(include=set(_EDITABLE_FIELDS), exclude_unset=True).items()
                if value is not None or key not in _REQUIRED_FIELDS
            }
            if "sender_email" in changes:
                changes["sender_email"] = str(changes["sender_email"])
            if requested is not None and requested not in RECIPIENT_STATES:
                changes.update(_CLEARED_RECIPIENT)
            self._compare_and_set(shipment, Actor.ADMIN_EDIT, target, {**changes, "updated_at": now}, sources)

            checked = 0
            if target == ShipmentStatus.COMPLETED and payload.checked_serials:
                checked = self.tracker.mark_checked_in(shipment.id, payload.checked_serials, now, only_unchecked=True)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "shipment_edited",
            extra={"short_code": code, "target_status": target.value, "checked_in": checked},
        )
        return self.get(code)

    def verify(self, short_code: str, verified_serials: list[str]) -> Shipment:
        code = normalize_short_code(short_code)
        serials = {serial.strip() for serial in verified_serials if serial and serial.strip()}
        try:
            shipment = self._lock(code)
            ensure_transition(Actor.ADMIN_VERIFY, shipment.status, ShipmentStatus.COMPLETED)
            unknown = sorted(serials - self.repo.get_serials(shipment.id))
            if not serials or unknown:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "Verified serials must belong to the shipment", "unknown_serials": unknown},
                )
            now = datetime.utcnow()
            self._compare_and_set(shipment, Actor.ADMIN_VERIFY, ShipmentStatus.COMPLETED, {"updated_at": now})
            checked = self.tracker.mark_checked_in(shipment.id, serials, now, only_unchecked=True)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("shipment_verified", extra={"short_code": code, "checked_in": checked})
        return self.get(code)

    def delete(self, short_code: str) -> str:
        shipment = self.get(short_code)
        code = shipment.short_code
        self.db.delete(shipment)
        self.db.commit()
        logger.info("shipment_deleted", extra={"short_code": code})
        return code

    def check_in(self, short_code: str, serial_number: str) -> CheckInResult:
        shipment = self.get(short_code)
        return self.tracker.check_in_one(shipment.id, serial_number.strip(), datetime.utcnow())
