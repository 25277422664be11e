from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.models import Device, Location, Shipment
from app.concierge.repos.locations import LocationRepository
from app.concierge.services.lifecycle import Actor, ShipmentStatus, ensure_transition
from app.concierge.services.notifications import parse_email_list
from app.concierge.services.short_codes import ShortCodeAllocator

logger = logging.getLogger(__name__)


@dataclass
class CreationContext:
    created_by_user_id: object | None = None
    api_key_id: object | None = None
    create_missing_location: bool = True


class ShipmentCreationService:
    def __init__(self, db, allocator: ShortCodeAllocator | None = None):
        self.db = db
        self.locations = LocationRepository(db)
        self.allocator = allocator or ShortCodeAllocator(db)

    def resolve_location(self, destination: str, *, create_missing: bool) -> Location:
        """Look a destination up by id, then by case-insensitive name.

        Unknown names create the location when ``create_missing`` is set. The
        new location is committed on its own so a short-code retry never
        rolls it back.
        """
        destination = destination.strip()
        location = self.locations.get_by_id(destination) or self.locations.get_by_name(destination)
        if location is not None:
            return location
        if not create_missing:
            raise AppError(ErrorCatalog.LOCATION_NOT_FOUND, details={"destination": destination})
        location = Location(name=destination, recipient_emails=[])
        self.db.add(location)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.locations.get_by_name(destination)
            if existing is None:
                raise
            return existing
        self.db.refresh(location)
        logger.info("location_created", extra={"location_id": str(location.id), "name": location.name})
        return location

    def create(self, payload, context: CreationContext) -> Shipment:
        ensure_transition(Actor.CREATE, None, ShipmentStatus.PENDING)
        location = self.resolve_location(payload.destination, create_missing=context.create_missing_location)
        location_id = location.id
        notify_emails = parse_email_list(payload.notify_emails)

        def build(code: str) -> Shipment:
            shipment = Shipment(
                short_code=code,
                status=ShipmentStatus.PENDING.value,
                sender_name=payload.sender_name.strip(),
                sender_email=str(payload.sender_email),
                location_id=location_id,
                tracking_number=payload.tracking_number,
                carrier=payload.carrier,
                notes=payload.notes,
                client_reference_id=payload.client_reference_id,
                notify_emails=notify_emails,
                created_by_user_id=context.created_by_user_id,
                api_key_id=context.api_key_id,
            )
            shipment.devices = [
                Device(serial_number=device.serial_number, asset_tag=device.asset_tag, model=device.model)
                for device in payload.devices
            ]
            self.db.add(shipment)
            return shipment

        shipment = self.allocator.allocate(build)
        logger.info(
            "shipment_created",
            extra={"short_code": shipment.short_code, "devices": len(payload.devices), "location_id": str(location_id)},
        )
        return shipment
