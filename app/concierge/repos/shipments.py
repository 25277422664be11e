from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from app.concierge.db.models import Device, Location, Shipment
from app.concierge.repos.ids import parse_uuid


@dataclass(frozen=True)
class ShipmentQueryFilters:
    status: str | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    limit: int = 15
    offset: int = 0


class ShipmentRepository:
    def __init__(self, db):
        self.db = db

    def get_by_short_code(self, short_code: str, *, for_update: bool = False) -> Shipment | None:
        query = select(Shipment).where(Shipment.short_code == short_code)
        if for_update:
            query = query.with_for_update()
        else:
            query = query.options(selectinload(Shipment.devices), selectinload(Shipment.location))
        return self.db.execute(query).scalars().first()

    def get_by_id(self, shipment_id) -> Shipment | None:
        parsed = parse_uuid(shipment_id)
        if parsed is None:
            return None
        return self.db.get(Shipment, parsed)

    def get_status(self, shipment_id) -> str | None:
        return self.db.execute(select(Shipment.status).where(Shipment.id == shipment_id)).scalars().first()

    def list_shipments(self, filters: ShipmentQueryFilters) -> tuple[list[Shipment], int]:
        query = select(Shipment).options(selectinload(Shipment.devices), selectinload(Shipment.location))
        count_query = select(func.count()).select_from(Shipment)

        if filters.status:
            query = query.where(Shipment.status == filters.status)
            count_query = count_query.where(Shipment.status == filters.status)

        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            device_match = (
                select(Device.id)
                .where(
                    Device.shipment_id == Shipment.id,
                    or_(Device.serial_number.ilike(pattern), Device.asset_tag.ilike(pattern)),
                )
                .exists()
            )
            location_match = (
                select(Location.id)
                .where(Location.id == Shipment.location_id, Location.name.ilike(pattern))
                .exists()
            )
            search_filter = or_(
                Shipment.short_code.ilike(pattern),
                Shipment.sender_name.ilike(pattern),
                Shipment.sender_email.ilike(pattern),
                location_match,
                device_match,
            )
            query = query.where(search_filter)
            count_query = count_query.where(search_filter)

        sort_mapping = {
            "created_at": Shipment.created_at,
            "updated_at": Shipment.updated_at,
            "sender_name": Shipment.sender_name,
            "status": Shipment.status,
        }
        sort_column = sort_mapping.get(filters.sort_by, Shipment.created_at)
        query = query.order_by(sort_column.asc() if filters.sort_order == "asc" else sort_column.desc())
        query = query.offset(filters.offset).limit(filters.limit)

        rows = self.db.execute(query).scalars().all()
        total = self.db.execute(count_query).scalar_one()
        return list(rows), int(total)

    def get_serials(self, shipment_id) -> set[str]:
        return set(
            self.db.execute(select(Device.serial_number).where(Device.shipment_id == shipment_id)).scalars().all()
        )
