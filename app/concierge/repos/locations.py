from sqlalchemy import func, select

from app.concierge.db.models import Location, Shipment
from app.concierge.repos.ids import parse_uuid


class LocationRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, location_id) -> Location | None:
        parsed = parse_uuid(location_id)
        if parsed is None:
            return None
        return self.db.get(Location, parsed)

    def get_by_name(self, name: str) -> Location | None:
        return (
            self.db.execute(select(Location).where(func.lower(Location.name) == name.strip().lower()))
            .scalars()
            .first()
        )

    def list_with_stats(self) -> list[tuple[Location, int, object]]:
        query = (
            select(Location, func.count(Shipment.id), func.max(Shipment.created_at))
            .outerjoin(Shipment, Shipment.location_id == Location.id)
            .group_by(Location.id)
            .order_by(Location.name.asc())
        )
        return [(row[0], int(row[1] or 0), row[2]) for row in self.db.execute(query).all()]
