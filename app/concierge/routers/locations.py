from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from app.concierge.core.deps import require_admin
from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.models import Location
from app.concierge.db.session import get_db
from app.concierge.repos.locations import LocationRepository
from app.concierge.routers.shipments import record_audit
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.schemas.locations import (
    LocationCreateRequest,
    LocationListResponse,
    LocationRecipientsUpdate,
    LocationResponse,
)

router = APIRouter()


def _location_response(location: Location, shipment_count: int = 0, last_shipment_at=None) -> LocationResponse:
    return LocationResponse(
        id=str(location.id),
        name=location.name,
        recipient_emails=list(location.recipient_emails or []),
        shipment_count=shipment_count,
        last_shipment_at=last_shipment_at,
        created_at=location.created_at,
        updated_at=location.updated_at,
    )


def _unique(addresses) -> list[str]:
    result: list[str] = []
    for address in addresses:
        value = str(address).strip()
        if value and value not in result:
            result.append(value)
    return result


@router.get("/api/admin/locations", response_model=LocationListResponse)
def list_locations(db=Depends(get_db), current_user=Depends(require_admin)):
    rows = LocationRepository(db).list_with_stats()
    return LocationListResponse(rows=[_location_response(location, count, last) for location, count, last in rows])


@router.post(
    "/api/admin/locations",
    response_model=LocationResponse,
    status_code=201,
    responses=STANDARD_ERROR_RESPONSES,
)
def create_location(
    request: Request,
    payload: LocationCreateRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    repo = LocationRepository(db)
    name = payload.name.strip()
    if not name:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "Location name must not be blank"})
    if repo.get_by_name(name) is not None:
        raise AppError(ErrorCatalog.LOCATION_NAME_CONFLICT, details={"name": name})
    location = Location(name=name, recipient_emails=_unique(payload.recipient_emails))
    db.add(location)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AppError(ErrorCatalog.LOCATION_NAME_CONFLICT, details={"name": name}) from exc
    db.refresh(location)
    response = _location_response(location)
    record_audit(db, request, actor=current_user.username, action="location.create", entity_type="location",
                 entity_id=response.id, metadata={"name": name})
    return response


@router.put(
    "/api/admin/locations/{location_id}/recipients",
    response_model=LocationResponse,
    responses=STANDARD_ERROR_RESPONSES,
)
def update_location_recipients(
    request: Request,
    location_id: str,
    payload: LocationRecipientsUpdate,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    location = LocationRepository(db).get_by_id(location_id)
    if location is None:
        raise AppError(ErrorCatalog.LOCATION_NOT_FOUND, details={"location_id": location_id})

    current = list(location.recipient_emails or [])
    if payload.recipient_emails is not None:
        updated = _unique(payload.recipient_emails)
        operation = "replace"
    elif payload.add_email is not None:
        updated = _unique([*current, payload.add_email])
        operation = "add"
    else:
        removed = str(payload.remove_email).strip()
        updated = [address for address in current if address != removed]
        operation = "remove"

    # JSON columns are not mutation-tracked; assign a new list.
    location.recipient_emails = updated
    db.commit()
    db.refresh(location)
    response = _location_response(location)
    record_audit(db, request, actor=current_user.username, action="location.recipients.update",
                 entity_type="location", entity_id=response.id,
                 metadata={"operation": operation, "recipient_count": len(updated)})
    return response
