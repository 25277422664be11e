from __future__ import annotations

import math

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response

from app.concierge.core.config import settings
from app.concierge.core.deps import require_admin
from app.concierge.db.models import Device, Shipment
from app.concierge.db.session import get_db, session_scope
from app.concierge.repos.shipments import ShipmentQueryFilters, ShipmentRepository
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.schemas.shipments import (
    CheckInRequest,
    CheckInResponse,
    DeviceResponse,
    LocationSummary,
    ShipmentCreateRequest,
    ShipmentListResponse,
    ShipmentResponse,
    ShipmentUpdateRequest,
    VerifyRequest,
)
from app.concierge.services.audit import AuditEventPayload, AuditService
from app.concierge.services.device_management import lock_devices
from app.concierge.services.lifecycle import ShipmentStatus
from app.concierge.services.notifications import NotificationEvent, notify_shipment_event
from app.concierge.services.shipment_admin import ShipmentAdminService
from app.concierge.services.shipment_creation import CreationContext, ShipmentCreationService

router = APIRouter()


def device_response(device: Device) -> DeviceResponse:
    return DeviceResponse(
        id=str(device.id),
        serial_number=device.serial_number,
        asset_tag=device.asset_tag,
        model=device.model,
        is_checked_in=device.is_checked_in,
        checked_in_at=device.checked_in_at,
        is_extra_device=device.is_extra_device,
        created_at=device.created_at,
    )


def shipment_response(shipment: Shipment) -> ShipmentResponse:
    devices = list(shipment.devices)
    return ShipmentResponse(
        id=str(shipment.id),
        short_code=shipment.short_code,
        status=ShipmentStatus(shipment.status),
        sender_name=shipment.sender_name,
        sender_email=shipment.sender_email,
        location=LocationSummary(id=str(shipment.location.id), name=shipment.location.name),
        tracking_number=shipment.tracking_number,
        carrier=shipment.carrier,
        notes=shipment.notes,
        client_reference_id=shipment.client_reference_id,
        notify_emails=list(shipment.notify_emails or []),
        recipient_name=shipment.recipient_name,
        recipient_signature=shipment.recipient_signature,
        received_at=shipment.received_at,
        device_count=len(devices),
        checked_in_count=sum(1 for device in devices if device.is_checked_in),
        devices=[device_response(device) for device in devices],
        created_at=shipment.created_at,
        updated_at=shipment.updated_at,
    )


def schedule_creation_side_effects(background_tasks: BackgroundTasks, response: ShipmentResponse) -> None:
    background_tasks.add_task(lock_devices, [device.serial_number for device in response.devices])
    background_tasks.add_task(
        notify_shipment_event, session_scope, NotificationEvent.SHIPMENT_CREATED, response.id
    )


def record_audit(db, request: Request, *, actor: str, action: str, entity_id: str | None, metadata=None,
                 entity_type: str = "shipment") -> None:
    AuditService(db).record_event(
        AuditEventPayload(
            actor=actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            trace_id=getattr(request.state, "trace_id", "") or None,
            metadata=metadata,
        )
    )


@router.post(
    "/api/shipments",
    response_model=ShipmentResponse,
    status_code=201,
    responses=STANDARD_ERROR_RESPONSES,
)
def create_shipment(
    request: Request,
    payload: ShipmentCreateRequest,
    background_tasks: BackgroundTasks,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    shipment = ShipmentCreationService(db).create(
        payload,
        CreationContext(created_by_user_id=current_user.id, create_missing_location=True),
    )
    response = shipment_response(ShipmentAdminService(db).get(shipment.short_code))
    record_audit(
        db,
        request,
        actor=current_user.username,
        action="shipment.create",
        entity_id=response.id,
        metadata={"short_code": response.short_code, "devices": response.device_count},
    )
    schedule_creation_side_effects(background_tasks, response)
    return response


@router.get("/api/shipments", response_model=ShipmentListResponse)
def list_shipments(
    status: ShipmentStatus | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=15, ge=1),
    sort_by: str = Query(default="created_at", pattern="^(created_at|updated_at|sender_name|status)$"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    limit = min(limit, settings.SHIPMENTS_MAX_PAGE_SIZE)
    rows, total = ShipmentRepository(db).list_shipments(
        ShipmentQueryFilters(
            status=status.value if status else None,
            search=search.strip() if search and search.strip() else None,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=(page - 1) * limit,
        )
    )
    return ShipmentListResponse(
        rows=[shipment_response(row) for row in rows],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/api/shipments/{short_code}", response_model=ShipmentResponse, responses=STANDARD_ERROR_RESPONSES)
def get_shipment(short_code: str, db=Depends(get_db), current_user=Depends(require_admin)):
    return shipment_response(ShipmentAdminService(db).get(short_code))


@router.put("/api/shipments/{short_code}", response_model=ShipmentResponse, responses=STANDARD_ERROR_RESPONSES)
def update_shipment(
    request: Request,
    short_code: str,
    payload: ShipmentUpdateRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    shipment = ShipmentAdminService(db).edit(short_code, payload)
    response = shipment_response(shipment)
    record_audit(
        db,
        request,
        actor=current_user.username,
        action="shipment.update",
        entity_id=response.id,
        metadata={"short_code": response.short_code, "status": response.status.value,
                  "fields": sorted(payload.model_fields_set)},
    )
    return response


@router.delete("/api/shipments/{short_code}", status_code=204, responses=STANDARD_ERROR_RESPONSES)
def delete_shipment(request: Request, short_code: str, db=Depends(get_db), current_user=Depends(require_admin)):
    code = ShipmentAdminService(db).delete(short_code)
    record_audit(db, request, actor=current_user.username, action="shipment.delete", entity_id=None,
                 metadata={"short_code": code})
    return Response(status_code=204)


@router.post(
    "/api/shipments/{short_code}/verify",
    response_model=ShipmentResponse,
    responses=STANDARD_ERROR_RESPONSES,
)
def verify_shipment(
    request: Request,
    short_code: str,
    payload: VerifyRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    shipment = ShipmentAdminService(db).verify(short_code, payload.verified_serials)
    response = shipment_response(shipment)
    record_audit(
        db,
        request,
        actor=current_user.username,
        action="shipment.verify",
        entity_id=response.id,
        metadata={"short_code": response.short_code, "verified_serials": sorted(set(payload.verified_serials))},
    )
    return response


@router.post(
    "/api/shipments/{short_code}/checkin",
    response_model=CheckInResponse,
    responses=STANDARD_ERROR_RESPONSES,
)
def check_in_device(
    request: Request,
    short_code: str,
    payload: CheckInRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    result = ShipmentAdminService(db).check_in(short_code, payload.serial_number)
    record_audit(
        db,
        request,
        actor=current_user.username,
        action="device.checkin",
        entity_type="device",
        entity_id=result.serial_number,
        metadata={"short_code": short_code.strip().upper(), "result": result.status},
    )
    return CheckInResponse(
        status=result.status,
        serial_number=result.serial_number,
        checked_in_at=result.checked_in_at,
    )
