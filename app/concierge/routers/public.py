from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.concierge.db.models import Shipment
from app.concierge.db.session import get_db, session_scope
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.schemas.public import PublicDevice, PublicShipmentResponse, ReceiveRequest, ReceiveResponse
from app.concierge.services.audit import AuditEventPayload, AuditService
from app.concierge.services.device_management import unlock_devices
from app.concierge.services.lifecycle import Actor, ShipmentStatus, can_transition
from app.concierge.services.notifications import NotificationEvent, notify_shipment_event
from app.concierge.services.receiving import ReceivingService
from app.concierge.services.shipment_admin import ShipmentAdminService

router = APIRouter()


def public_shipment_response(shipment: Shipment) -> PublicShipmentResponse:
    """Redacted view for whoever holds the printed code: no addresses, signature or recipient."""
    return PublicShipmentResponse(
        short_code=shipment.short_code,
        status=ShipmentStatus(shipment.status),
        sender_name=shipment.sender_name,
        location_name=shipment.location.name,
        tracking_number=shipment.tracking_number,
        carrier=shipment.carrier,
        can_receive=can_transition(Actor.PUBLIC_RECEIVE, shipment.status, ShipmentStatus.RECEIVED),
        devices=[
            PublicDevice(
                serial_number=device.serial_number,
                asset_tag=device.asset_tag,
                model=device.model,
                is_checked_in=device.is_checked_in,
                is_extra_device=device.is_extra_device,
            )
            for device in shipment.devices
        ],
        created_at=shipment.created_at,
    )


@router.get(
    "/api/public/shipments/{short_code}",
    response_model=PublicShipmentResponse,
    responses=STANDARD_ERROR_RESPONSES,
)
def get_public_shipment(short_code: str, db=Depends(get_db)):
    return public_shipment_response(ShipmentAdminService(db).get(short_code))


@router.put(
    "/api/public/shipments/{short_code}",
    response_model=ReceiveResponse,
    responses=STANDARD_ERROR_RESPONSES,
)
def receive_shipment(
    request: Request,
    short_code: str,
    payload: ReceiveRequest,
    background_tasks: BackgroundTasks,
    db=Depends(get_db),
):
    outcome = ReceivingService(db).receive(short_code, payload)
    AuditService(db).record_event(
        AuditEventPayload(
            actor=payload.recipient_name,
            action="shipment.receive",
            entity_type="shipment",
            entity_id=str(outcome.shipment_id),
            trace_id=getattr(request.state, "trace_id", "") or None,
            metadata={
                "short_code": outcome.short_code,
                "received_serials": outcome.received_serials,
                "extra_serials": outcome.extra_serials,
            },
        )
    )
    background_tasks.add_task(unlock_devices, outcome.received_serials)
    background_tasks.add_task(
        notify_shipment_event, session_scope, NotificationEvent.SHIPMENT_RECEIVED, outcome.shipment_id
    )
    return ReceiveResponse(
        status=outcome.status,
        short_code=outcome.short_code,
        received_at=outcome.received_at,
        checked_in_serials=outcome.received_serials,
        extra_serials=outcome.extra_serials,
    )
