from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from app.concierge.core.deps import require_api_key
from app.concierge.core.error_catalog import ErrorCatalog
from app.concierge.core.metrics import metrics
from app.concierge.db.session import get_db
from app.concierge.routers.shipments import record_audit, schedule_creation_side_effects, shipment_response
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.schemas.shipments import ShipmentCreateRequest, ShipmentResponse
from app.concierge.services.idempotency import (
    IDEMPOTENCY_RESULT_HEADER,
    IdempotencyService,
    extract_idempotency_key,
)
from app.concierge.services.shipment_admin import ShipmentAdminService
from app.concierge.services.shipment_creation import CreationContext, ShipmentCreationService

router = APIRouter()


@router.post(
    "/api/client/shipments",
    response_model=ShipmentResponse,
    status_code=201,
    responses=STANDARD_ERROR_RESPONSES,
)
def create_client_shipment(
    request: Request,
    payload: ShipmentCreateRequest,
    background_tasks: BackgroundTasks,
    db=Depends(get_db),
    api_key=Depends(require_api_key),
):
    idempotency_key = extract_idempotency_key(request.headers)
    if idempotency_key:
        context, replay = IdempotencyService(db).start(
            scope=str(api_key.id),
            endpoint=str(request.url.path),
            method=request.method,
            idempotency_key=idempotency_key,
            request_hash=IdempotencyService.fingerprint(payload.model_dump(mode="json")),
        )
        if replay:
            metrics.increment_idempotency_replay()
            return JSONResponse(
                status_code=replay.status_code,
                content=replay.response_body,
                headers={IDEMPOTENCY_RESULT_HEADER: ErrorCatalog.IDEMPOTENCY_REPLAY.code},
            )
        request.state.idempotency = context

    shipment = ShipmentCreationService(db).create(
        payload,
        CreationContext(api_key_id=api_key.id, create_missing_location=False),
    )
    response = shipment_response(ShipmentAdminService(db).get(shipment.short_code))

    context = getattr(request.state, "idempotency", None)
    if context is not None:
        context.record_success(status_code=201, response_body=response.model_dump(mode="json"))

    record_audit(
        db,
        request,
        actor=f"api_key:{api_key.id}",
        action="shipment.create",
        entity_id=response.id,
        metadata={"short_code": response.short_code, "client_reference_id": response.client_reference_id},
    )
    schedule_creation_side_effects(background_tasks, response)
    return response


@router.get(
    "/api/client/shipments/{short_code}",
    response_model=ShipmentResponse,
    responses=STANDARD_ERROR_RESPONSES,
)
def get_client_shipment(short_code: str, db=Depends(get_db), api_key=Depends(require_api_key)):
    return shipment_response(ShipmentAdminService(db).get(short_code))
