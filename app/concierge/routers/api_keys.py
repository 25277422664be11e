from fastapi import APIRouter, Depends, Request

from app.concierge.core.deps import require_admin
from app.concierge.db.models import ApiKey
from app.concierge.db.session import get_db
from app.concierge.repos.api_keys import ApiKeyRepository
from app.concierge.routers.shipments import record_audit
from app.concierge.schemas.api_keys import (
    ApiKeyCreatedResponse,
    ApiKeyCreateRequest,
    ApiKeyListResponse,
    ApiKeyResponse,
    ApiKeyUpdateRequest,
)
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.services.api_keys import ApiKeyService

router = APIRouter()


def _api_key_response(api_key: ApiKey) -> ApiKeyResponse:
    return ApiKeyResponse(
        id=str(api_key.id),
        description=api_key.description,
        is_active=api_key.is_active,
        created_at=api_key.created_at,
        last_used_at=api_key.last_used_at,
    )


@router.get("/api/admin/apikeys", response_model=ApiKeyListResponse)
def list_api_keys(db=Depends(get_db), current_user=Depends(require_admin)):
    return ApiKeyListResponse(rows=[_api_key_response(key) for key in ApiKeyRepository(db).list_all()])


@router.post(
    "/api/admin/apikeys",
    response_model=ApiKeyCreatedResponse,
    status_code=201,
    responses=STANDARD_ERROR_RESPONSES,
)
def create_api_key(
    request: Request,
    payload: ApiKeyCreateRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    issued = ApiKeyService(db).issue(payload.description)
    response = ApiKeyCreatedResponse(**_api_key_response(issued.record).model_dump(), api_key=issued.plaintext)
    record_audit(db, request, actor=current_user.username, action="api_key.create", entity_type="api_key",
                 entity_id=response.id, metadata={"description": response.description})
    return response


@router.patch("/api/admin/apikeys/{key_id}", response_model=ApiKeyResponse, responses=STANDARD_ERROR_RESPONSES)
def update_api_key(
    request: Request,
    key_id: str,
    payload: ApiKeyUpdateRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    response = _api_key_response(ApiKeyService(db).set_active(key_id, payload.is_active))
    record_audit(db, request, actor=current_user.username, action="api_key.update", entity_type="api_key",
                 entity_id=response.id, metadata={"is_active": payload.is_active})
    return response


@router.delete("/api/admin/apikeys/{key_id}", response_model=ApiKeyResponse, responses=STANDARD_ERROR_RESPONSES)
def revoke_api_key(request: Request, key_id: str, db=Depends(get_db), current_user=Depends(require_admin)):
    response = _api_key_response(ApiKeyService(db).revoke(key_id))
    record_audit(db, request, actor=current_user.username, action="api_key.revoke", entity_type="api_key",
                 entity_id=response.id)
    return response
