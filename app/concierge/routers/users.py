from fastapi import APIRouter, Depends, Request, Response

from app.concierge.core.deps import require_admin
from app.concierge.db.models import User
from app.concierge.db.session import get_db
from app.concierge.repos.users import UserRepository
from app.concierge.routers.shipments import record_audit
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.schemas.users import UserCreateRequest, UserItem, UserListResponse, UserUpdateRequest
from app.concierge.services.users import UserAdminService

router = APIRouter()


def _user_item(user: User) -> UserItem:
    return UserItem(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
    )


@router.get("/api/admin/users", response_model=UserListResponse)
def list_users(db=Depends(get_db), current_user=Depends(require_admin)):
    return UserListResponse(rows=[_user_item(user) for user in UserRepository(db).list_all()])


@router.post("/api/admin/users", response_model=UserItem, status_code=201, responses=STANDARD_ERROR_RESPONSES)
def create_user(request: Request, payload: UserCreateRequest, db=Depends(get_db), current_user=Depends(require_admin)):
    item = _user_item(UserAdminService(db).create(payload))
    record_audit(db, request, actor=current_user.username, action="user.create", entity_type="user",
                 entity_id=item.id, metadata={"username": item.username, "email": item.email})
    return item


@router.get("/api/admin/users/{user_id}", response_model=UserItem, responses=STANDARD_ERROR_RESPONSES)
def get_user(user_id: str, db=Depends(get_db), current_user=Depends(require_admin)):
    return _user_item(UserAdminService(db).get(user_id))


@router.put("/api/admin/users/{user_id}", response_model=UserItem, responses=STANDARD_ERROR_RESPONSES)
def update_user(
    request: Request,
    user_id: str,
    payload: UserUpdateRequest,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    item = _user_item(UserAdminService(db).edit(user_id, payload, actor=current_user))
    changed = sorted(payload.model_dump(exclude_unset=True, exclude_none=True))
    record_audit(db, request, actor=current_user.username, action="user.update", entity_type="user",
                 entity_id=item.id, metadata={"fields": changed})
    return item


@router.delete("/api/admin/users/{user_id}", status_code=204, responses=STANDARD_ERROR_RESPONSES)
def delete_user(request: Request, user_id: str, db=Depends(get_db), current_user=Depends(require_admin)):
    actor = current_user.username
    username = UserAdminService(db).delete(user_id, actor=current_user)
    record_audit(db, request, actor=actor, action="user.delete", entity_type="user",
                 entity_id=user_id, metadata={"username": username})
    return Response(status_code=204)
