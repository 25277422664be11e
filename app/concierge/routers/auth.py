from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Request

from app.concierge.core.deps import require_admin
from app.concierge.db.session import get_db
from app.concierge.schemas.auth import LoginRequest, OAuth2TokenResponse, TokenResponse, UserResponse
from app.concierge.services.audit import AuditEventPayload, AuditService
from app.concierge.services.auth import AuthService

router = APIRouter()


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login (JSON)",
    description="Login for dashboard users using email or username_or_email.",
)
def login(request: Request, payload: LoginRequest, db=Depends(get_db)):
    identifier = payload.email or payload.username_or_email
    trace_id = getattr(request.state, "trace_id", "")
    user, token = AuthService(db).login(identifier, payload.password)
    AuditService(db).record_event(
        AuditEventPayload(
            actor=user.username,
            action="auth.login",
            entity_type="user",
            entity_id=str(user.id),
            trace_id=trace_id or None,
        )
    )
    return TokenResponse(access_token=token, trace_id=trace_id)


@router.post(
    "/token",
    response_model=OAuth2TokenResponse,
    summary="OAuth2 Token (Swagger/Auth)",
    description="OAuth2 password flow endpoint for the Swagger Authorize button.",
)
async def oauth2_token(request: Request, db=Depends(get_db)):
    form_data = parse_qs((await request.body()).decode())
    username = (form_data.get("username") or [""])[0]
    password = (form_data.get("password") or [""])[0]
    _, token = AuthService(db).login(username, password)
    return OAuth2TokenResponse(access_token=token)


@router.get("/me", response_model=UserResponse)
def me(request: Request, user=Depends(require_admin)):
    return UserResponse(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        trace_id=getattr(request.state, "trace_id", ""),
    )
