from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.security import TokenData, decode_token, oauth2_scheme
from app.concierge.db.session import get_db
from app.concierge.repos.users import UserRepository
from app.concierge.services.api_keys import ApiKeyService


API_KEY_HEADER = "X-API-Key"


def get_current_token_data(request: Request, token: str | None = Depends(oauth2_scheme)) -> TokenData:
    if not token:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    try:
        token_data = decode_token(token)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc
    request.state.user_id = token_data.sub
    return token_data


def get_current_user(token_data: TokenData = Depends(get_current_token_data), db=Depends(get_db)):
    user = UserRepository(db).get_by_id(token_data.sub)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return user


def require_admin(user=Depends(get_current_user)):
    if not user.is_active:
        raise AppError(ErrorCatalog.USER_INACTIVE)
    return user


def require_api_key(request: Request, db=Depends(get_db)):
    api_key = ApiKeyService(db).authenticate(request.headers.get(API_KEY_HEADER))
    request.state.api_key_id = str(api_key.id)
    return api_key


__all__ = [
    "API_KEY_HEADER",
    "get_current_token_data",
    "get_current_user",
    "require_admin",
    "require_api_key",
]
