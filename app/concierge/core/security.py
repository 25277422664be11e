from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from app.concierge.core.config import settings

# Admin passwords and client API keys are both stored as bcrypt hashes.
secret_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

ADMIN_TOKEN_TYPE = "admin_access"


class TokenData(BaseModel):
    sub: str
    username: str
    role: str
    typ: str


def hash_secret(secret: str) -> str:
    return secret_context.hash(secret)


def verify_secret(secret: str, hashed: str) -> bool:
    return secret_context.verify(secret, hashed)


def create_user_access_token(user, expires_delta: Optional[timedelta] = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "typ": ADMIN_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> TokenData:
    """Decode and validate a dashboard bearer token.

    Raises ``JWTError`` for bad signatures, expiry or a foreign token type and
    pydantic's ``ValidationError`` when claims are missing.
    """
    token_data = TokenData(**jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]))
    if token_data.typ != ADMIN_TOKEN_TYPE:
        raise JWTError("unexpected token type")
    return token_data
