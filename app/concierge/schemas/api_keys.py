from datetime import datetime

from pydantic import BaseModel, Field


class ApiKeyCreateRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)


class ApiKeyUpdateRequest(BaseModel):
    is_active: bool


class ApiKeyResponse(BaseModel):
    id: str
    description: str | None
    is_active: bool
    created_at: datetime
    last_used_at: datetime | None


class ApiKeyCreatedResponse(ApiKeyResponse):
    api_key: str = Field(..., description="Plaintext key; only returned once.")


class ApiKeyListResponse(BaseModel):
    rows: list[ApiKeyResponse]
