from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserCreateRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {"username": "ops-lead", "email": "ops-lead@example.com", "password": "change-me-please"}
        }
    }

    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=255)

    @field_validator("username")
    @classmethod
    def _strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserUpdateRequest(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=150)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=255)
    is_active: bool | None = None

    @field_validator("username")
    @classmethod
    def _strip_username(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserItem(BaseModel):
    id: str
    username: str
    email: str
    role: str
    is_active: bool
    created_at: datetime


class UserListResponse(BaseModel):
    rows: list[UserItem]
