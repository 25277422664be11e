from typing import Literal

from pydantic import BaseModel, EmailStr, field_validator


class AdminEmailSettingsUpdate(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {"emails": ["ops@example.com", "it@example.com"]},
                {"emails": "ops@example.com, it@example.com"},
            ]
        }
    }

    emails: list[EmailStr]

    @field_validator("emails", mode="before")
    @classmethod
    def _split(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, list):
            return [item.strip() if isinstance(item, str) else item for item in value if item != ""]
        return value


class AdminEmailSettingsResponse(BaseModel):
    emails: list[str]
    source: Literal["settings", "environment"]
