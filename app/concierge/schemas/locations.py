from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator


class LocationCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    recipient_emails: list[EmailStr] = Field(default_factory=list)


class LocationRecipientsUpdate(BaseModel):
    """Exactly one of the three operations per request."""

    recipient_emails: list[EmailStr] | None = None
    add_email: EmailStr | None = None
    remove_email: EmailStr | None = None

    @model_validator(mode="after")
    def _exactly_one_operation(self):
        provided = [
            name
            for name in ("recipient_emails", "add_email", "remove_email")
            if getattr(self, name) is not None
        ]
        if len(provided) != 1:
            raise ValueError("provide exactly one of recipient_emails, add_email or remove_email")
        return self


class LocationResponse(BaseModel):
    id: str
    name: str
    recipient_emails: list[str]
    shipment_count: int = 0
    last_shipment_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LocationListResponse(BaseModel):
    rows: list[LocationResponse]
