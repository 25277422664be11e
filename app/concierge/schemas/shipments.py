from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.concierge.services.lifecycle import ShipmentStatus


_SHIPMENT_CREATE_EXAMPLE = {
    "sender_name": "IT Operations",
    "sender_email": "it-ops@example.com",
    "destination": "Berlin Office",
    "tracking_number": "1Z999AA10123456784",
    "carrier": "UPS",
    "notes": "Replacement laptops for the sales team",
    "notify_emails": ["office-berlin@example.com"],
    "devices": [
        {"serial_number": "C02XK1ZZJG5H", "asset_tag": "IT-1001", "model": "MacBook Pro 14"},
        {"serial_number": "C02XK2AAJG5H", "asset_tag": "IT-1002", "model": "MacBook Pro 14"},
    ],
}


class DeviceCreate(BaseModel):
    serial_number: str = Field(..., min_length=1, max_length=255)
    asset_tag: str | None = Field(default=None, max_length=255)
    model: str | None = Field(default=None, max_length=255)

    @field_validator("serial_number")
    @classmethod
    def _strip_serial(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("serial_number must not be blank")
        return value


class ShipmentCreateRequest(BaseModel):
    sender_name: str = Field(..., min_length=1, max_length=255)
    sender_email: EmailStr
    destination: str = Field(..., min_length=1, description="Location id or name; unknown names are created.")
    tracking_number: str | None = Field(default=None, max_length=255)
    carrier: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    client_reference_id: str | None = Field(default=None, max_length=255)
    notify_emails: list[str] | str | None = Field(
        default=None, description="Extra addresses to notify, as a list or a comma separated string."
    )
    devices: list[DeviceCreate] = Field(..., min_length=1)

    model_config = {"json_schema_extra": {"example": _SHIPMENT_CREATE_EXAMPLE}}

    @field_validator("sender_name", "destination")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("devices")
    @classmethod
    def _unique_serials(cls, devices: list[DeviceCreate]) -> list[DeviceCreate]:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for device in devices:
            if device.serial_number in seen:
                duplicates.add(device.serial_number)
            seen.add(device.serial_number)
        if duplicates:
            duplicates = sorted(duplicates)
            raise ValueError(f"duplicate serial numbers in manifest: {', '.join(duplicates)}")
        return devices


class ShipmentUpdateRequest(BaseModel):
    sender_name: str | None = Field(default=None, min_length=1, max_length=255)
    sender_email: EmailStr | None = None
    status: ShipmentStatus | None = None
    tracking_number: str | None = Field(default=None, max_length=255)
    carrier: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    checked_serials: list[str] = Field(
        default_factory=list, description="Serials to check in when the edit completes the shipment."
    )

    @field_validator("sender_name")
    @classmethod
    def _not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class VerifyRequest(BaseModel):
    verified_serials: list[str] = Field(..., min_length=1)


class CheckInRequest(BaseModel):
    serial_number: str = Field(..., min_length=1, max_length=255)


class DeviceResponse(BaseModel):
    id: str
    serial_number: str
    asset_tag: str | None
    model: str | None
    is_checked_in: bool
    checked_in_at: datetime | None
    is_extra_device: bool
    created_at: datetime


class LocationSummary(BaseModel):
    id: str
    name: str


class ShipmentResponse(BaseModel):
    id: str
    short_code: str
    status: ShipmentStatus
    sender_name: str
    sender_email: str
    location: LocationSummary
    tracking_number: str | None
    carrier: str | None
    notes: str | None
    client_reference_id: str | None
    notify_emails: list[str]
    recipient_name: str | None
    recipient_signature: str | None
    received_at: datetime | None
    device_count: int
    checked_in_count: int
    devices: list[DeviceResponse]
    created_at: datetime
    updated_at: datetime


class ShipmentListResponse(BaseModel):
    rows: list[ShipmentResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class CheckInResponse(BaseModel):
    status: Literal["checked_in", "already_checked_in"]
    serial_number: str
    checked_in_at: datetime | None
