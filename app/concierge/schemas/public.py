from __future__ import annotations

import base64
import binascii
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.concierge.services.lifecycle import ShipmentStatus

SIGNATURE_PREFIX = "data:image/png;base64,"


class ExtraDevice(BaseModel):
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


class ReceiveRequest(BaseModel):
    recipient_name: str = Field(..., min_length=1, max_length=255)
    signature: str = Field(..., description="PNG signature as a data URL.")
    received_serials: list[str] = Field(default_factory=list)
    extra_devices: list[ExtraDevice] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "example": {
                "recipient_name": "Jane Doe",
                "signature": "data:image/png;base64,iVBORw0KGgo=",
                "received_serials": ["C02XK1ZZJG5H"],
                "extra_devices": [{"serial_number": "F4GXK9ZZQ1", "model": "Magic Keyboard"}],
            }
        }
    }

    @field_validator("recipient_name")
    @classmethod
    def _trim_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("recipient_name must not be blank")
        return value

    @field_validator("signature")
    @classmethod
    def _png_data_url(cls, value: str) -> str:
        if not value.startswith(SIGNATURE_PREFIX):
            raise ValueError(f"signature must start with {SIGNATURE_PREFIX}")
        data = value[len(SIGNATURE_PREFIX):]
        if not data:
            raise ValueError("signature image data is empty")
        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("signature image data is not valid base64") from exc
        return value

    @field_validator("received_serials")
    @classmethod
    def _dedupe_serials(cls, values: list[str]) -> list[str]:
        return sorted({value.strip() for value in values if value.strip()})


class ReceiveResponse(BaseModel):
    status: ShipmentStatus
    short_code: str
    received_at: datetime
    checked_in_serials: list[str]
    extra_serials: list[str]


class PublicDevice(BaseModel):
    serial_number: str
    asset_tag: str | None
    model: str | None
    is_checked_in: bool
    is_extra_device: bool


class PublicShipmentResponse(BaseModel):
    short_code: str
    status: ShipmentStatus
    sender_name: str
    location_name: str
    tracking_number: str | None
    carrier: str | None
    can_receive: bool
    devices: list[PublicDevice]
    created_at: datetime
