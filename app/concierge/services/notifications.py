from __future__ import annotations

import html
import logging
from collections.abc import Iterable
from enum import Enum

from app.concierge.core.config import settings
from app.concierge.core.metrics import metrics
from app.concierge.db.models import Location, Shipment
from app.concierge.repos.settings import SettingsRepository
from app.concierge.repos.shipments import ShipmentRepository
from app.concierge.services.mailer import MailService

logger = logging.getLogger(__name__)

ADMIN_NOTIFY_EMAILS_KEY = "admin_notify_emails"


class NotificationEvent(str, Enum):
    SHIPMENT_CREATED = "shipment_created"
    SHIPMENT_RECEIVED = "shipment_received"


def _clean(addresses: Iterable[str | None] | None) -> set[str]:
    cleaned = set()
    for address in addresses or ():
        if not isinstance(address, str):
            continue
        value = address.strip()
        if value:
            cleaned.add(value)
    return cleaned


def parse_email_list(raw: str | Iterable[str] | None) -> list[str]:
    """Accept a comma separated string or a list; keep order, drop blanks."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    parsed: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        value = item.strip()
        if value and value not in parsed:
            parsed.append(value)
    return parsed


def parse_admin_emails(raw: str | None = None) -> list[str]:
    return parse_email_list(settings.ADMIN_NOTIFY_EMAILS if raw is None else raw)


def admin_notify_emails(db) -> tuple[list[str], str]:
    """Return the admin list and where it came from.

    A stored settings row wins, even when empty, over ADMIN_NOTIFY_EMAILS.
    """
    stored = SettingsRepository(db).get(ADMIN_NOTIFY_EMAILS_KEY)
    if stored is not None:
        return parse_email_list(stored.value), "settings"
    return parse_admin_emails(), "environment"


def recipients(
    event: NotificationEvent,
    shipment: Shipment,
    destination: Location | None,
    *,
    admin_emails: Iterable[str],
    requested_emails: Iterable[str] = (),
) -> set[str]:
    result = _clean(admin_emails)
    if destination is not None:
        result |= _clean(destination.recipient_emails)
    if event == NotificationEvent.SHIPMENT_CREATED:
        result |= _clean(shipment.notify_emails)
        result |= _clean(requested_emails)
    elif event == NotificationEvent.SHIPMENT_RECEIVED:
        result |= _clean([shipment.sender_email])
    return result


def _device_rows(shipment: Shipment) -> str:
    rows = []
    for device in shipment.devices:
        state = "checked in" if device.is_checked_in else "not checked in"
        extra = " (extra)" if device.is_extra_device else ""
        rows.append(
            f"<li>{html.escape(device.serial_number)}{extra}"
            f" {html.escape(device.model or '')} {html.escape(device.asset_tag or '')} - {state}</li>"
        )
    return "<ul>" + "".join(rows) + "</ul>"


def render_notification(event: NotificationEvent, shipment: Shipment, destination: Location | None) -> tuple[str, str]:
    location_name = html.escape(destination.name) if destination is not None else "-"
    shipment_url = f"{settings.APP_BASE_URL.rstrip('/')}/shipment/{shipment.short_code}"
    if event == NotificationEvent.SHIPMENT_CREATED:
        subject = f"New Shipment Created: {shipment.short_code}"
        body = (
            f"<p>Shipment <strong>{shipment.short_code}</strong> from {html.escape(shipment.sender_name)}"
            f" is on its way to {location_name}.</p>"
            f"{_device_rows(shipment)}"
            f'<p><a href="{shipment_url}">View shipment</a></p>'
        )
    else:
        subject = f"Shipment Received: {shipment.short_code}"
        received_at = shipment.received_at.isoformat() if shipment.received_at else "-"
        body = (
            f"<p>Shipment <strong>{shipment.short_code}</strong> was received at {location_name}"
            f" by {html.escape(shipment.recipient_name or '')} on {received_at}.</p>"
            f"{_device_rows(shipment)}"
        )
    return subject, body


class NotificationDispatcher:
    def __init__(self, db, mail: MailService | None = None):
        self.db = db
        self.mail = mail or MailService(db)

    def dispatch(
        self,
        event: NotificationEvent,
        shipment: Shipment,
        *,
        requested_emails: Iterable[str] = (),
    ) -> bool:
        destination = shipment.location
        addresses = recipients(
            event,
            shipment,
            destination,
            admin_emails=admin_notify_emails(self.db)[0],
            requested_emails=requested_emails,
        )
        if not addresses:
            logger.warning(
                "notification_no_recipients",
                extra={"event": event.value, "short_code": shipment.short_code},
            )
            return False
        subject, body = render_notification(event, shipment, destination)
        return self.mail.send(
            sorted(addresses),
            subject,
            body,
            email_type=event.value,
            shipment_id=shipment.id,
        )


def notify_shipment_event(session_factory, event: NotificationEvent, shipment_id, requested_emails=()) -> None:
    """Background-task entry point: one attempt, failures are logged only."""
    try:
        with session_factory() as db:
            shipment = ShipmentRepository(db).get_by_id(shipment_id)
            if shipment is None:
                logger.warning("notification_shipment_missing", extra={"shipment_id": str(shipment_id)})
                return
            NotificationDispatcher(db).dispatch(event, shipment, requested_emails=requested_emails)
    except Exception:
        metrics.increment_side_effect_failure("notification")
        logger.exception(
            "Failed to send shipment notification",
            extra={"event": event.value, "shipment_id": str(shipment_id)},
        )
