from __future__ import annotations

import logging

import requests

from app.concierge.core.config import settings
from app.concierge.db.models import EmailLog
from app.concierge.repos.email_logs import EmailLogRepository

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MailService:
    """Sends mail through a Resend-compatible HTTP API and logs what was sent."""

    def __init__(self, db, http=None):
        self.repo = EmailLogRepository(db)
        self._http = http or requests
        self._api_url = settings.MAIL_API_URL
        self._api_key = settings.MAIL_API_KEY
        self._from = settings.MAIL_FROM
        self._timeout = settings.MAIL_TIMEOUT_SEC

    @property
    def enabled(self) -> bool:
        return bool(self._api_key and self._from)

    def send(self, to: list[str], subject: str, html_body: str, *, email_type: str, shipment_id=None) -> bool:
        if not self.enabled:
            logger.warning("mail_disabled", extra={"email_type": email_type, "subject": subject})
            return False
        try:
            response = self._http.post(
                self._api_url,
                json={"from": self._from, "to": to, "subject": subject, "html": html_body},
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise MailDeliveryError(f"mail transport failed: {exc}") from exc
        if response.status_code >= 400:
            raise MailDeliveryError(
                f"mail api rejected message: {response.status_code} {response.text}",
                status_code=response.status_code,
            )
        self.repo.add_all(
            [
                EmailLog(
                    shipment_id=shipment_id,
                    email_type=email_type,
                    recipient=address,
                    subject=subject,
                    html_content=html_body,
                )
                for address in to
            ]
        )
        logger.info("mail_sent", extra={"email_type": email_type, "recipients": len(to)})
        return True
