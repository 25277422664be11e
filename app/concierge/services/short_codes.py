from __future__ import annotations

import logging
import re
import secrets
import string
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError

from app.concierge.core.config import settings
from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.metrics import metrics
from app.concierge.db.models import Shipment

logger = logging.getLogger(__name__)

SHORT_CODE_ALPHABET = string.ascii_uppercase
SHORT_CODE_PATTERN = re.compile(r"^[A-Z]{6}$")
_SHORT_CODE_CONSTRAINT_MARKERS = ("uq_shipments_short_code", "shipments.short_code")


def generate_short_code(length: int = 6) -> str:
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))


def normalize_short_code(value: str | None) -> str:
    """Upper-case a short code taken from a URL and reject anything malformed."""
    normalized = (value or "").strip().upper()
    if not SHORT_CODE_PATTERN.match(normalized):
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "Invalid shipment code format", "short_code": value},
        )
    return normalized


def is_short_code_collision(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", None) or exc)
    return any(marker in message for marker in _SHORT_CODE_CONSTRAINT_MARKERS)


class ShortCodeAllocator:
    """Optimistic short-code allocation against the store's unique constraint.

    ``build`` stages a new Shipment (and anything that must be created with
    it) on the session for a candidate code. The allocator commits; a
    violation of the short-code constraint rolls the attempt back and draws a
    new candidate, any other failure rolls back and propagates.
    """

    def __init__(
        self,
        db,
        *,
        max_attempts: int | None = None,
        length: int | None = None,
        generator: Callable[[int], str] = generate_short_code,
    ):
        self.db = db
        self.max_attempts = max_attempts or settings.SHORT_CODE_MAX_ATTEMPTS
        self.length = length or settings.SHORT_CODE_LENGTH
        self.generator = generator

    def allocate(self, build: Callable[[str], Shipment]) -> Shipment:
        for attempt in range(1, self.max_attempts + 1):
            code = self.generator(self.length)
            shipment = build(code)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                if not is_short_code_collision(exc):
                    raise
                metrics.increment_short_code_collision()
                logger.warning(
                    "short_code_collision",
                    extra={"short_code": code, "attempt": attempt, "max_attempts": self.max_attempts},
                )
                continue
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(shipment)
            return shipment

        logger.error("short_code_exhausted", extra={"max_attempts": self.max_attempts})
        raise AppError(
            ErrorCatalog.SHORT_CODE_EXHAUSTED,
            details={"message": "Failed to generate a unique shipment code", "attempts": self.max_attempts},
        )
