"""Shipment status state machine.

All entry points that change a shipment's status consult the single
transition table below, keyed by (actor, target status).
"""

from __future__ import annotations

from enum import Enum

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.metrics import metrics


class ShipmentStatus(str, Enum):
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    RECEIVED = "RECEIVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Actor(str, Enum):
    CREATE = "create"
    PUBLIC_RECEIVE = "public_receive"
    ADMIN_EDIT = "admin_edit"
    ADMIN_VERIFY = "admin_verify"


TERMINAL_STATES = frozenset({ShipmentStatus.COMPLETED, ShipmentStatus.CANCELLED})
NON_TERMINAL_STATES = frozenset(ShipmentStatus) - TERMINAL_STATES
RECEIVABLE_STATES = frozenset({ShipmentStatus.PENDING, ShipmentStatus.IN_TRANSIT, ShipmentStatus.DELIVERED})
# Recipient name, signature and receipt time may only be populated in these states.
# A cancelled shipment keeps the receipt it had.
RECIPIENT_STATES = frozenset({ShipmentStatus.RECEIVED, ShipmentStatus.COMPLETED, ShipmentStatus.CANCELLED})

_ALL_STATES = frozenset(ShipmentStatus)


def _build_transitions() -> dict[tuple[Actor, ShipmentStatus], frozenset]:
    table: dict[tuple[Actor, ShipmentStatus], frozenset] = {
        (Actor.CREATE, ShipmentStatus.PENDING): frozenset({None}),
        (Actor.PUBLIC_RECEIVE, ShipmentStatus.RECEIVED): RECEIVABLE_STATES,
        (Actor.ADMIN_VERIFY, ShipmentStatus.COMPLETED): frozenset({ShipmentStatus.RECEIVED}),
    }
    for target in ShipmentStatus:
        table[(Actor.ADMIN_EDIT, target)] = NON_TERMINAL_STATES
    # An edit that finalizes is still allowed from COMPLETED, never from CANCELLED.
    table[(Actor.ADMIN_EDIT, ShipmentStatus.COMPLETED)] = _ALL_STATES - {ShipmentStatus.CANCELLED}
    return table


TRANSITIONS = _build_transitions()


def parse_status(value: str | ShipmentStatus | None) -> ShipmentStatus | None:
    if value is None or isinstance(value, ShipmentStatus):
        return value
    return ShipmentStatus(value)


def allowed_sources(actor: Actor, target: ShipmentStatus) -> frozenset:
    return TRANSITIONS.get((actor, ShipmentStatus(target)), frozenset())


def can_transition(actor: Actor, current: str | ShipmentStatus | None, target: str | ShipmentStatus) -> bool:
    return parse_status(current) in allowed_sources(actor, ShipmentStatus(target))


def status_conflict(actor: Actor, current: str | ShipmentStatus | None, target: str | ShipmentStatus) -> AppError:
    current_status = parse_status(current)
    metrics.increment_status_conflict(actor.value)
    return AppError(
        ErrorCatalog.SHIPMENT_STATUS_CONFLICT,
        details={
            "message": f"Shipment status ({current_status.value if current_status else None}) "
            f"does not allow {actor.value} to {ShipmentStatus(target).value}",
            "current_status": current_status.value if current_status else None,
            "target_status": ShipmentStatus(target).value,
            "actor": actor.value,
        },
    )


def ensure_transition(actor: Actor, current: str | ShipmentStatus | None, target: str | ShipmentStatus) -> None:
    if not can_transition(actor, current, target):
        raise status_conflict(actor, current, target)


def source_values(actor: Actor, target: ShipmentStatus) -> list[str]:
    """Allowed source statuses as column values, for compare-and-set updates."""
    return sorted(state.value for state in allowed_sources(actor, target) if state is not None)
