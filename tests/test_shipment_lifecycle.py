import pytest

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.services.lifecycle import (
    Actor,
    ShipmentStatus,
    allowed_sources,
    can_transition,
    ensure_transition,
    source_values,
)

S = ShipmentStatus


def test_creation_only_from_no_prior_state():
    assert can_transition(Actor.CREATE, None, S.PENDING)
    assert not can_transition(Actor.CREATE, S.PENDING, S.PENDING)
    assert not can_transition(Actor.CREATE, None, S.RECEIVED)


@pytest.mark.parametrize("current", list(ShipmentStatus))
def test_public_receive_only_before_receipt(current):
    expected = current in {S.PENDING, S.IN_TRANSIT, S.DELIVERED}
    assert can_transition(Actor.PUBLIC_RECEIVE, current, S.RECEIVED) is expected


@pytest.mark.parametrize("target", [status for status in ShipmentStatus if status != S.RECEIVED])
def test_public_receive_has_a_single_target(target):
    assert not can_transition(Actor.PUBLIC_RECEIVE, S.PENDING, target)


@pytest.mark.parametrize("current", list(ShipmentStatus))
@pytest.mark.parametrize("target", [status for status in ShipmentStatus if status != S.COMPLETED])
def test_admin_edit_refused_on_terminal_states(current, target):
    expected = current not in {S.COMPLETED, S.CANCELLED}
    assert can_transition(Actor.ADMIN_EDIT, current, target) is expected


@pytest.mark.parametrize("current", list(ShipmentStatus))
def test_admin_edit_to_completed_allowed_unless_cancelled(current):
    assert can_transition(Actor.ADMIN_EDIT, current, S.COMPLETED) is (current != S.CANCELLED)


@pytest.mark.parametrize("current", list(ShipmentStatus))
def test_admin_verify_only_from_received(current):
    assert can_transition(Actor.ADMIN_VERIFY, current, S.COMPLETED) is (current == S.RECEIVED)


def test_unknown_pair_is_a_conflict():
    assert allowed_sources(Actor.ADMIN_VERIFY, S.CANCELLED) == frozenset()
    with pytest.raises(AppError) as exc_info:
        ensure_transition(Actor.ADMIN_VERIFY, S.RECEIVED, S.CANCELLED)
    assert exc_info.value.error == ErrorCatalog.SHIPMENT_STATUS_CONFLICT


def test_conflict_names_current_status():
    with pytest.raises(AppError) as exc_info:
        ensure_transition(Actor.PUBLIC_RECEIVE, "RECEIVED", S.RECEIVED)
    details = exc_info.value.details
    assert details["current_status"] == "RECEIVED"
    assert details["target_status"] == "RECEIVED"
    assert details["actor"] == "public_receive"


def test_source_values_are_plain_strings():
    assert source_values(Actor.PUBLIC_RECEIVE, S.RECEIVED) == ["DELIVERED", "IN_TRANSIT", "PENDING"]
    assert source_values(Actor.CREATE, S.PENDING) == []
