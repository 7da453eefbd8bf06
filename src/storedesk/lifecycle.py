"""Order status state machine.

    pending -> confirmed -> processing -> shipped -> delivered

Any non-terminal order can also be cancelled. delivered and cancelled are
terminal. Forward moves may skip stages; moving backward needs an explicit
reopen and never leaves a terminal state.
"""

from dataclasses import replace

from .errors import InvalidTransitionError, ValidationError
from .models import ORDER_STATUSES, PAYMENT_STATUSES, Order, _utc_now

FORWARD_FLOW = ("pending", "confirmed", "processing", "shipped", "delivered")
TERMINAL_STATUSES = ("delivered", "cancelled")


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def allowed_transitions(status: str, reopen: bool = False) -> list[str]:
    """List the statuses an order in `status` may move to."""
    if status not in ORDER_STATUSES:
        raise ValidationError("status", f"unknown order status '{status}'")
    if is_terminal(status):
        return []
    position = FORWARD_FLOW.index(status)
    allowed = list(FORWARD_FLOW[position + 1:]) + ["cancelled"]
    if reopen:
        allowed = list(FORWARD_FLOW[:position]) + allowed
    return allowed


def check_transition(current: str, requested: str, reopen: bool = False) -> None:
    """
    Validate a status change.

    Setting the current status again is allowed (it only updates notes or
    tracking details).

    Raises:
        ValidationError: If either status is unknown.
        InvalidTransitionError: If the move is not allowed.
    """
    if requested not in ORDER_STATUSES:
        raise ValidationError("status", f"unknown order status '{requested}'")
    if current not in ORDER_STATUSES:
        raise ValidationError("status", f"unknown order status '{current}'")
    if requested == current:
        return
    if is_terminal(current):
        raise InvalidTransitionError(current, requested, f"'{current}' is final")
    if requested in allowed_transitions(current, reopen=reopen):
        return
    if requested in FORWARD_FLOW[: FORWARD_FLOW.index(current)]:
        raise InvalidTransitionError(current, requested, "moving backward requires reopen")
    raise InvalidTransitionError(current, requested)


def transition(
    order: Order,
    new_status: str,
    notes: str | None = None,
    tracking_number: str | None = None,
    reopen: bool = False,
) -> Order:
    """
    Return a copy of the order moved to new_status.

    Delivering an order marks its payment as paid, since cash-on-delivery is
    collected at the door.
    """
    check_transition(order.status, new_status, reopen=reopen)

    changes: dict = {"status": new_status, "updated_at": _utc_now()}
    if notes is not None:
        changes["notes"] = notes
    if tracking_number:
        changes["tracking_number"] = tracking_number
    if new_status == "delivered" and order.status != "delivered":
        changes["payment_status"] = "paid"
    return replace(order, **changes)


def update_payment_status(order: Order, payment_status: str) -> Order:
    """Return a copy of the order with a new payment status."""
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(
            "paymentStatus", f"expected one of {', '.join(PAYMENT_STATUSES)}"
        )
    return replace(order, payment_status=payment_status, updated_at=_utc_now())
