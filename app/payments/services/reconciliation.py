"""
Reconciliation policy shared by the poll path and the webhook path.

Two decisions live here and nowhere else:

1. How a raw vendor status string maps onto PaymentStatus. Only an explicit
   "SUCCESS" or "FAILED" produces a terminal status; anything else is
   pending. Both entry paths call the same function so the ledger cannot
   disagree with itself depending on which channel reported first.

2. Whether an incoming observation creates a ledger entry or updates an
   existing one, and which status the entry ends up with. A terminal status
   is never replaced by a non-terminal one ("last writer wins, except never
   regress terminal").

Usage:
    from payments.services.reconciliation import decide, map_vendor_status

    status = map_vendor_status(vendor_payload.get("status"))
    decision = decide(existing_entry, status)
    if decision.conflict:
        logger.warning("Dropped terminal regression")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from payments.state_machines import TERMINAL_STATUSES, PaymentStatus

if TYPE_CHECKING:
    from payments.models import OrderStatus


# Vendor status strings with an explicit meaning; everything else is pending
VENDOR_STATUS_MAP = {
    "SUCCESS": PaymentStatus.COMPLETED,
    "FAILED": PaymentStatus.FAILED,
}


class MergeAction(str, Enum):
    """What the ledger should do with an observation."""

    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class MergeDecision:
    """
    Outcome of applying the policy to one observation.

    Attributes:
        action: CREATE a new entry or UPDATE the matched one
        status: Status the entry must carry after the merge
        conflict: True when the incoming status was dropped because it
            would have regressed a terminal status
    """

    action: MergeAction
    status: str
    conflict: bool = False


def map_vendor_status(raw_status: str | None) -> str:
    """
    Map a vendor/webhook status string onto PaymentStatus.

    Matching is case-insensitive and ignores surrounding whitespace.
    Unknown, empty and None inputs are PENDING: a terminal outcome is never
    inferred without an explicit signal.

    Example:
        map_vendor_status("SUCCESS")   # "completed"
        map_vendor_status("failed")    # "failed"
        map_vendor_status("USER_DROPPED")  # "pending"
    """
    if not raw_status:
        return PaymentStatus.PENDING
    return VENDOR_STATUS_MAP.get(str(raw_status).strip().upper(), PaymentStatus.PENDING)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def decide(existing: OrderStatus | None, incoming_status: str) -> MergeDecision:
    """
    Decide how an observation with ``incoming_status`` is merged.

    Args:
        existing: Ledger entry matched by transaction_id (or the order's
            placeholder), None when nothing matched
        incoming_status: Already-mapped PaymentStatus value

    Returns:
        MergeDecision; applying the same decision twice is a no-op
    """
    if existing is None:
        return MergeDecision(action=MergeAction.CREATE, status=incoming_status)

    if is_terminal(existing.status) and not is_terminal(incoming_status):
        return MergeDecision(
            action=MergeAction.UPDATE,
            status=existing.status,
            conflict=True,
        )

    return MergeDecision(action=MergeAction.UPDATE, status=incoming_status)
