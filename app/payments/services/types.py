"""
Type definitions passed between the reconciliation services.

StatusObservation is the one input shape the status ledger accepts; the
poll path and the webhook path each build one from their own payloads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

# Ledger fields an observation may set; None means "not reported"
OBSERVATION_FIELDS = (
    "order_amount",
    "transaction_amount",
    "payment_mode",
    "payment_details",
    "bank_reference",
    "payment_message",
    "error_message",
    "gateway",
    "transaction_id",
    "payment_time",
)


@dataclass(frozen=True)
class StatusObservation:
    """
    One observation of an order's payment state.

    ``status`` is already mapped onto PaymentStatus (see
    payments.services.reconciliation.map_vendor_status).
    """

    status: str
    order_amount: Decimal | None = None
    transaction_amount: Decimal | None = None
    payment_mode: str | None = None
    payment_details: str | None = None
    bank_reference: str | None = None
    payment_message: str | None = None
    error_message: str | None = None
    gateway: str | None = None
    transaction_id: str | None = None
    payment_time: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def reported_fields(self) -> dict[str, Any]:
        """Ledger fields the observation actually carries."""
        values = asdict(self)
        return {
            name: values[name]
            for name in OBSERVATION_FIELDS
            if values[name] is not None and values[name] != ""
        }


def parse_amount(value: Any) -> Decimal | None:
    """
    Coerce a vendor amount to a two-place Decimal.

    Returns None when the value is missing. Raises ValueError when it is
    not a finite, non-negative number.
    """
    if value in (None, ""):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid amount: {value!r}")
    return amount.quantize(Decimal("0.01"))
