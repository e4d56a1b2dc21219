"""
Status ledger: merge primitive and queries over OrderStatus.

Every status observation for an order, whether it comes from a client poll,
a vendor webhook or order creation, goes through ``upsert_status``. The
merge rule is idempotent and order-independent:

    - An observation carrying a transaction_id updates the entry with that
      transaction_id. If none exists, it takes over the order's
      transaction-less placeholder entry, or is appended when there is none.
    - An observation without a transaction_id amends the transaction-less
      placeholder entry, or is appended once the placeholder has been
      superseded. It never writes into an entry carrying a transaction_id;
      a non-terminal one is dropped when the order's latest entry is
      terminal.
    - Only reported fields are written; a terminal status is never replaced
      by a non-terminal one (the drop is logged as a ReconciliationConflict).

Usage:
    from payments.services.status_ledger import StatusLedger

    outcome = StatusLedger.upsert_status(order.id, observation)
    latest = StatusLedger.find_latest(order.id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import IntegrityError
from django.db.models import F, OuterRef, Subquery
from django.db.models.functions import Coalesce

from core.services import BaseService
from payments.exceptions import ReconciliationConflict
from payments.models import OrderStatus
from payments.services.order_store import OrderStore
from payments.services.reconciliation import MergeAction, decide, is_terminal

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from django.db.models import QuerySet

    from payments.services.types import StatusObservation


logger = logging.getLogger(__name__)


class UpsertAction:
    CREATED = "created"
    UPDATED = "updated"
    SUPERSEDED = "superseded"
    IGNORED = "ignored"


@dataclass(frozen=True)
class UpsertOutcome:
    """
    Result of one upsert.

    Attributes:
        entry: Ledger entry after the merge
        action: created, updated, superseded (placeholder taken over) or
            ignored (regression dropped without a write)
        conflict: True when a terminal regression was dropped
    """

    entry: OrderStatus
    action: str
    conflict: bool = False


def _latest_ordering():
    """(payment_time or created_at) desc, then created_at desc."""
    return (
        Coalesce(F("payment_time"), F("created_at")).desc(),
        F("created_at").desc(),
        F("id").desc(),
    )


class StatusLedger(BaseService):
    """
    Explicit queries and the merge primitive for OrderStatus.

    Orders have no reverse relation to their entries; everything that needs
    history comes through here.
    """

    @classmethod
    def upsert_status(
        cls, order_id: UUID | str, observation: StatusObservation
    ) -> UpsertOutcome:
        """
        Merge one observation into the order's ledger.

        The write is a single atomic block. A unique-constraint race with a
        concurrent insert of the same transaction_id is retried once, and
        the retry then finds and updates the winner's row.

        Side effects:
            Order.status cache is updated with the resulting entry status
            (best effort).
        """
        try:
            outcome = cls._apply(order_id, observation)
        except IntegrityError:
            logger.info(
                "Concurrent ledger insert detected, retrying as update",
                extra={
                    "order_id": str(order_id),
                    "transaction_id": observation.transaction_id,
                },
            )
            outcome = cls._apply(order_id, observation)

        if outcome.conflict:
            conflict = ReconciliationConflict(
                "Ignored status regression from terminal state",
                details={
                    "order_id": str(order_id),
                    "entry_id": outcome.entry.pk,
                    "transaction_id": outcome.entry.transaction_id,
                    "kept_status": outcome.entry.status,
                    "incoming_status": observation.status,
                },
            )
            logger.warning(str(conflict), extra=conflict.details)

        logger.info(
            "Ledger entry %s",
            outcome.action,
            extra={
                "order_id": str(order_id),
                "entry_id": outcome.entry.pk,
                "status": outcome.entry.status,
                "transaction_id": outcome.entry.transaction_id,
            },
        )

        OrderStore.update_cached_status(order_id, outcome.entry.status)
        return outcome

    @classmethod
    def find_latest(cls, order_id: UUID | str) -> OrderStatus | None:
        """Entry with the greatest (payment_time, created_at), or None."""
        return (
            OrderStatus.objects.filter(order_id=order_id)
            .order_by(*_latest_ordering())
            .first()
        )

    @classmethod
    def find_all(cls, order_id: UUID | str) -> QuerySet[OrderStatus]:
        """Full history, latest first."""
        return OrderStatus.objects.filter(order_id=order_id).order_by(
            *_latest_ordering()
        )

    @classmethod
    def latest_for_orders(cls, order_ids: Iterable[UUID]) -> dict[UUID, OrderStatus]:
        """Latest entry per order for a page of orders."""
        latest: dict[UUID, OrderStatus] = {}
        entries = OrderStatus.objects.filter(order_id__in=list(order_ids)).order_by(
            "order_id", *_latest_ordering()
        )
        for entry in entries:
            latest.setdefault(entry.order_id, entry)
        return latest

    @classmethod
    def annotate_latest(cls, orders: QuerySet) -> QuerySet:
        """
        Annotate an Order queryset with its latest ledger status.

        Adds ``latest_status`` and ``latest_payment_time`` so listings can
        filter and sort on the ledger without loading entries.
        """
        latest = OrderStatus.objects.filter(order_id=OuterRef("pk")).order_by(
            *_latest_ordering()
        )
        return orders.annotate(
            latest_status=Coalesce(
                Subquery(latest.values("status")[:1]), F("status")
            ),
            latest_payment_time=Subquery(latest.values("payment_time")[:1]),
        )

    # ==========================================================================
    # Merge
    # ==========================================================================

    @classmethod
    def _apply(cls, order_id: UUID | str, observation: StatusObservation) -> UpsertOutcome:
        with cls.atomic():
            existing, superseding = cls._match(order_id, observation.transaction_id)
            decision = decide(existing, observation.status)
            fields = observation.reported_fields()

            if existing is None and not observation.transaction_id:
                latest = (
                    OrderStatus.objects.select_for_update()
                    .filter(order_id=order_id)
                    .order_by(*_latest_ordering())
                    .first()
                )
                if (
                    latest is not None
                    and is_terminal(latest.status)
                    and not is_terminal(observation.status)
                ):
                    return UpsertOutcome(
                        entry=latest, action=UpsertAction.IGNORED, conflict=True
                    )

            if decision.action == MergeAction.CREATE:
                fields.setdefault("order_amount", cls._order_amount(order_id))
                entry = OrderStatus.objects.create(
                    order_id=order_id,
                    status=decision.status,
                    vendor_payload=observation.raw,
                    **fields,
                )
                return UpsertOutcome(entry=entry, action=UpsertAction.CREATED)

            for name, value in fields.items():
                setattr(existing, name, value)
            existing.status = decision.status
            if observation.raw:
                existing.vendor_payload = observation.raw
            existing.save()

            return UpsertOutcome(
                entry=existing,
                action=UpsertAction.SUPERSEDED if superseding else UpsertAction.UPDATED,
                conflict=decision.conflict,
            )

    @classmethod
    def _match(
        cls, order_id: UUID | str, transaction_id: str | None
    ) -> tuple[OrderStatus | None, bool]:
        """
        Find the entry an observation merges into.

        Returns:
            (entry or None, whether a placeholder is being superseded)
        """
        entries = OrderStatus.objects.select_for_update().filter(order_id=order_id)
        placeholder = (
            entries.filter(transaction_id__isnull=True).order_by("created_at").first()
        )

        if transaction_id:
            matched = entries.filter(transaction_id=transaction_id).first()
            if matched is not None:
                return matched, False
            return placeholder, placeholder is not None

        return placeholder, False

    @classmethod
    def _order_amount(cls, order_id: UUID | str):
        order = OrderStore.find_by_id(order_id)
        return order.amount if order is not None else 0
