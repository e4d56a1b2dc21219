"""
Tests for the status ledger merge primitive and queries.

Tests cover:
- Idempotent merges keyed by transaction_id
- Placeholder entries superseded by the first transaction
- Terminal statuses never regressing
- Distinct transactions and latest-entry selection
- Status cache and annotated listings
"""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError, IntegrityError
from django.db.models import QuerySet

from payments.models import Order, OrderStatus
from payments.services import StatusLedger, StatusObservation, UpsertAction
from payments.state_machines import PaymentStatus
from payments.tests.factories import OrderFactory

T1 = datetime(2024, 1, 15, 10, 0, tzinfo=dt_timezone.utc)
T2 = datetime(2024, 1, 15, 11, 0, tzinfo=dt_timezone.utc)


def observe(status=PaymentStatus.PENDING, **fields):
    return StatusObservation(status=status, **fields)


def placeholder(order):
    return StatusLedger.upsert_status(
        order.id, observe(order_amount=order.amount, gateway="edviron")
    ).entry


# =============================================================================
# Creation and placeholders
# =============================================================================


@pytest.mark.django_db
class TestUpsertCreate:
    def test_first_observation_creates_entry(self, order):
        outcome = StatusLedger.upsert_status(order.id, observe())

        assert outcome.action == UpsertAction.CREATED
        assert outcome.entry.order_id == order.id
        assert outcome.entry.order_amount == order.amount
        assert outcome.entry.transaction_id is None

    def test_first_transaction_supersedes_placeholder(self, order):
        entry = placeholder(order)

        outcome = StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-1", payment_time=T1),
        )

        assert outcome.action == UpsertAction.SUPERSEDED
        assert outcome.entry.pk == entry.pk
        assert outcome.entry.transaction_id == "TXN-1"
        assert OrderStatus.objects.filter(order=order).count() == 1

    def test_observation_without_transaction_amends_placeholder(self, order):
        entry = placeholder(order)

        outcome = StatusLedger.upsert_status(
            order.id, observe(payment_message="Payment PENDING")
        )

        assert outcome.action == UpsertAction.UPDATED
        assert outcome.entry.pk == entry.pk
        assert outcome.entry.payment_message == "Payment PENDING"


# =============================================================================
# Idempotence
# =============================================================================


@pytest.mark.django_db
class TestUpsertIdempotence:
    def test_same_observation_twice_is_a_single_entry(self, order):
        placeholder(order)
        observation = observe(
            PaymentStatus.COMPLETED,
            transaction_id="TXN-1",
            transaction_amount=Decimal("1500.00"),
            bank_reference="BR-1",
            payment_time=T1,
        )

        first = StatusLedger.upsert_status(order.id, observation)
        second = StatusLedger.upsert_status(order.id, observation)

        assert first.entry.pk == second.entry.pk
        assert second.action == UpsertAction.UPDATED
        assert OrderStatus.objects.filter(order=order).count() == 1

        entry = OrderStatus.objects.get(order=order)
        assert entry.status == PaymentStatus.COMPLETED
        assert entry.transaction_amount == Decimal("1500.00")
        assert entry.bank_reference == "BR-1"
        assert entry.payment_time == T1

    def test_unreported_fields_are_kept(self, order):
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-1", bank_reference="BR-1"),
        )

        StatusLedger.upsert_status(
            order.id, observe(PaymentStatus.COMPLETED, transaction_id="TXN-1")
        )

        entry = OrderStatus.objects.get(order=order)
        assert entry.bank_reference == "BR-1"

    def test_concurrent_insert_is_retried_as_update(self, order):
        original = StatusLedger._apply
        calls = []

        def flaky(order_id, observation):
            calls.append(order_id)
            if len(calls) == 1:
                raise IntegrityError("duplicate key value")
            return original(order_id, observation)

        with patch.object(StatusLedger, "_apply", side_effect=flaky):
            outcome = StatusLedger.upsert_status(
                order.id, observe(PaymentStatus.COMPLETED, transaction_id="TXN-1")
            )

        assert len(calls) == 2
        assert outcome.entry.status == PaymentStatus.COMPLETED


# =============================================================================
# Terminal regression
# =============================================================================


@pytest.mark.django_db
class TestNoTerminalRegression:
    def test_pending_after_completed_is_dropped(self, order):
        StatusLedger.upsert_status(
            order.id, observe(PaymentStatus.COMPLETED, transaction_id="TXN-1")
        )

        outcome = StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.PENDING, transaction_id="TXN-1", payment_message="late"),
        )

        assert outcome.conflict is True
        assert outcome.entry.status == PaymentStatus.COMPLETED
        assert StatusLedger.find_latest(order.id).status == PaymentStatus.COMPLETED
        order.refresh_from_db()
        assert order.status == PaymentStatus.COMPLETED

    def test_poll_without_transaction_cannot_regress(self, order):
        placeholder(order)
        StatusLedger.upsert_status(
            order.id, observe(PaymentStatus.FAILED, transaction_id="TXN-1")
        )

        outcome = StatusLedger.upsert_status(order.id, observe(PaymentStatus.PENDING))

        assert outcome.conflict is True
        assert outcome.action == UpsertAction.IGNORED
        assert outcome.entry.status == PaymentStatus.FAILED
        assert OrderStatus.objects.filter(order=order).count() == 1

    def test_terminal_without_transaction_never_rewrites_settled_entry(self, order):
        placeholder(order)
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-1", payment_time=T1),
        )

        outcome = StatusLedger.upsert_status(order.id, observe(PaymentStatus.FAILED))

        assert outcome.action == UpsertAction.CREATED
        assert outcome.entry.transaction_id is None
        settled = OrderStatus.objects.get(order=order, transaction_id="TXN-1")
        assert settled.status == PaymentStatus.COMPLETED
        assert OrderStatus.objects.filter(order=order).count() == 2

    def test_terminal_to_terminal_last_writer_wins(self, order):
        StatusLedger.upsert_status(
            order.id, observe(PaymentStatus.FAILED, transaction_id="TXN-1")
        )

        outcome = StatusLedger.upsert_status(
            order.id, observe(PaymentStatus.COMPLETED, transaction_id="TXN-1")
        )

        assert outcome.conflict is False
        assert outcome.entry.status == PaymentStatus.COMPLETED


# =============================================================================
# Distinct transactions and queries
# =============================================================================


@pytest.mark.django_db
class TestDistinctTransactions:
    def test_distinct_transactions_are_separate_entries(self, order):
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.FAILED, transaction_id="TXN-1", payment_time=T1),
        )
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-2", payment_time=T2),
        )

        assert OrderStatus.objects.filter(order=order).count() == 2
        latest = StatusLedger.find_latest(order.id)
        assert latest.transaction_id == "TXN-2"
        assert latest.status == PaymentStatus.COMPLETED

    def test_latest_follows_payment_time_not_arrival(self, order):
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-2", payment_time=T2),
        )
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.FAILED, transaction_id="TXN-1", payment_time=T1),
        )

        assert StatusLedger.find_latest(order.id).transaction_id == "TXN-2"
        assert [e.transaction_id for e in StatusLedger.find_all(order.id)] == [
            "TXN-2",
            "TXN-1",
        ]

    def test_find_latest_without_entries(self, order):
        assert StatusLedger.find_latest(order.id) is None
        assert list(StatusLedger.find_all(order.id)) == []

    def test_latest_for_orders(self, order):
        other = OrderFactory()
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.FAILED, transaction_id="TXN-1", payment_time=T1),
        )
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-2", payment_time=T2),
        )
        StatusLedger.upsert_status(other.id, observe())

        latest = StatusLedger.latest_for_orders([order.id, other.id])

        assert latest[order.id].transaction_id == "TXN-2"
        assert latest[other.id].status == PaymentStatus.PENDING


# =============================================================================
# Status cache and annotations
# =============================================================================


@pytest.mark.django_db
class TestStatusCache:
    def test_upsert_refreshes_order_status(self, order):
        StatusLedger.upsert_status(
            order.id, observe(PaymentStatus.COMPLETED, transaction_id="TXN-1")
        )

        order.refresh_from_db()
        assert order.status == PaymentStatus.COMPLETED

    def test_cache_failure_does_not_break_upsert(self, order):
        with patch.object(QuerySet, "update", side_effect=DatabaseError("connection lost")):
            outcome = StatusLedger.upsert_status(
                order.id, observe(PaymentStatus.COMPLETED, transaction_id="TXN-1")
            )

        assert outcome.action == UpsertAction.CREATED
        assert outcome.entry.status == PaymentStatus.COMPLETED
        assert StatusLedger.find_latest(order.id).pk == outcome.entry.pk
        order.refresh_from_db()
        assert order.status == PaymentStatus.PENDING

    def test_annotate_latest(self, order):
        bare = OrderFactory(status=PaymentStatus.CREATED)
        StatusLedger.upsert_status(
            order.id,
            observe(PaymentStatus.COMPLETED, transaction_id="TXN-1", payment_time=T1),
        )

        annotated = {
            o.id: o
            for o in StatusLedger.annotate_latest(Order.objects.all())
        }

        assert annotated[order.id].latest_status == PaymentStatus.COMPLETED
        assert annotated[order.id].latest_payment_time == T1
        # No ledger entries: falls back to the cached status
        assert annotated[bare.id].latest_status == PaymentStatus.CREATED
        assert annotated[bare.id].latest_payment_time is None
