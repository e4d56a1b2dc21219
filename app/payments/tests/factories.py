"""
Factory Boy factories for payment test data.

Factories write rows directly; they bypass OrderStore validation and the
ledger merge rules. Use the services when the behaviour under test is the
merge itself.

Usage:
    from payments.tests.factories import (
        OrderFactory,
        OrderStatusFactory,
        WebhookDeliveryFactory,
    )

    order = OrderFactory(school_id="SCH002")
    entry = OrderStatusFactory(order=order, status=PaymentStatus.COMPLETED)
    delivery = WebhookDeliveryFactory(
        processing_status=WebhookDeliveryStatus.FAILED, retries=1
    )
"""

from decimal import Decimal

import factory

from payments.models import Order, OrderStatus, WebhookDelivery
from payments.state_machines import PaymentStatus, WebhookDeliveryStatus


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Order instances.

    Defaults to a pending SCH001 order that already has a vendor collect
    request.
    """

    class Meta:
        model = Order

    custom_order_id = factory.Sequence(lambda n: f"ORD-{n:04d}")
    school_id = "SCH001"
    trustee_id = ""
    student_info = factory.Sequence(
        lambda n: {
            "name": f"Student {n}",
            "id": f"STU-{n}",
            "email": f"student{n}@example.com",
        }
    )
    gateway_name = "edviron"
    amount = Decimal("1500.00")
    callback_url = "https://school.example/payments/return"
    collect_request_id = factory.Sequence(lambda n: f"CRQ-{n:04d}")
    vendor_response = factory.LazyAttribute(
        lambda o: {"collect_request_id": o.collect_request_id}
    )
    status = PaymentStatus.PENDING


class OrderStatusFactory(factory.django.DjangoModelFactory):
    """Factory for creating OrderStatus ledger entries."""

    class Meta:
        model = OrderStatus

    order = factory.SubFactory(OrderFactory)
    order_amount = factory.LazyAttribute(lambda o: o.order.amount)
    status = PaymentStatus.PENDING
    gateway = "edviron"
    transaction_id = None
    payment_time = None


class WebhookDeliveryFactory(factory.django.DjangoModelFactory):
    """Factory for creating WebhookDelivery records in any state."""

    class Meta:
        model = WebhookDelivery

    raw_payload = factory.Sequence(
        lambda n: {
            "order_info": {"order_id": f"CRQ-X{n}/TXN-X{n}"},
            "payment_info": {"status": "SUCCESS", "transaction_amount": 1500},
        }
    )
    signature_valid = True
    processing_status = WebhookDeliveryStatus.QUEUED
    retries = 0
