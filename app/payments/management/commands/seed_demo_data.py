"""
Seed demo users, orders and ledger entries for local development.

Creates an admin, school and trustee users for SCH001, a school user for
SCH002, and one completed, one pending and one failed order. Orders and
ledger entries go through OrderStore and StatusLedger, so the seeded data
obeys the same rules as real traffic.

Re-running is safe: existing users and orders are skipped.

Usage:
    python manage.py seed_demo_data
    python manage.py seed_demo_data --password demo-pass-123
"""

import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from authentication.models import UserRole
from payments.services import OrderStore, StatusLedger, StatusObservation
from payments.state_machines import PaymentStatus

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"email": "admin@demo.example", "role": UserRole.ADMIN, "school_id": ""},
    {"email": "school@demo.example", "role": UserRole.SCHOOL, "school_id": "SCH001"},
    {
        "email": "trustee@demo.example",
        "role": UserRole.TRUSTEE,
        "school_id": "SCH001",
        "trustee_id": "TRU001",
    },
    {"email": "school2@demo.example", "role": UserRole.SCHOOL, "school_id": "SCH002"},
]

DEMO_ORDERS = [
    {
        "custom_order_id": "ORD-SEED-001",
        "collect_request_id": "CRQ-SEED-001",
        "school_id": "SCH001",
        "trustee_id": "TRU001",
        "student_info": {"name": "John Doe", "id": "STU001", "email": "john.doe@student.example"},
        "amount": Decimal("1500.00"),
        "status": PaymentStatus.COMPLETED,
    },
    {
        "custom_order_id": "ORD-SEED-002",
        "collect_request_id": "CRQ-SEED-002",
        "school_id": "SCH001",
        "trustee_id": "",
        "student_info": {"name": "Jane Smith", "id": "STU002", "email": "jane.smith@student.example"},
        "amount": Decimal("2000.50"),
        "status": PaymentStatus.PENDING,
    },
    {
        "custom_order_id": "ORD-SEED-003",
        "collect_request_id": "CRQ-SEED-003",
        "school_id": "SCH002",
        "trustee_id": "",
        "student_info": {"name": "Bob Johnson", "id": "STU003", "email": "bob.johnson@student.example"},
        "amount": Decimal("1200.75"),
        "status": PaymentStatus.FAILED,
    },
]

CALLBACK_URL = "https://school.example/payments/callback"


def settlement_observation(order, status):
    """Observation a vendor webhook would report for a settled demo order."""
    if status == PaymentStatus.COMPLETED:
        return StatusObservation(
            status=status,
            transaction_id=f"TXN-{order.custom_order_id}",
            transaction_amount=order.amount,
            payment_mode="upi",
            payment_details="student@upi",
            bank_reference=f"BNK-{order.custom_order_id}",
            payment_message="Payment successful",
            gateway=order.gateway_name,
            payment_time=timezone.now(),
        )
    return StatusObservation(
        status=status,
        transaction_id=f"TXN-{order.custom_order_id}",
        transaction_amount=Decimal("0.00"),
        payment_mode="netbanking",
        payment_message="Payment failed",
        error_message="Payment failed due to insufficient funds",
        gateway=order.gateway_name,
        payment_time=timezone.now(),
    )


class Command(BaseCommand):
    help = "Create demo users, orders and status ledger entries"

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            default="demo12345",
            help="Password set on every created demo user",
        )

    def handle(self, *args, **options):
        users = self.seed_users(options["password"])
        orders = self.seed_orders()

        logger.info(
            "Demo data seeded",
            extra={"users_created": users, "orders_created": orders},
        )
        self.stdout.write(
            self.style.SUCCESS(f"Created {users} users and {orders} orders.")
        )

    def seed_users(self, password):
        User = get_user_model()
        created = 0

        for data in DEMO_USERS:
            if User.objects.filter(email=data["email"]).exists():
                self.stdout.write(f"User {data['email']} already exists, skipping")
                continue

            fields = {key: value for key, value in data.items() if key != "email"}
            if data["role"] == UserRole.ADMIN:
                User.objects.create_superuser(data["email"], password, **fields)
            else:
                User.objects.create_user(data["email"], password, **fields)
            created += 1
            self.stdout.write(f"Created user {data['email']} ({data['role']})")

        return created

    def seed_orders(self):
        created = 0

        for data in DEMO_ORDERS:
            if OrderStore.find_by_custom_order_id(data["custom_order_id"]) is not None:
                self.stdout.write(
                    f"Order {data['custom_order_id']} already exists, skipping"
                )
                continue

            with transaction.atomic():
                order = OrderStore.create_order(
                    custom_order_id=data["custom_order_id"],
                    school_id=data["school_id"],
                    trustee_id=data["trustee_id"],
                    student_info=data["student_info"],
                    amount=data["amount"],
                    callback_url=CALLBACK_URL,
                    status=PaymentStatus.PENDING,
                )
                StatusLedger.upsert_status(
                    order.id,
                    StatusObservation(
                        status=PaymentStatus.PENDING,
                        order_amount=order.amount,
                        gateway=order.gateway_name,
                    ),
                )
                OrderStore.attach_vendor_reference(
                    order,
                    data["collect_request_id"],
                    {"collect_request_id": data["collect_request_id"], "seeded": True},
                )
                if data["status"] != PaymentStatus.PENDING:
                    StatusLedger.upsert_status(
                        order.id, settlement_observation(order, data["status"])
                    )

            created += 1
            self.stdout.write(f"Created order {order.custom_order_id} ({data['status']})")

        return created
