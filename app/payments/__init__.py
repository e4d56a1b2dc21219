"""
Payments app for school fee collection through the payment vendor.

This app handles:
- Order creation and the vendor collect request
- The status ledger (OrderStatus) and its merge rules
- Vendor status polling and inbound webhooks
- Background replay, purge and pending-order reconciliation

Related apps:
    - authentication: User model with role and school scope

Usage:
    from payments.adapters import get_vendor_client
    from payments.services import PaymentService, StatusLedger

    created = PaymentService(get_vendor_client()).create_payment(...)
    StatusLedger.find_latest(created.order.id)
"""
