"""
Webhook handling for vendor payment notifications.

Deliveries are signature-checked, recorded as WebhookDelivery rows, and
reconciled into the status ledger synchronously. Failed deliveries are
replayed by Celery tasks (see payments.tasks).

Usage:
    # In urls.py
    from payments.webhooks.views import VendorWebhookView

    urlpatterns = [
        path("webhook/", VendorWebhookView.as_view(), name="vendor-webhook"),
    ]
"""
