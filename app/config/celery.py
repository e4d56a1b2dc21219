"""
Celery configuration for the payments service.

Background jobs run here rather than in the request cycle:
- Replaying failed webhook deliveries
- Purging delivery records past the retention window
- Polling the vendor for orders still pending

Periodic schedules live in the database (django-celery-beat
DatabaseScheduler) and are seeded by a payments data migration.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up payments.tasks
app.autodiscover_tasks()
