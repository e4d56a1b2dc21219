"""
Register celery-beat schedules for webhook and reconciliation tasks.

- Retry failed webhook deliveries: every 10 minutes
- Poll the vendor for pending orders: every 30 minutes
- Purge expired webhook deliveries: daily at 03:00
"""

from django.db import migrations

INTERVAL_TASKS = [
    {
        "name": "Retry Failed Webhook Deliveries",
        "task": "payments.tasks.retry_failed_webhook_deliveries",
        "every": 10,
        "description": (
            "Requeues failed, signed webhook deliveries under the retry "
            "ceiling and replays them."
        ),
    },
    {
        "name": "Poll Pending Orders",
        "task": "payments.tasks.poll_pending_orders",
        "every": 30,
        "description": (
            "Polls the vendor for recent pending orders so outcomes are "
            "reconciled even when a webhook never arrives."
        ),
    },
]

PURGE_TASK_NAME = "Purge Expired Webhook Deliveries"


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for payment reconciliation."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for task in INTERVAL_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=task["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=task["name"],
            defaults={
                "task": task["task"],
                "interval": schedule,
                "enabled": True,
                "description": task["description"],
            },
        )

    # Daily at 03:00
    crontab, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="3",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )
    PeriodicTask.objects.get_or_create(
        name=PURGE_TASK_NAME,
        defaults={
            "task": "payments.tasks.purge_expired_webhook_deliveries",
            "crontab": crontab,
            "enabled": True,
            "description": "Deletes webhook deliveries past WEBHOOK_RETENTION_DAYS.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    names = [task["name"] for task in INTERVAL_TASKS] + [PURGE_TASK_NAME]
    PeriodicTask.objects.filter(name__in=names).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
