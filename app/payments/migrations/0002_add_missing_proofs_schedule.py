"""
Add celery-beat schedule for the proof-of-payment sweep.

This migration creates the periodic task schedule for the
resolve_missing_proofs task, which runs every 30 minutes to re-enqueue
entitlements whose invoice or receipt is still missing.
"""

from django.db import migrations

TASK_NAME = "Resolve Missing Proofs of Payment"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for the proof sweep."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=30,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "payments.tasks.resolve_missing_proofs",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Re-enqueues proof-of-payment resolution for memberships and "
                "training purchases that still have no invoice or receipt."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
