"""
Celery configuration for the payment reconciliation service.

Celery runs the out-of-band work of the service:
- Proof-of-payment resolution after an entitlement is created
- The periodic sweep that re-enqueues entitlements still missing a proof

Redis is both the message broker and result backend. Periodic schedules live
in the database (django-celery-beat) and are seeded by migrations.

Usage:
    # Worker
    celery -A config worker -l info

    # Scheduler
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up payments.tasks and any other tasks.py module
app.autodiscover_tasks()
