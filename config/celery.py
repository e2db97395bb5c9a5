import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("booking_engine")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Cancel bookings whose payment hold ran out - every minute
    "expire-unpaid-bookings": {
        "task": "bookings.expire_unpaid_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
}

app.conf.timezone = "UTC"
