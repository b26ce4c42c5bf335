import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("barbershop")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Unattended appointments become NO_SHOW
    "mark-no-shows": {
        "task": "appointments.mark_no_shows",
        "schedule": float(os.environ.get("BOOKING_NO_SHOW_SWEEP_INTERVAL_SECONDS", 60)),
        "options": {"expires": 50},
    },
}
