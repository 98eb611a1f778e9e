"""Celery worker for out-of-request work (notification push fan-out)."""

import os

from celery import Celery
from celery.signals import setup_logging

# Same default as the ASGI entrypoint; pytest passes --ds explicitly.
if "DJANGO_SETTINGS_MODULE" not in os.environ:
    build_env = os.environ.get("BUILD_ENV", "production").lower()
    os.environ.setdefault(
        "DJANGO_SETTINGS_MODULE",
        "config.settings.local" if build_env == "local" else "config.settings.production",
    )

app = Celery("hr_connect")

# All Celery keys live in Django settings under the CELERY_ prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")


@setup_logging.connect
def config_loggers(*args, **kwargs):
    # Workers log through the project's LOGGING dict, not Celery's defaults.
    from logging.config import dictConfig  # noqa: PLC0415

    from django.conf import settings  # noqa: PLC0415

    dictConfig(settings.LOGGING)


# Picks up hr_connect.notifications.tasks.
app.autodiscover_tasks()
