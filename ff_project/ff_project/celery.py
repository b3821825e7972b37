""" Run workers with "celery -A ff_project worker -l info"
    and the periodic reconciliation with "celery -A ff_project beat". """
from __future__ import annotations
import os
from celery import Celery

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ff_project.settings")

celery_app = Celery("ff_project")

# read config from Django settings, using CELERY_ prefix
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# autoload tasks from installed apps
celery_app.autodiscover_tasks()
