"""
Celery configuration for the tutoring CRM.
"""
import os
from celery import Celery
from decouple import config

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')

app = Celery('crm')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()


# Periodic tasks
app.conf.beat_schedule = {
    'sweep-overdue-settlements': {
        'task': 'billing.tasks.sweep_overdue_settlements',
        'schedule': config('OVERDUE_SWEEP_INTERVAL', default=3600.0, cast=float),  # Hourly by default
    },
}
