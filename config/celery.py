# Celery is a distributed task queue for running background jobs
#
# - Import contacts from CSV files
# - Scan reminders that went overdue
#
# Start worker: celery -A config worker -l info
# Start beat: celery -A config beat -l info
# ==============================================================================

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for Celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# 'pipeline_crm' is the app name (appears in logs and monitoring)
app = Celery('pipeline_crm')

# All settings prefixed with 'CELERY_' will be used
# Example: CELERY_BROKER_URL, CELERY_RESULT_BACKEND
app.config_from_object('django.conf:settings', namespace='CELERY')

# Looks for tasks.py file in each app
# Example: apps/contacts/tasks.py, apps/reminders/tasks.py
app.autodiscover_tasks()


# CELERY BEAT SCHEDULE (Periodic Tasks)

app.conf.beat_schedule = {
    'log-overdue-reminders': {
        'task': 'apps.reminders.tasks.log_overdue_reminders',
        'schedule': crontab(minute='*/15'),  # Every 15 minutes
    },
}


# CELERY TASK ANNOTATIONS

app.conf.task_annotations = {
    'apps.contacts.tasks.import_contacts': {
        'time_limit': 600,  # 10 minutes
        'soft_time_limit': 540,  # 9 minutes
    },
}
