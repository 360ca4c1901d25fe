import logging

from celery import shared_task
from django.db.models import Count

from .models import Reminder

logger = logging.getLogger(__name__)


@shared_task
def log_overdue_reminders():
    """Periodic check (celery beat): log how many pending reminders are late, per user"""
    per_user = (
        Reminder.objects.overdue()
        .order_by()
        .values('user__email')
        .annotate(total=Count('id'))
    )

    overdue_total = 0
    for row in per_user:
        overdue_total += row['total']
        logger.warning(f"{row['total']} overdue reminder(s) for {row['user__email']}")

    return f'{overdue_total} overdue reminders.'
