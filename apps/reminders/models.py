import datetime

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models, transaction
from django.utils import timezone


class ReminderQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=Reminder.STATUS_PENDING)

    def overdue(self):
        return self.pending().filter(reminder_date__lt=timezone.now())

    def upcoming(self, days=7):
        now = timezone.now()
        return self.pending().filter(reminder_date__range=(now, now + datetime.timedelta(days=days)))

    def today(self):
        return self.pending().filter(reminder_date__date=timezone.localdate())

    def for_user(self, user):
        return self.filter(user=user)


class Reminder(models.Model):
    """
    A dated to-do attached to a user, optionally about an opportunity or contact

    Completing a recurring reminder creates its next occurrence (see
    mark_completed). Snoozing only moves the date forward.
    """

    TYPE_FOLLOW_UP = 'follow_up'
    TYPE_MEETING = 'meeting'
    TYPE_CALL = 'call'
    TYPE_EMAIL = 'email'
    TYPE_DEADLINE = 'deadline'
    TYPE_OTHER = 'other'

    TYPE_CHOICES = [
        (TYPE_FOLLOW_UP, 'Suivi'),
        (TYPE_MEETING, 'Réunion'),
        (TYPE_CALL, 'Appel'),
        (TYPE_EMAIL, 'Email'),
        (TYPE_DEADLINE, 'Échéance'),
        (TYPE_OTHER, 'Autre'),
    ]

    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'

    PRIORITY_CHOICES = [
        (PRIORITY_LOW, 'Faible'),
        (PRIORITY_MEDIUM, 'Moyenne'),
        (PRIORITY_HIGH, 'Haute'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_SNOOZED = 'snoozed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'En attente'),
        (STATUS_COMPLETED, 'Complété'),
        (STATUS_SNOOZED, 'Reporté'),
        (STATUS_CANCELLED, 'Annulé'),
    ]

    PATTERN_DAILY = 'daily'
    PATTERN_WEEKLY = 'weekly'
    PATTERN_MONTHLY = 'monthly'

    PATTERN_CHOICES = [
        (PATTERN_DAILY, 'Quotidien'),
        (PATTERN_WEEKLY, 'Hebdomadaire'),
        (PATTERN_MONTHLY, 'Mensuel'),
    ]

    # relativedelta keyword for each pattern
    PATTERN_UNITS = {
        PATTERN_DAILY: 'days',
        PATTERN_WEEKLY: 'weeks',
        PATTERN_MONTHLY: 'months',
    }

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reminders')
    opportunity = models.ForeignKey('opportunities.Opportunity', on_delete=models.CASCADE, null=True, blank=True, related_name='reminders')
    contact = models.ForeignKey('contacts.Contact', on_delete=models.CASCADE, null=True, blank=True, related_name='reminders')

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    reminder_date = models.DateTimeField(db_index=True, help_text='When the reminder is due')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_FOLLOW_UP)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default=PRIORITY_MEDIUM)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    snoozed_until = models.DateTimeField(null=True, blank=True)

    # Recurrence
    is_recurring = models.BooleanField(default=False)
    recurrence_pattern = models.CharField(max_length=10, choices=PATTERN_CHOICES, null=True, blank=True)
    recurrence_interval = models.PositiveSmallIntegerField(null=True, blank=True, validators=[MinValueValidator(1)], help_text='Every N days/weeks/months (empty = 1)')
    recurrence_end_date = models.DateField(null=True, blank=True, help_text='Last day an occurrence may fall on')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReminderQuerySet.as_manager()

    class Meta:
        verbose_name = 'Reminder'
        verbose_name_plural = 'Reminders'
        ordering = ['reminder_date']
        indexes = [
            models.Index(fields=['user', 'status', 'reminder_date'], name='reminders_r_user_id_7c41b2_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.reminder_date:%Y-%m-%d %H:%M})"

    # HELPERS
    def is_overdue(self):
        return self.status == self.STATUS_PENDING and self.reminder_date < timezone.now()

    def is_due_today(self):
        return self.status == self.STATUS_PENDING and timezone.localdate(self.reminder_date) == timezone.localdate()

    def is_due_soon(self):
        """Pending and due within the next 24 hours"""
        now = timezone.now()
        return (
            self.status == self.STATUS_PENDING
            and now < self.reminder_date <= now + datetime.timedelta(hours=24)
        )

    # BUSINESS LOGIC
    def next_occurrence_date(self):
        """
        Date of the next occurrence, or None when there is none

        None when the reminder is not recurring, has no (or an unknown)
        pattern, or the next date falls after recurrence_end_date.
        """
        if not self.is_recurring or not self.recurrence_pattern:
            return None

        unit = self.PATTERN_UNITS.get(self.recurrence_pattern)
        if unit is None:
            return None

        next_date = self.reminder_date + relativedelta(**{unit: self.recurrence_interval or 1})

        if self.recurrence_end_date and timezone.localdate(next_date) > self.recurrence_end_date:
            return None
        return next_date

    def mark_completed(self):
        """
        Complete the reminder and create the next occurrence if it recurs

        A reminder that is already completed is left as it is, so a recurring
        reminder never gets more than one successor.

        Returns:
            Reminder | None: the successor
        """
        with transaction.atomic():
            locked = Reminder.objects.select_for_update().get(pk=self.pk)
            if locked.status == self.STATUS_COMPLETED:
                self.status = locked.status
                self.completed_at = locked.completed_at
                return None

            self.status = self.STATUS_COMPLETED
            self.completed_at = timezone.now()
            self.save(update_fields=['status', 'completed_at', 'updated_at'])

            next_date = self.next_occurrence_date()
            if next_date is None:
                return None

            return Reminder.objects.create(
                user_id=self.user_id,
                opportunity_id=self.opportunity_id,
                contact_id=self.contact_id,
                title=self.title,
                description=self.description,
                reminder_date=next_date,
                type=self.type,
                priority=self.priority,
                status=self.STATUS_PENDING,
                is_recurring=True,
                recurrence_pattern=self.recurrence_pattern,
                recurrence_interval=self.recurrence_interval,
                recurrence_end_date=self.recurrence_end_date,
            )

    def snooze(self, minutes=60):
        """Push the reminder back; counted from now when it is already late"""
        now = timezone.now()
        base = self.reminder_date if self.reminder_date > now else now
        self.reminder_date = base + datetime.timedelta(minutes=minutes)
        self.snoozed_until = self.reminder_date
        self.status = self.STATUS_PENDING
        self.save(update_fields=['reminder_date', 'snoozed_until', 'status', 'updated_at'])

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'reminder_date': self.reminder_date.isoformat() if self.reminder_date else None,
            'type': self.type,
            'type_label': self.get_type_display(),
            'priority': self.priority,
            'priority_label': self.get_priority_display(),
            'status': self.status,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'snoozed_until': self.snoozed_until.isoformat() if self.snoozed_until else None,
            'is_recurring': self.is_recurring,
            'recurrence_pattern': self.recurrence_pattern,
            'recurrence_interval': self.recurrence_interval,
            'recurrence_end_date': self.recurrence_end_date.isoformat() if self.recurrence_end_date else None,
            'is_overdue': self.is_overdue(),
            'is_due_today': self.is_due_today(),
            'is_due_soon': self.is_due_soon(),
            'opportunity': {'id': self.opportunity.id, 'name': self.opportunity.name} if self.opportunity_id else None,
            'contact': {'id': self.contact.id, 'name': self.contact.name} if self.contact_id else None,
        }
