"""
Reminder Model Tests
====================

Test Coverage:
1. Recurrence - daily/weekly/monthly, interval default, end date, no pattern
2. mark_completed - status, completed_at, successor copy, atomicity
3. snooze - future base vs. late base
4. Helpers and scopes - is_overdue / is_due_today / is_due_soon, pending/overdue/upcoming/today

Run tests:
    python manage.py test apps.reminders.tests.test_models
"""

import datetime
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from apps.reminders.models import Reminder
from apps.reminders.tasks import log_overdue_reminders

User = get_user_model()


def aware(year, month, day, hour=9, minute=0):
    return timezone.make_aware(datetime.datetime(year, month, day, hour, minute))


class ReminderTestMixin:

    def setUp(self):
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123')

    def make_reminder(self, **overrides):
        fields = {
            'user': self.user,
            'title': 'Relancer le client',
            'reminder_date': timezone.now() + datetime.timedelta(days=2),
            'type': Reminder.TYPE_FOLLOW_UP,
            'priority': Reminder.PRIORITY_HIGH,
        }
        fields.update(overrides)
        return Reminder.objects.create(**fields)


class RecurrenceTest(ReminderTestMixin, TestCase):

    def test_weekly_interval_past_end_date_creates_nothing(self):
        """
        Test: weekly, interval 2, due 2024-01-01, ends 2024-01-10

        Expected: next date 2024-01-15 is after the end date, no successor
        """
        reminder = self.make_reminder(
            reminder_date=aware(2024, 1, 1),
            is_recurring=True,
            recurrence_pattern=Reminder.PATTERN_WEEKLY,
            recurrence_interval=2,
            recurrence_end_date=datetime.date(2024, 1, 10),
        )

        successor = reminder.mark_completed()

        self.assertIsNone(successor)
        self.assertEqual(Reminder.objects.count(), 1)
        reminder.refresh_from_db()
        self.assertEqual(reminder.status, Reminder.STATUS_COMPLETED)
        self.assertIsNotNone(reminder.completed_at)

    def test_weekly_interval_without_end_date(self):
        """
        Test: same reminder without an end date

        Expected: one pending successor on 2024-01-15 copying the settings
        """
        reminder = self.make_reminder(
            reminder_date=aware(2024, 1, 1),
            description='Point trimestriel',
            is_recurring=True,
            recurrence_pattern=Reminder.PATTERN_WEEKLY,
            recurrence_interval=2,
        )

        successor = reminder.mark_completed()

        self.assertIsNotNone(successor)
        self.assertEqual(successor.reminder_date, aware(2024, 1, 15))
        self.assertEqual(successor.status, Reminder.STATUS_PENDING)
        self.assertEqual(successor.title, reminder.title)
        self.assertEqual(successor.description, 'Point trimestriel')
        self.assertEqual(successor.type, reminder.type)
        self.assertEqual(successor.priority, reminder.priority)
        self.assertTrue(successor.is_recurring)
        self.assertEqual(successor.recurrence_pattern, Reminder.PATTERN_WEEKLY)
        self.assertEqual(successor.recurrence_interval, 2)
        self.assertEqual(successor.user, self.user)
        self.assertIsNone(successor.completed_at)

    def test_next_date_on_end_date_is_allowed(self):
        reminder = self.make_reminder(
            reminder_date=aware(2024, 1, 1),
            is_recurring=True,
            recurrence_pattern=Reminder.PATTERN_DAILY,
            recurrence_end_date=datetime.date(2024, 1, 2),
        )

        successor = reminder.mark_completed()

        self.assertEqual(successor.reminder_date, aware(2024, 1, 2))

    def test_interval_defaults_to_one(self):
        reminder = self.make_reminder(
            reminder_date=aware(2024, 1, 31),
            is_recurring=True,
            recurrence_pattern=Reminder.PATTERN_MONTHLY,
            recurrence_interval=None,
        )

        successor = reminder.mark_completed()

        # Calendar months: Jan 31 + 1 month lands on the last day of February
        self.assertEqual(successor.reminder_date, aware(2024, 2, 29))

    def test_recurring_without_pattern_creates_nothing(self):
        reminder = self.make_reminder(is_recurring=True, recurrence_pattern=None)

        self.assertIsNone(reminder.mark_completed())
        self.assertEqual(Reminder.objects.count(), 1)

    def test_unknown_pattern_creates_nothing(self):
        reminder = self.make_reminder(is_recurring=True, recurrence_pattern='yearly')

        self.assertIsNone(reminder.mark_completed())

    def test_not_recurring_creates_nothing(self):
        reminder = self.make_reminder(recurrence_pattern=Reminder.PATTERN_DAILY)

        self.assertIsNone(reminder.mark_completed())

    def test_completing_a_completed_reminder_is_a_no_op(self):
        reminder = self.make_reminder(is_recurring=True, recurrence_pattern=Reminder.PATTERN_DAILY)
        stale = Reminder.objects.get(pk=reminder.pk)

        self.assertIsNotNone(reminder.mark_completed())
        self.assertIsNone(reminder.mark_completed())
        self.assertIsNone(stale.mark_completed())

        self.assertEqual(stale.status, Reminder.STATUS_COMPLETED)
        self.assertEqual(Reminder.objects.count(), 2)
        self.assertEqual(Reminder.objects.pending().count(), 1)

    def test_successor_creation_failure_rolls_back_completion(self):
        """
        Test: inserting the next occurrence fails

        Expected: the reminder is still pending
        """
        reminder = self.make_reminder(is_recurring=True, recurrence_pattern=Reminder.PATTERN_DAILY)

        with mock.patch.object(Reminder.objects, 'create', side_effect=RuntimeError('insert failed')):
            with self.assertRaises(RuntimeError):
                reminder.mark_completed()

        self.assertEqual(Reminder.objects.get(pk=reminder.pk).status, Reminder.STATUS_PENDING)


class SnoozeTest(ReminderTestMixin, TestCase):

    def test_snooze_future_reminder_counts_from_its_date(self):
        due = timezone.now() + datetime.timedelta(hours=5)
        reminder = self.make_reminder(reminder_date=due)

        reminder.snooze(30)

        reminder.refresh_from_db()
        self.assertEqual(reminder.reminder_date, due + datetime.timedelta(minutes=30))
        self.assertEqual(reminder.snoozed_until, reminder.reminder_date)
        self.assertEqual(reminder.status, Reminder.STATUS_PENDING)

    def test_snooze_late_reminder_counts_from_now(self):
        reminder = self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(days=3))

        before = timezone.now()
        reminder.snooze()
        after = timezone.now()

        self.assertGreaterEqual(reminder.reminder_date, before + datetime.timedelta(minutes=60))
        self.assertLessEqual(reminder.reminder_date, after + datetime.timedelta(minutes=60))

    def test_snooze_never_creates_an_occurrence(self):
        reminder = self.make_reminder(is_recurring=True, recurrence_pattern=Reminder.PATTERN_DAILY)

        reminder.snooze(15)

        self.assertEqual(Reminder.objects.count(), 1)


class HelpersAndScopesTest(ReminderTestMixin, TestCase):

    def test_helpers(self):
        late = self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(hours=1))
        soon = self.make_reminder(reminder_date=timezone.now() + datetime.timedelta(hours=3))
        far = self.make_reminder(reminder_date=timezone.now() + datetime.timedelta(days=5))
        done = self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(days=1), status=Reminder.STATUS_COMPLETED)

        self.assertTrue(late.is_overdue())
        self.assertFalse(soon.is_overdue())
        self.assertFalse(done.is_overdue())
        self.assertTrue(soon.is_due_soon())
        self.assertFalse(far.is_due_soon())
        self.assertFalse(late.is_due_soon())

    def test_scopes(self):
        late = self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(days=1))
        next_week = self.make_reminder(reminder_date=timezone.now() + datetime.timedelta(days=6))
        next_month = self.make_reminder(reminder_date=timezone.now() + datetime.timedelta(days=30))
        self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(days=1), status=Reminder.STATUS_COMPLETED)

        self.assertEqual(Reminder.objects.pending().count(), 3)
        self.assertCountEqual(Reminder.objects.overdue(), [late])
        self.assertCountEqual(Reminder.objects.upcoming(), [next_week])
        self.assertCountEqual(Reminder.objects.upcoming(days=31), [next_week, next_month])

    def test_log_overdue_reminders_task(self):
        self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(days=1))
        self.make_reminder(reminder_date=timezone.now() - datetime.timedelta(hours=2))
        self.make_reminder()

        with self.assertLogs('apps.reminders.tasks', level='WARNING') as logs:
            result = log_overdue_reminders()

        self.assertEqual(result, '2 overdue reminders.')
        self.assertIn('sales@test.com', logs.output[0])
