"""
Opportunity Model Tests
=======================

Test Coverage:
1. apply_changes - stage/amount audit trail, close date, rollback
2. Derived fields - weighted_amount, days_until_close, is_overdue
3. QuerySet scopes - open/won/lost/overdue/closing_this_month/visible_to
4. duplicate()
5. OpportunityProduct total

Run tests:
    python manage.py test apps.opportunities.tests.test_models
"""

import datetime
from decimal import Decimal
from unittest import mock

from dateutil.relativedelta import relativedelta
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from apps.contacts.models import Company, Contact
from apps.opportunities.models import (
    Opportunity,
    OpportunityActivity,
    OpportunityProduct,
    OpportunityStage,
)

User = get_user_model()


class OpportunityTestMixin:

    def setUp(self):
        self.user = User.objects.create_user(
            email='sales@test.com',
            password='testpass123',
            first_name='Claire',
            last_name='Martin',
        )
        self.company = Company.objects.create(name='Acme', owner=self.user)
        self.contact = Contact.objects.create(
            name='Jean Dupont',
            email='jean@acme.fr',
            company=self.company,
            user=self.user,
        )

    def make_opportunity(self, **overrides):
        fields = {
            'name': 'Licences 2025',
            'contact': self.contact,
            'company': self.company,
            'user': self.user,
            'amount': Decimal('1000.00'),
            'probability': 25,
            'stage': OpportunityStage.QUALIFICATION,
            'expected_close_date': timezone.localdate() + datetime.timedelta(days=30),
        }
        fields.update(overrides)
        return Opportunity.objects.create(**fields)


class ApplyChangesTest(OpportunityTestMixin, TestCase):
    """Audit trail written by Opportunity.apply_changes"""

    def test_stage_change_logs_exactly_one_activity(self):
        """
        Test: Changing the stage appends one stage_change activity

        Expected: old/new values are the stage strings, actor recorded
        """
        opportunity = self.make_opportunity()

        activities = opportunity.apply_changes({'stage': OpportunityStage.NEGOCIATION}, actor=self.user)

        self.assertEqual(len(activities), 1)
        trail = opportunity.activities.filter(type=OpportunityActivity.TYPE_STAGE_CHANGE)
        self.assertEqual(trail.count(), 1)

        activity = trail.get()
        self.assertEqual(activity.old_value, 'qualification')
        self.assertEqual(activity.new_value, 'negociation')
        self.assertEqual(activity.user, self.user)
        self.assertEqual(activity.title, "Changement d'étape")

    def test_amount_change_logs_amount_activity(self):
        opportunity = self.make_opportunity()

        opportunity.apply_changes({'amount': Decimal('1500')}, actor=self.user)

        activity = opportunity.activities.get(type=OpportunityActivity.TYPE_AMOUNT_CHANGE)
        self.assertEqual(activity.old_value, '1000.00')
        self.assertEqual(activity.new_value, '1500.00')
        self.assertFalse(opportunity.activities.filter(type=OpportunityActivity.TYPE_STAGE_CHANGE).exists())

    def test_stage_and_amount_change_log_two_independent_activities(self):
        opportunity = self.make_opportunity()

        activities = opportunity.apply_changes(
            {'stage': OpportunityStage.PROPOSITION_ENVOYEE, 'amount': Decimal('2000')},
            actor=self.user,
        )

        self.assertEqual(
            sorted(activity.type for activity in activities),
            [OpportunityActivity.TYPE_AMOUNT_CHANGE, OpportunityActivity.TYPE_STAGE_CHANGE],
        )

    def test_unchanged_values_log_nothing(self):
        """
        Test: Re-saving the same stage and amount

        Expected: no activity, other fields still saved
        """
        opportunity = self.make_opportunity()

        activities = opportunity.apply_changes(
            {'stage': OpportunityStage.QUALIFICATION, 'amount': Decimal('1000'), 'next_step': 'Relancer'},
            actor=self.user,
        )

        self.assertEqual(activities, [])
        self.assertEqual(opportunity.activities.count(), 0)
        opportunity.refresh_from_db()
        self.assertEqual(opportunity.next_step, 'Relancer')

    def test_comparison_uses_stored_values(self):
        """
        Test: In-memory edits made before apply_changes are still audited

        Expected: the stage stored in the database is the old value
        """
        opportunity = self.make_opportunity()
        opportunity.stage = OpportunityStage.NEGOCIATION

        opportunity.apply_changes({}, actor=self.user)

        activity = opportunity.activities.get(type=OpportunityActivity.TYPE_STAGE_CHANGE)
        self.assertEqual(activity.old_value, 'qualification')

    def test_system_change_has_no_actor(self):
        opportunity = self.make_opportunity()

        opportunity.apply_changes({'stage': OpportunityStage.NEGOCIATION})

        self.assertIsNone(opportunity.activities.get().user)

    def test_terminal_stage_sets_actual_close_date(self):
        opportunity = self.make_opportunity()

        opportunity.apply_changes({'stage': OpportunityStage.CONVERTI}, actor=self.user)

        opportunity.refresh_from_db()
        self.assertEqual(opportunity.actual_close_date, timezone.localdate())

    def test_lost_stage_sets_actual_close_date(self):
        opportunity = self.make_opportunity()

        opportunity.apply_changes({'stage': OpportunityStage.PERDU}, actor=self.user)

        opportunity.refresh_from_db()
        self.assertEqual(opportunity.actual_close_date, timezone.localdate())

    def test_non_terminal_stage_leaves_actual_close_date(self):
        """
        Test: Reopening a won deal

        Expected: actual_close_date keeps its previous value
        """
        closed_on = timezone.localdate() - datetime.timedelta(days=10)
        opportunity = self.make_opportunity(stage=OpportunityStage.CONVERTI, actual_close_date=closed_on)

        opportunity.apply_changes({'stage': OpportunityStage.NEGOCIATION}, actor=self.user)

        opportunity.refresh_from_db()
        self.assertEqual(opportunity.actual_close_date, closed_on)

    def test_amount_change_alone_does_not_touch_close_date(self):
        opportunity = self.make_opportunity(stage=OpportunityStage.CONVERTI)

        opportunity.apply_changes({'amount': Decimal('10')}, actor=self.user)

        opportunity.refresh_from_db()
        self.assertIsNone(opportunity.actual_close_date)

    def test_failed_trail_write_rolls_back_update(self):
        """
        Test: The activity insert fails

        Expected: the stage update is rolled back with it
        """
        opportunity = self.make_opportunity()

        with mock.patch.object(Opportunity, 'log_activity', side_effect=RuntimeError('database is gone')):
            with self.assertRaises(RuntimeError):
                opportunity.apply_changes({'stage': OpportunityStage.CONVERTI}, actor=self.user)

        stored = Opportunity.objects.get(pk=opportunity.pk)
        self.assertEqual(stored.stage, OpportunityStage.QUALIFICATION)
        self.assertIsNone(stored.actual_close_date)
        self.assertEqual(stored.activities.count(), 0)


class DerivedFieldsTest(OpportunityTestMixin, TestCase):

    def test_weighted_amount(self):
        opportunity = self.make_opportunity(amount=Decimal('1000'), probability=25)
        self.assertEqual(opportunity.weighted_amount, Decimal('250'))

    def test_weighted_amount_with_zero_probability(self):
        opportunity = self.make_opportunity(amount=Decimal('1000'), probability=0)
        self.assertEqual(opportunity.weighted_amount, Decimal('0'))

    def test_weighted_amount_with_zero_amount(self):
        opportunity = self.make_opportunity(amount=Decimal('0'), probability=75)
        self.assertEqual(opportunity.weighted_amount, Decimal('0'))

    def test_days_until_close(self):
        today = timezone.localdate()
        self.assertEqual(self.make_opportunity(expected_close_date=today + datetime.timedelta(days=5)).days_until_close, 5)
        self.assertEqual(self.make_opportunity(expected_close_date=today - datetime.timedelta(days=3)).days_until_close, -3)
        self.assertIsNone(self.make_opportunity(expected_close_date=None).days_until_close)

    def test_is_overdue_for_open_past_deal(self):
        opportunity = self.make_opportunity(expected_close_date=timezone.localdate() - datetime.timedelta(days=1))
        self.assertTrue(opportunity.is_overdue)

    def test_is_overdue_false_for_future_deal(self):
        opportunity = self.make_opportunity(expected_close_date=timezone.localdate() + datetime.timedelta(days=1))
        self.assertFalse(opportunity.is_overdue)

    def test_is_overdue_false_for_won_deal(self):
        """
        Test: A won deal whose close date is long gone

        Expected: never overdue
        """
        opportunity = self.make_opportunity(
            stage=OpportunityStage.CONVERTI,
            expected_close_date=timezone.localdate() - datetime.timedelta(days=60),
        )
        self.assertFalse(opportunity.is_overdue)

    def test_is_overdue_false_without_close_date(self):
        self.assertFalse(self.make_opportunity(expected_close_date=None).is_overdue)

    def test_stage_label_and_color(self):
        opportunity = self.make_opportunity(stage=OpportunityStage.PROPOSITION_ENVOYEE)
        self.assertEqual(opportunity.stage_label, 'Proposition envoyée')
        self.assertEqual(opportunity.stage_color, 'purple')

    def test_to_dict_serializes_amounts_as_floats(self):
        data = self.make_opportunity(amount=Decimal('1234.56'), probability=50).to_dict()
        self.assertEqual(data['amount'], 1234.56)
        self.assertEqual(data['weighted_amount'], 617.28)
        self.assertEqual(data['contact']['name'], 'Jean Dupont')


class OpportunityQuerySetTest(OpportunityTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        today = timezone.localdate()
        self.open_deal = self.make_opportunity(name='Open', expected_close_date=today + datetime.timedelta(days=40))
        self.late_deal = self.make_opportunity(name='Late', expected_close_date=today - datetime.timedelta(days=2))
        self.won_deal = self.make_opportunity(name='Won', stage=OpportunityStage.CONVERTI, expected_close_date=today - datetime.timedelta(days=2))
        self.lost_deal = self.make_opportunity(name='Lost', stage=OpportunityStage.PERDU)

    def test_open_won_lost(self):
        self.assertCountEqual(Opportunity.objects.open(), [self.open_deal, self.late_deal])
        self.assertCountEqual(Opportunity.objects.won(), [self.won_deal])
        self.assertCountEqual(Opportunity.objects.lost(), [self.lost_deal])

    def test_overdue_excludes_terminal_stages(self):
        self.assertCountEqual(Opportunity.objects.overdue(), [self.late_deal])

    def test_closing_this_month(self):
        today = timezone.localdate()
        this_month = self.make_opportunity(name='This month', expected_close_date=today.replace(day=1))
        self.assertIn(this_month, Opportunity.objects.closing_this_month())
        next_month = self.make_opportunity(name='Next month', expected_close_date=today.replace(day=1) + relativedelta(months=1))
        self.assertNotIn(next_month, Opportunity.objects.closing_this_month())

    def test_visible_to(self):
        other = User.objects.create_user(email='other@test.com', password='testpass123')
        admin = User.objects.create_user(email='admin@test.com', password='testpass123', role=User.ROLE_ADMIN)
        theirs = self.make_opportunity(name='Theirs', user=other)

        self.assertNotIn(theirs, Opportunity.objects.visible_to(self.user))
        self.assertIn(theirs, Opportunity.objects.visible_to(admin))

    def test_totals(self):
        self.assertEqual(Opportunity.objects.open().total_amount(), Decimal('2000'))
        self.assertEqual(Opportunity.objects.open().weighted_total(), Decimal('500'))
        self.assertEqual(Opportunity.objects.none().total_amount(), Decimal('0'))


class DuplicateTest(OpportunityTestMixin, TestCase):

    def test_duplicate_restarts_pipeline(self):
        """
        Test: Duplicating a won deal

        Expected: copy at 'nouveau', 10 %, closes in a month, products copied
        """
        opportunity = self.make_opportunity(
            stage=OpportunityStage.CONVERTI,
            probability=100,
            actual_close_date=timezone.localdate(),
        )
        OpportunityProduct.objects.create(opportunity=opportunity, name='Licence', quantity=2, unit_price=Decimal('100'))

        copy = opportunity.duplicate(actor=self.user)

        self.assertEqual(copy.name, 'Licences 2025 (Copie)')
        self.assertEqual(copy.stage, OpportunityStage.NOUVEAU)
        self.assertEqual(copy.probability, 10)
        self.assertIsNone(copy.actual_close_date)
        self.assertEqual(copy.expected_close_date, timezone.localdate() + relativedelta(months=1))
        self.assertEqual(copy.products.count(), 1)
        self.assertEqual(copy.products.get().total, Decimal('200.00'))
        self.assertEqual(copy.activities.get().title, 'Opportunité dupliquée')
        self.assertEqual(opportunity.products.count(), 1)


class OpportunityProductTest(OpportunityTestMixin, TestCase):

    def test_total_is_quantity_times_unit_price(self):
        opportunity = self.make_opportunity()
        product = OpportunityProduct.objects.create(
            opportunity=opportunity,
            name='Formation',
            quantity=Decimal('3'),
            unit_price=Decimal('19.99'),
        )
        self.assertEqual(product.total, Decimal('59.97'))
