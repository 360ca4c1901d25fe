"""
Dashboard API Tests
===================

Test Coverage:
1. Stats - counts scoped to the request user, pipeline and weighted values, won this month
2. By stage - open stages only, in pipeline order, zero rows included
3. Recent activities - opportunity trail merged with reminders due within 7 days

Run tests:
    python manage.py test apps.core.tests.test_dashboard
"""

import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import Client, TestCase
from django.urls import reverse
from django.utils import timezone

from apps.contacts.models import Company, Contact
from apps.opportunities.models import Opportunity, OpportunityActivity, OpportunityStage
from apps.reminders.models import Reminder

User = get_user_model()


class DashboardTestCase(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', first_name='Marie', last_name='Curie')
        self.other = User.objects.create_user(email='other@test.com', password='testpass123')
        self.client.login(email='sales@test.com', password='testpass123')

        self.company = Company.objects.create(name='Acme', owner=self.user)
        self.contact = Contact.objects.create(name='Jean Dupont', company=self.company, user=self.user)

    def make_opportunity(self, **overrides):
        fields = {
            'name': 'Deal',
            'contact': self.contact,
            'company': self.company,
            'user': self.user,
            'amount': Decimal('1000'),
            'probability': 50,
        }
        fields.update(overrides)
        return Opportunity.objects.create(**fields)


class StatsTest(DashboardTestCase):

    def test_stats(self):
        self.make_opportunity(amount=Decimal('1000'), probability=50)
        self.make_opportunity(amount=Decimal('3000'), probability=10, stage=OpportunityStage.NEGOCIATION)
        self.make_opportunity(amount=Decimal('500'), stage=OpportunityStage.CONVERTI, actual_close_date=timezone.localdate())
        self.make_opportunity(
            amount=Decimal('700'),
            stage=OpportunityStage.CONVERTI,
            actual_close_date=timezone.localdate() - datetime.timedelta(days=400),
        )
        self.make_opportunity(amount=Decimal('9999'), user=self.other)
        Company.objects.create(name='Not mine', owner=self.other)

        response = self.client.get(reverse('core:stats'))

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['total_contacts'], 1)
        self.assertEqual(data['total_companies'], 1)
        self.assertEqual(data['total_documents'], 0)
        self.assertEqual(data['total_opportunities'], 4)
        self.assertEqual(data['open_opportunities'], 2)
        self.assertEqual(data['pipeline_value'], 4000.0)
        self.assertEqual(data['weighted_pipeline'], 800.0)
        self.assertEqual(data['won_this_month'], 500.0)
        self.assertEqual(data['opportunities_this_month'], 4)

    def test_requires_login(self):
        self.client.logout()

        self.assertEqual(self.client.get(reverse('core:stats')).status_code, 401)


class OpportunitiesByStageTest(DashboardTestCase):

    def test_open_stages_only(self):
        """
        Test: two deals in 'nouveau', one in 'negociation', one won

        Expected: four open stages in pipeline order, won deal not listed
        """
        self.make_opportunity(amount=Decimal('100'))
        self.make_opportunity(amount=Decimal('250.50'))
        self.make_opportunity(amount=Decimal('1000'), stage=OpportunityStage.NEGOCIATION)
        self.make_opportunity(amount=Decimal('5000'), stage=OpportunityStage.CONVERTI)

        data = self.client.get(reverse('core:opportunities_by_stage')).json()['data']

        self.assertEqual([row['stage'] for row in data], ['nouveau', 'qualification', 'proposition_envoyee', 'negociation'])
        self.assertEqual(data[0], {'name': 'Nouveau', 'stage': 'nouveau', 'color': 'blue', 'count': 2, 'amount': 350.5})
        self.assertEqual(data[1]['count'], 0)
        self.assertEqual(data[1]['amount'], 0.0)
        self.assertEqual(data[3]['amount'], 1000.0)


class RecentActivitiesTest(DashboardTestCase):

    def test_feed_merges_activities_and_reminders(self):
        opportunity = self.make_opportunity(name='Licences')
        opportunity.apply_changes({'stage': OpportunityStage.QUALIFICATION}, actor=self.user)

        foreign = self.make_opportunity(user=self.other)
        foreign.log_activity(OpportunityActivity.TYPE_CALL, 'Appel', actor=self.other)

        Reminder.objects.create(user=self.user, title='Relancer Jean', reminder_date=timezone.now() + datetime.timedelta(days=2))
        Reminder.objects.create(user=self.user, title='Trop loin', reminder_date=timezone.now() + datetime.timedelta(days=30))
        Reminder.objects.create(
            user=self.user,
            title='Fait',
            reminder_date=timezone.now() + datetime.timedelta(days=1),
            status=Reminder.STATUS_COMPLETED,
        )

        data = self.client.get(reverse('core:recent_activities')).json()['data']

        self.assertEqual([item['type'] for item in data], ['reminder', 'opportunity'])

        reminder, activity = data
        self.assertEqual(reminder['title'], 'Rappel: Relancer Jean')
        self.assertEqual(reminder['description'], 'À venir')
        self.assertEqual(reminder['color'], 'yellow')

        self.assertEqual(activity['title'], "Changement d'étape")
        self.assertEqual(activity['description'], 'Licences - Par Marie Curie')
        self.assertEqual(activity['subject_id'], opportunity.id)
        self.assertEqual(activity['icon'], 'git-branch')

    def test_overdue_reminder_is_flagged(self):
        Reminder.objects.create(user=self.user, title='En retard', reminder_date=timezone.now() - datetime.timedelta(hours=3))

        item = self.client.get(reverse('core:recent_activities')).json()['data'][0]

        self.assertEqual(item['description'], 'En retard!')
        self.assertEqual(item['color'], 'red')

    def test_limit(self):
        opportunity = self.make_opportunity()
        for index in range(5):
            opportunity.log_activity(OpportunityActivity.TYPE_CALL, f'Appel {index}', actor=self.user)

        data = self.client.get(reverse('core:recent_activities'), {'limit': 2}).json()['data']

        self.assertEqual(len(data), 2)
        self.assertEqual(data[0]['title'], 'Appel 4')
