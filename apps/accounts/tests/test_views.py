"""
User Management API Tests
=========================

Test Coverage:
1. User list - admin only, search / role / status filters, open deal counts
2. Toggle status - self, superuser protection

Run tests:
    python manage.py test apps.accounts.tests.test_views
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import Client, TestCase
from django.urls import reverse

from apps.contacts.models import Contact
from apps.opportunities.models import Opportunity, OpportunityStage

User = get_user_model()


class UserAPITestCase(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', first_name='Alice', role=User.ROLE_ADMIN)
        self.sales = User.objects.create_user(email='sales@test.com', password='testpass123', first_name='Bruno', last_name='Petit')
        self.client.login(email='admin@test.com', password='testpass123')


class UserListTest(UserAPITestCase):

    def test_sales_users_are_forbidden(self):
        """
        Test: a sales user opens the team list

        Expected: 403 JSON
        """
        self.client.login(email='sales@test.com', password='testpass123')

        response = self.client.get(reverse('accounts:user_list'))

        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()['success'])

    def test_anonymous(self):
        self.client.logout()

        self.assertEqual(self.client.get(reverse('accounts:user_list')).status_code, 401)

    def test_list_with_open_deal_counts(self):
        contact = Contact.objects.create(name='Jean Dupont')
        Opportunity.objects.create(name='A', contact=contact, user=self.sales, amount=Decimal('100'))
        Opportunity.objects.create(name='B', contact=contact, user=self.sales, amount=Decimal('100'), stage=OpportunityStage.PERDU)

        data = self.client.get(reverse('accounts:user_list')).json()

        self.assertEqual([user['email'] for user in data['users']], ['admin@test.com', 'sales@test.com'])
        bruno = data['users'][1]
        self.assertEqual(bruno['name'], 'Bruno Petit')
        self.assertEqual(bruno['role'], 'sales')
        self.assertEqual(bruno['open_deals'], 1)
        self.assertEqual(data['pagination']['total'], 2)

    def test_filters(self):
        User.objects.create_user(email='gone@test.com', password='testpass123', is_active=False)

        response = self.client.get(reverse('accounts:user_list'), {'role': 'sales', 'status': 'active'})
        self.assertEqual([user['email'] for user in response.json()['users']], ['sales@test.com'])

        response = self.client.get(reverse('accounts:user_list'), {'q': 'petit'})
        self.assertEqual([user['email'] for user in response.json()['users']], ['sales@test.com'])

        response = self.client.get(reverse('accounts:user_list'), {'status': 'inactive'})
        self.assertEqual([user['email'] for user in response.json()['users']], ['gone@test.com'])


class ToggleStatusTest(UserAPITestCase):

    def test_deactivate_and_reactivate(self):
        url = reverse('accounts:user_toggle_status', args=[self.sales.id])

        response = self.client.post(url)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['is_active'])

        response = self.client.post(url)
        self.assertTrue(response.json()['is_active'])
        self.sales.refresh_from_db()
        self.assertTrue(self.sales.is_active)

    def test_cannot_deactivate_yourself(self):
        response = self.client.post(reverse('accounts:user_toggle_status', args=[self.admin.id]))

        self.assertEqual(response.status_code, 422)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

    def test_superuser_can_deactivate_an_admin(self):
        """
        Test: a superuser deactivates the only role admin

        Expected: allowed, the superuser still counts as an active admin
        """
        root = User.objects.create_superuser(email='root@test.com', password='testpass123')
        self.client.login(email='root@test.com', password='testpass123')

        response = self.client.post(reverse('accounts:user_toggle_status', args=[self.admin.id]))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(root.is_last_active_admin())

    def test_admin_cannot_touch_superuser(self):
        root = User.objects.create_superuser(email='root@test.com', password='testpass123')

        response = self.client.post(reverse('accounts:user_toggle_status', args=[root.id]))

        self.assertEqual(response.status_code, 403)

    def test_sales_user_forbidden(self):
        self.client.login(email='sales@test.com', password='testpass123')

        response = self.client.post(reverse('accounts:user_toggle_status', args=[self.admin.id]))

        self.assertEqual(response.status_code, 403)

    def test_unknown_user(self):
        self.assertEqual(self.client.post(reverse('accounts:user_toggle_status', args=[999])).status_code, 404)
