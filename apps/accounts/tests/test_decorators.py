"""
Tests for Custom Decorators
============================

Tests all access decorators to ensure every refusal is a JSON response.

Test Cases:
1. api_login_required decorator
2. admin_required decorator
3. owner_or_admin_required decorator
4. User role helpers used by the decorators

Run tests:
    python manage.py test apps.accounts.tests.test_decorators
"""

import json

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.http import JsonResponse
from django.test import RequestFactory, TestCase
from django.utils import timezone

from apps.accounts.decorators import admin_required, api_login_required, owner_or_admin_required
from apps.reminders.models import Reminder

User = get_user_model()


def ok_view(request, *args, **kwargs):
    return JsonResponse({'success': True})


class DecoratorTestCase(TestCase):

    def setUp(self):
        self.factory = RequestFactory()

        self.sales = User.objects.create_user(
            email='sales@test.com',
            password='testpass123',
            first_name='Claire',
            last_name='Martin',
        )
        self.other = User.objects.create_user(email='other@test.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role=User.ROLE_ADMIN)

    def get(self, user, path='/api/test/'):
        request = self.factory.get(path)
        request.user = user
        return request


class ApiLoginRequiredDecoratorTest(DecoratorTestCase):
    """Test @api_login_required decorator"""

    def test_authenticated_user_passes(self):
        response = api_login_required(ok_view)(self.get(self.sales))

        self.assertEqual(response.status_code, 200)

    def test_anonymous_gets_json_401(self):
        """
        Test: anonymous request

        Expected: 401 JSON, no redirect to a login page
        """
        response = api_login_required(ok_view)(self.get(AnonymousUser()))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response['Content-Type'], 'application/json')
        data = json.loads(response.content)
        self.assertFalse(data['success'])
        self.assertEqual(data['error'], 'Authentication required')


class AdminRequiredDecoratorTest(DecoratorTestCase):
    """Test @admin_required decorator"""

    def test_admin_passes(self):
        self.assertEqual(admin_required(ok_view)(self.get(self.admin)).status_code, 200)

    def test_superuser_passes(self):
        superuser = User.objects.create_superuser(email='root@test.com', password='testpass123')

        self.assertEqual(admin_required(ok_view)(self.get(superuser)).status_code, 200)

    def test_sales_user_is_forbidden(self):
        response = admin_required(ok_view)(self.get(self.sales))

        self.assertEqual(response.status_code, 403)
        self.assertEqual(json.loads(response.content)['error'], 'Admin access required')

    def test_anonymous(self):
        self.assertEqual(admin_required(ok_view)(self.get(AnonymousUser())).status_code, 401)


class OwnerOrAdminRequiredDecoratorTest(DecoratorTestCase):
    """Test @owner_or_admin_required decorator"""

    def setUp(self):
        super().setUp()
        self.reminder = Reminder.objects.create(user=self.sales, title='Relancer', reminder_date=timezone.now())
        self.view = owner_or_admin_required(Reminder)(ok_view)

    def test_access_matrix(self):
        """
        Test: owner, admin and another sales user on an existing reminder

        Expected: 200, 200, 403
        """
        self.assertEqual(self.view(self.get(self.sales), pk=self.reminder.pk).status_code, 200)
        self.assertEqual(self.view(self.get(self.admin), pk=self.reminder.pk).status_code, 200)

        response = self.view(self.get(self.other), pk=self.reminder.pk)
        self.assertEqual(response.status_code, 403)
        self.assertFalse(json.loads(response.content)['success'])

    def test_missing_object(self):
        response = self.view(self.get(self.admin), pk=999999)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.content)['error'], 'Reminder not found')

    def test_custom_pk_param(self):
        view = owner_or_admin_required(Reminder, pk_param='reminder_id')(ok_view)

        self.assertEqual(view(self.get(self.sales), reminder_id=self.reminder.pk).status_code, 200)
        self.assertEqual(view(self.get(self.other), reminder_id=self.reminder.pk).status_code, 403)

    def test_anonymous(self):
        self.assertEqual(self.view(self.get(AnonymousUser()), pk=self.reminder.pk).status_code, 401)


class UserRoleTest(DecoratorTestCase):

    def test_roles(self):
        self.assertFalse(self.sales.is_admin())
        self.assertTrue(self.sales.is_sales())
        self.assertTrue(self.admin.is_admin())

    def test_summary(self):
        self.assertEqual(self.sales.to_summary(), {
            'id': self.sales.id,
            'name': 'Claire Martin',
            'email': 'sales@test.com',
            'initials': 'CM',
        })
        self.assertEqual(self.other.get_full_name(), 'other@test.com')
