"""
Contacts & Companies API Tests
==============================

Test Coverage:
1. Companies - list/search, create, update permissions, delete
2. Company contacts - list, attach, detach
3. Contacts - create, validation (unique email, phone), search, update
4. CSV / Excel import - Celery task run eagerly, unreadable workbooks

Run tests:
    python manage.py test apps.contacts.tests.test_views
"""

import io
import json

import openpyxl
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from apps.contacts.forms import ContactImportRowForm
from apps.contacts.models import Company, Contact
from apps.contacts.tasks import import_contacts
from apps.opportunities.models import OpportunityStage

User = get_user_model()


class ContactsAPITestCase(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', first_name='Claire', last_name='Martin')
        self.other = User.objects.create_user(email='other@test.com', password='testpass123')
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role=User.ROLE_ADMIN)

        self.company = Company.objects.create(name='Acme', domain='acme.fr', city='Lyon', owner=self.user)
        self.client.login(email='sales@test.com', password='testpass123')

    def send(self, method, url, data):
        return getattr(self.client, method)(url, data=json.dumps(data), content_type='application/json')


class CompanyViewsTest(ContactsAPITestCase):

    def test_list_with_search(self):
        Company.objects.create(name='Globex', city='Paris')

        response = self.client.get(reverse('contacts:company_collection'), {'q': 'lyon'})

        self.assertEqual(response.status_code, 200)
        companies = response.json()['companies']
        self.assertEqual([company['name'] for company in companies], ['Acme'])
        self.assertEqual(companies[0]['contacts_count'], 0)

    def test_create_defaults_owner_and_status(self):
        response = self.send('post', reverse('contacts:company_collection'), {'name': 'Initech', 'domain': 'https://www.initech.com/'})

        self.assertEqual(response.status_code, 201)
        company = Company.objects.get(name='Initech')
        self.assertEqual(company.owner, self.user)
        self.assertEqual(company.status, Company.STATUS_PROSPECT)
        self.assertEqual(company.domain, 'initech.com')

    def test_create_requires_name(self):
        response = self.send('post', reverse('contacts:company_collection'), {'domain': 'x.fr'})

        self.assertEqual(response.status_code, 422)
        self.assertIn('name', response.json()['errors'])

    def test_create_rejects_unknown_status(self):
        response = self.send('post', reverse('contacts:company_collection'), {'name': 'Initech', 'status': 'Partenaire'})
        self.assertEqual(response.status_code, 422)

    def test_update_by_owner(self):
        response = self.send('put', reverse('contacts:company_detail', args=[self.company.id]), {'name': 'Acme SA', 'status': 'Client'})

        self.assertEqual(response.status_code, 200)
        self.company.refresh_from_db()
        self.assertEqual(self.company.name, 'Acme SA')
        self.assertEqual(self.company.status, 'Client')

    def test_update_by_other_user_is_forbidden(self):
        """
        Test: A sales user edits a company they do not own

        Expected: 403
        """
        self.client.login(email='other@test.com', password='testpass123')

        response = self.send('put', reverse('contacts:company_detail', args=[self.company.id]), {'name': 'Hacked'})

        self.assertEqual(response.status_code, 403)

    def test_delete_keeps_contacts(self):
        contact = Contact.objects.create(name='Jean', company=self.company)

        response = self.client.delete(reverse('contacts:company_detail', args=[self.company.id]))

        self.assertEqual(response.status_code, 200)
        contact.refresh_from_db()
        self.assertIsNone(contact.company)


class CompanyContactsViewsTest(ContactsAPITestCase):

    def test_list_contacts_of_company(self):
        Contact.objects.create(name='Jean', company=self.company)
        Contact.objects.create(name='Paul')

        response = self.client.get(reverse('contacts:company_contacts', args=[self.company.id]))

        self.assertEqual([contact['name'] for contact in response.json()['contacts']], ['Jean'])

    def test_attach(self):
        contact = Contact.objects.create(name='Paul')

        response = self.send('post', reverse('contacts:company_contact_attach', args=[self.company.id]), {'contact_id': contact.id})

        self.assertEqual(response.status_code, 200)
        contact.refresh_from_db()
        self.assertEqual(contact.company, self.company)

    def test_attach_contact_of_another_company(self):
        other_company = Company.objects.create(name='Globex')
        contact = Contact.objects.create(name='Paul', company=other_company)

        response = self.send('post', reverse('contacts:company_contact_attach', args=[self.company.id]), {'contact_id': contact.id})

        self.assertEqual(response.status_code, 422)
        self.assertIn('contact_id', response.json()['errors'])

    def test_detach(self):
        contact = Contact.objects.create(name='Jean', company=self.company)

        response = self.client.post(reverse('contacts:company_contact_detach', args=[self.company.id, contact.id]))

        self.assertEqual(response.status_code, 200)
        contact.refresh_from_db()
        self.assertIsNone(contact.company)

    def test_detach_contact_not_in_company(self):
        contact = Contact.objects.create(name='Paul')

        response = self.client.post(reverse('contacts:company_contact_detach', args=[self.company.id, contact.id]))

        self.assertEqual(response.status_code, 404)


class ContactViewsTest(ContactsAPITestCase):

    def test_create(self):
        response = self.send('post', reverse('contacts:contact_collection'), {
            'name': 'Jean Dupont',
            'email': 'Jean@Acme.fr',
            'phone': '+33 6 12 34 56 78',
            'company_id': self.company.id,
        })

        self.assertEqual(response.status_code, 201)
        contact = Contact.objects.get()
        self.assertEqual(contact.email, 'jean@acme.fr')
        self.assertEqual(contact.user, self.user)
        self.assertEqual(contact.company, self.company)
        self.assertEqual(contact.status, 'nouveau')
        self.assertEqual(response.json()['contact']['status_label'], 'Nouveau')

    def test_duplicate_email_is_rejected(self):
        Contact.objects.create(name='Jean', email='jean@acme.fr')

        response = self.send('post', reverse('contacts:contact_collection'), {'name': 'Autre Jean', 'email': 'jean@acme.fr'})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()['errors']['email'], ['Cet e-mail est déjà utilisé.'])

    def test_name_longer_than_50_characters(self):
        response = self.send('post', reverse('contacts:contact_collection'), {'name': 'x' * 51})

        self.assertEqual(response.status_code, 422)
        self.assertIn('name', response.json()['errors'])

    def test_invalid_phone(self):
        response = self.send('post', reverse('contacts:contact_collection'), {'name': 'Jean', 'phone': 'call me'})

        self.assertEqual(response.status_code, 422)
        self.assertIn('phone', response.json()['errors'])

    def test_search(self):
        Contact.objects.create(name='Jean Dupont', company=self.company)
        Contact.objects.create(name='Marie Curie')

        response = self.client.get(reverse('contacts:contact_collection'), {'q': 'acme'})

        self.assertEqual([contact['name'] for contact in response.json()['contacts']], ['Jean Dupont'])

    def test_update_keeps_email_unique_check_for_itself(self):
        contact = Contact.objects.create(name='Jean', email='jean@acme.fr', user=self.user)

        response = self.send('put', reverse('contacts:contact_detail', args=[contact.id]), {'name': 'Jean D.', 'email': 'jean@acme.fr', 'status': 'qualification'})

        self.assertEqual(response.status_code, 200)
        contact.refresh_from_db()
        self.assertEqual(contact.status, 'qualification')

    def test_delete_someone_elses_contact(self):
        contact = Contact.objects.create(name='Jean', user=self.other)

        response = self.client.delete(reverse('contacts:contact_detail', args=[contact.id]))

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Contact.objects.filter(pk=contact.id).exists())


class ContactImportTest(ContactsAPITestCase):

    def test_import_creates_valid_rows_and_skips_invalid(self):
        """
        Test: CSV with a header, two valid rows, a row without email and a duplicate

        Expected: 202, two contacts created for the importing user, two skipped
        """
        Contact.objects.create(name='Existing', email='dup@acme.fr')
        content = (
            'name;email;phone;address\n'
            'Jean Dupont;jean@acme.fr;0612345678;1 rue de la Paix\n'
            'Marie Curie;marie@acme.fr;;\n'
            'Sans Email;;;\n'
            'Doublon;dup@acme.fr;;\n'
        )
        upload = SimpleUploadedFile('contacts.csv', content.encode('utf-8'), content_type='text/csv')

        response = self.client.post(reverse('contacts:contact_import'), {'file': upload})

        self.assertEqual(response.status_code, 202)
        data = response.json()
        self.assertEqual(data['rows'], 4)
        self.assertEqual(data['summary']['created'], 2)
        self.assertEqual(data['summary']['skipped'], 2)
        self.assertEqual(Contact.objects.filter(user=self.user).count(), 2)

    def test_import_rejects_other_extensions(self):
        upload = SimpleUploadedFile('contacts.pdf', b'%PDF', content_type='application/pdf')

        response = self.client.post(reverse('contacts:contact_import'), {'file': upload})

        self.assertEqual(response.status_code, 422)
        self.assertIn('file', response.json()['errors'])

    @override_settings(CONTACT_IMPORT_MAX_FILE_SIZE=10)
    def test_import_rejects_large_files(self):
        upload = SimpleUploadedFile('contacts.csv', b'name,email\n' * 10, content_type='text/csv')

        response = self.client.post(reverse('contacts:contact_import'), {'file': upload})

        self.assertEqual(response.status_code, 422)

    def test_task_directly(self):
        rows = [
            {'row_num': 1, 'name': 'Jean', 'email': 'jean@acme.fr', 'phone': '', 'address': ''},
            {'row_num': 2, 'name': 'Jean bis', 'email': 'jean@acme.fr', 'phone': '', 'address': ''},
        ]

        results = import_contacts(rows, self.user.id)

        self.assertEqual(results['created'], 1)
        self.assertEqual(results['skipped'], 1)
        self.assertTrue(results['errors'][0].startswith('Row 2'))

    def test_import_row_form_without_status(self):
        form = ContactImportRowForm({'name': 'Jean', 'email': 'Jean@Acme.fr', 'phone': '', 'address': ''})

        self.assertTrue(form.is_valid(), form.errors)
        self.assertNotIn('status', form.fields)
        contact = form.save()
        self.assertEqual(contact.email, 'jean@acme.fr')
        self.assertEqual(contact.status, OpportunityStage.NOUVEAU)

    def test_import_excel_workbook(self):
        """
        Test: .xlsx upload with a header, a numeric phone cell and a blank row

        Expected: 202, both contacts created from the first sheet
        """
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.append(['Nom', 'Email', 'Téléphone', 'Adresse'])
        sheet.append(['Jean Dupont', 'jean@acme.fr', 612345678, '1 rue de la Paix'])
        sheet.append([None, None, None, None])
        sheet.append(['Marie Curie', 'marie@acme.fr', None, None])
        buffer = io.BytesIO()
        workbook.save(buffer)
        upload = SimpleUploadedFile(
            'contacts.xlsx',
            buffer.getvalue(),
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )

        response = self.client.post(reverse('contacts:contact_import'), {'file': upload})

        self.assertEqual(response.status_code, 202)
        data = response.json()
        self.assertEqual(data['rows'], 2)
        self.assertEqual(data['summary']['created'], 2)
        jean = Contact.objects.get(email='jean@acme.fr')
        self.assertEqual(jean.phone, '612345678')
        self.assertEqual(jean.user, self.user)

    def test_import_unreadable_workbook(self):
        upload = SimpleUploadedFile('contacts.xlsx', b'not a zip archive', content_type='application/octet-stream')

        response = self.client.post(reverse('contacts:contact_import'), {'file': upload})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()['errors']['file'], ['The workbook cannot be read'])
        self.assertFalse(Contact.objects.exists())
