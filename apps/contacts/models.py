from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.opportunities.models import OpportunityStage


class Company(models.Model):

    STATUS_PROSPECT = 'Prospect'
    STATUS_CLIENT = 'Client'
    STATUS_INACTIVE = 'Inactif'
    STATUS_CHOICES = [
        (STATUS_PROSPECT, 'Prospect'),
        (STATUS_CLIENT, 'Client'),
        (STATUS_INACTIVE, 'Inactif'),
    ]

    # Basic Information
    name = models.CharField(max_length=255, help_text='Company name')
    domain = models.CharField(max_length=255, blank=True, help_text='Web domain (e.g. acme.fr)')
    industry = models.CharField(max_length=255, blank=True, help_text='Business sector')
    size = models.CharField(max_length=50, blank=True, help_text='Headcount bracket (e.g. 11-50)')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PROSPECT, db_index=True, help_text='Relationship with the company')
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='companies', help_text='Account owner')

    # Address
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    zipcode = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)

    notes = models.TextField(blank=True, help_text='Free notes about the company')

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Company'
        verbose_name_plural = 'Companies'
        ordering = ['name']

    def __str__(self):
        return self.name

    def to_dict(self, with_contacts_count=False):
        data = {
            'id': self.id,
            'name': self.name,
            'domain': self.domain,
            'industry': self.industry,
            'size': self.size,
            'status': self.status,
            'owner': self.owner.to_summary() if self.owner else None,
            'address': self.address,
            'city': self.city,
            'zipcode': self.zipcode,
            'country': self.country,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_contacts_count:
            data['contacts_count'] = self.contacts.count()
        return data


class Contact(models.Model):

    phone_validator = RegexValidator(regex=r'^\+?[\d\s.()-]{6,20}$', message=_('Enter a valid phone number.'))

    name = models.CharField(max_length=50, help_text="Contact's full name")
    email = models.EmailField(max_length=100, unique=True, null=True, blank=True, help_text='Email address (unique when set)')
    phone = models.CharField(max_length=20, blank=True, validators=[phone_validator], help_text='Phone number')
    address = models.TextField(blank=True)
    status = models.CharField(max_length=30, choices=OpportunityStage.choices, default=OpportunityStage.NOUVEAU, db_index=True, help_text='Position of the contact in the sales funnel')

    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True, related_name='contacts', help_text='Employer of the contact')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='contacts', help_text='Sales user who owns the contact')

    latitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)
    longitude = models.DecimalField(max_digits=10, decimal_places=7, null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Contact'
        verbose_name_plural = 'Contacts'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.email})" if self.email else self.name

    @property
    def first_name(self):
        return self.name.split()[0] if self.name else ''

    @property
    def status_label(self):
        return self.get_status_display()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'status': self.status,
            'status_label': self.status_label,
            'company': {'id': self.company.id, 'name': self.company.name} if self.company else None,
            'user': self.user.to_summary() if self.user else None,
            'latitude': float(self.latitude) if self.latitude is not None else None,
            'longitude': float(self.longitude) if self.longitude is not None else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
