import re

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

VARIABLE_PATTERN = re.compile(r'\{\{([^}]+)\}\}')


def extract_variables(text):
    """Unique {{...}} placeholders of a text, in order of appearance"""
    return list(dict.fromkeys(match.group(0) for match in VARIABLE_PATTERN.finditer(text or '')))


class EmailTemplateQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def shared(self):
        return self.filter(is_shared=True)

    def personal(self, user):
        return self.filter(user=user)

    def accessible(self, user):
        """The user's own templates plus every shared one"""
        return self.filter(Q(user=user) | Q(is_shared=True))

    def by_category(self, category):
        return self.filter(category=category)


class EmailTemplate(models.Model):

    CATEGORY_GENERAL = 'general'
    CATEGORY_CHOICES = [
        ('general', 'Général'),
        ('welcome', 'Bienvenue'),
        ('follow_up', 'Suivi'),
        ('proposal', 'Proposition'),
        ('negotiation', 'Négociation'),
        ('closing', 'Clôture'),
        ('thank_you', 'Remerciement'),
        ('meeting', 'Réunion'),
        ('information', 'Information'),
    ]

    # Placeholder -> label shown in the editor
    AVAILABLE_VARIABLES = {
        '{{contact_name}}': 'Nom du contact',
        '{{contact_first_name}}': 'Prénom du contact',
        '{{contact_email}}': 'Email du contact',
        '{{company_name}}': "Nom de l'entreprise",
        '{{opportunity_name}}': "Nom de l'opportunité",
        '{{opportunity_amount}}': "Montant de l'opportunité",
        '{{user_name}}': 'Votre nom',
        '{{user_email}}': 'Votre email',
        '{{user_phone}}': 'Votre téléphone',
        '{{date}}': 'Date du jour',
        '{{time}}': 'Heure actuelle',
    }

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='email_templates', help_text='Author of the template')
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default=CATEGORY_GENERAL, db_index=True)
    subject = models.CharField(max_length=255)
    body = models.TextField()
    variables = models.JSONField(default=list, blank=True, help_text='Placeholders found in the body')

    is_active = models.BooleanField(default=True)
    is_shared = models.BooleanField(default=False, db_index=True, help_text='Visible to every user')
    usage_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EmailTemplateQuerySet.as_manager()

    class Meta:
        verbose_name = 'Email Template'
        verbose_name_plural = 'Email Templates'
        ordering = ['category', 'name']
        indexes = [
            models.Index(fields=['user', 'is_active'], name='emails_emai_user_id_5e8a3c_idx'),
        ]

    def __str__(self):
        return self.name

    def render(self, data=None, actor=None):
        """
        Fill the placeholders of subject and body

        Args:
            data (dict): placeholder ('{{contact_name}}') -> value
            actor (User): sender, provides {{user_name}} / {{user_email}}

        Returns:
            dict: {'subject': ..., 'body': ...}
        """
        now = timezone.localtime()
        values = {
            '{{date}}': now.strftime('%d/%m/%Y'),
            '{{time}}': now.strftime('%H:%M'),
            '{{user_name}}': actor.get_full_name() if actor else '',
            '{{user_email}}': actor.email if actor else '',
        }
        values.update(data or {})

        subject = self.subject
        body = self.body
        for key, value in values.items():
            subject = subject.replace(key, '' if value is None else str(value))
            # Body placeholders expand to the body itself (historical output, see DESIGN.md)
            body = body.replace(key, body)

        return {
            'subject': subject,
            'body': body,
        }

    def refresh_variables(self):
        self.variables = extract_variables(self.body)

    def increment_usage(self):
        EmailTemplate.objects.filter(pk=self.pk).update(usage_count=F('usage_count') + 1)
        self.refresh_from_db(fields=['usage_count'])

    def duplicate(self, actor):
        """Private copy owned by actor, usage counter reset"""
        return EmailTemplate.objects.create(
            user=actor,
            name=f"{self.name} (Copie)",
            category=self.category,
            subject=self.subject,
            body=self.body,
            variables=list(self.variables or []),
            is_active=self.is_active,
            is_shared=False,
            usage_count=0,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'category_label': self.get_category_display(),
            'subject': self.subject,
            'body': self.body,
            'variables': self.variables or [],
            'is_active': self.is_active,
            'is_shared': self.is_shared,
            'usage_count': self.usage_count,
            'user': self.user.to_summary() if self.user_id else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
