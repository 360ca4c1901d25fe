import datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models, transaction
from django.db.models import Sum
from django.utils import timezone


class OpportunityStage(models.TextChoices):
    """Pipeline position of an opportunity"""

    NOUVEAU = 'nouveau', 'Nouveau'
    QUALIFICATION = 'qualification', 'Qualification'
    PROPOSITION_ENVOYEE = 'proposition_envoyee', 'Proposition envoyée'
    NEGOCIATION = 'negociation', 'Négociation'
    CONVERTI = 'converti', 'Converti'
    PERDU = 'perdu', 'Perdu'

    @property
    def color(self):
        return STAGE_COLORS[self.value]

    @property
    def default_probability(self):
        return STAGE_PROBABILITIES[self.value]

    @property
    def is_terminal(self):
        return self.value in TERMINAL_STAGES

    @classmethod
    def options(cls):
        """[{'value', 'label', 'color', 'probability'}, ...] for the front-end"""
        return [
            {
                'value': stage.value,
                'label': stage.label,
                'color': stage.color,
                'probability': stage.default_probability,
            }
            for stage in cls
        ]


STAGE_COLORS = {
    'nouveau': 'blue',
    'qualification': 'yellow',
    'proposition_envoyee': 'purple',
    'negociation': 'orange',
    'converti': 'green',
    'perdu': 'red',
}

STAGE_PROBABILITIES = {
    'nouveau': 10,
    'qualification': 25,
    'proposition_envoyee': 50,
    'negociation': 75,
    'converti': 100,
    'perdu': 0,
}

# Won / lost: no further progression is tracked
TERMINAL_STAGES = frozenset({OpportunityStage.CONVERTI.value, OpportunityStage.PERDU.value})


def stage_label(value):
    """Human label of a stage value, tolerant to values outside the enum"""
    try:
        return OpportunityStage(value).label
    except ValueError:
        return (value or '').replace('_', ' ').capitalize()


class OpportunityQuerySet(models.QuerySet):

    def open(self):
        return self.exclude(stage__in=TERMINAL_STAGES)

    def won(self):
        return self.filter(stage=OpportunityStage.CONVERTI)

    def lost(self):
        return self.filter(stage=OpportunityStage.PERDU)

    def closing_this_month(self):
        today = timezone.localdate()
        return self.filter(expected_close_date__year=today.year, expected_close_date__month=today.month)

    def overdue(self):
        # expected_close_date is a day; it is overdue as soon as that day has started
        return self.open().filter(expected_close_date__isnull=False, expected_close_date__lte=timezone.localdate())

    def visible_to(self, user):
        """Admins see the whole pipeline, sales users their own opportunities"""
        if user.is_admin():
            return self
        return self.filter(user=user)

    def total_amount(self):
        return self.aggregate(total=Sum('amount'))['total'] or Decimal('0')

    def weighted_total(self):
        return sum(
            (amount * probability / Decimal(100) for amount, probability in self.values_list('amount', 'probability')),
            Decimal('0'),
        )


class Opportunity(models.Model):

    # Basic Information
    name = models.CharField(max_length=255, help_text='Deal name')
    description = models.TextField(blank=True)
    contact = models.ForeignKey('contacts.Contact', on_delete=models.CASCADE, related_name='opportunities', help_text='Main contact of the deal')
    company = models.ForeignKey('contacts.Company', on_delete=models.SET_NULL, null=True, blank=True, related_name='opportunities')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='opportunities', help_text='Sales user who owns the deal')

    # Money & pipeline
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0'), validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, default='EUR')
    probability = models.PositiveSmallIntegerField(default=10, validators=[MinValueValidator(0), MaxValueValidator(100)], help_text='Win probability in percent, set by the sales user')
    stage = models.CharField(max_length=30, choices=OpportunityStage.choices, default=OpportunityStage.NOUVEAU, db_index=True)
    expected_close_date = models.DateField(null=True, blank=True, db_index=True)
    actual_close_date = models.DateField(null=True, blank=True, help_text='Set when the deal is won or lost')

    # Qualification
    lead_source = models.CharField(max_length=255, blank=True)
    loss_reason = models.TextField(blank=True)
    next_step = models.TextField(blank=True)
    competitors = models.TextField(blank=True)
    custom_fields = models.JSONField(default=dict, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OpportunityQuerySet.as_manager()

    class Meta:
        verbose_name = 'Opportunity'
        verbose_name_plural = 'Opportunities'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'stage'], name='opportuniti_company_9c2d1e_idx'),
        ]

    def __str__(self):
        return f"{self.name} - {self.get_stage_display()}"

    # DERIVED FIELDS (computed on every read, never stored)
    @property
    def stage_label(self):
        return stage_label(self.stage)

    @property
    def stage_color(self):
        return STAGE_COLORS.get(self.stage, 'gray')

    @property
    def is_closed(self):
        return self.stage in TERMINAL_STAGES

    @property
    def weighted_amount(self):
        """amount * probability / 100"""
        return Decimal(str(self.amount or 0)) * Decimal(self.probability or 0) / Decimal(100)

    @property
    def days_until_close(self):
        """Signed number of days to the expected close date (negative when past)"""
        if not self.expected_close_date:
            return None
        return (self.expected_close_date - timezone.localdate()).days

    @property
    def is_overdue(self):
        if not self.expected_close_date or self.is_closed:
            return False
        start_of_day = timezone.make_aware(
            datetime.datetime.combine(self.expected_close_date, datetime.time.min)
        )
        return timezone.now() > start_of_day

    # BUSINESS LOGIC
    def log_activity(self, activity_type, title, actor=None, **fields):
        """Append one entry to the activity trail"""
        return OpportunityActivity.objects.create(
            opportunity=self,
            user=actor,
            type=activity_type,
            title=title,
            **fields
        )

    def apply_changes(self, changes, actor=None):
        """
        Update the opportunity and write its audit trail in one transaction

        A stage change appends a 'stage_change' activity, an amount change an
        'amount_change' activity. Moving into a won/lost stage stamps
        actual_close_date. The comparison is made against the row as it is
        stored, not against in-memory values.

        Args:
            changes (dict): field name -> new value
            actor (User): who made the change (None = system)

        Returns:
            list: the activities that were created
        """
        with transaction.atomic():
            persisted = Opportunity.objects.select_for_update().get(pk=self.pk)

            for field, value in changes.items():
                setattr(self, field, value)

            stage_changed = self.stage != persisted.stage
            amount_changed = Decimal(str(self.amount)) != persisted.amount

            if stage_changed and self.stage in TERMINAL_STAGES:
                self.actual_close_date = timezone.localdate()

            self.save()

            activities = []
            if stage_changed:
                activities.append(self.log_activity(
                    OpportunityActivity.TYPE_STAGE_CHANGE,
                    "Changement d'étape",
                    actor=actor,
                    description="L'étape a été modifiée",
                    old_value=persisted.stage,
                    new_value=self.stage,
                ))
            if amount_changed:
                activities.append(self.log_activity(
                    OpportunityActivity.TYPE_AMOUNT_CHANGE,
                    'Changement de montant',
                    actor=actor,
                    description='Le montant a été modifié',
                    old_value=str(persisted.amount),
                    new_value=str(Decimal(str(self.amount)).quantize(Decimal('0.01'))),
                ))

        return activities

    def replace_products(self, products):
        """Drop the current product lines and insert the given ones"""
        self.products.all().delete()
        return [
            OpportunityProduct.objects.create(opportunity=self, **product)
            for product in products
        ]

    def duplicate(self, actor=None):
        """
        Copy of the opportunity restarted at the top of the pipeline

        Stage back to 'nouveau' (10 %), expected close one month from today,
        no actual close date. Product lines are copied.
        """
        with transaction.atomic():
            copy = Opportunity.objects.create(
                name=f"{self.name} (Copie)",
                description=self.description,
                contact=self.contact,
                company=self.company,
                user=actor or self.user,
                amount=self.amount,
                currency=self.currency,
                probability=OpportunityStage.NOUVEAU.default_probability,
                stage=OpportunityStage.NOUVEAU,
                expected_close_date=timezone.localdate() + relativedelta(months=1),
                actual_close_date=None,
                lead_source=self.lead_source,
                next_step=self.next_step,
                competitors=self.competitors,
                custom_fields=self.custom_fields,
            )
            copy.replace_products(
                self.products.values('name', 'quantity', 'unit_price')
            )
            copy.log_activity(
                OpportunityActivity.TYPE_NOTE,
                'Opportunité dupliquée',
                actor=actor,
                description=f'Copie de « {self.name} »',
            )
        return copy

    def to_dict(self, detail=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'amount': float(self.amount),
            'currency': self.currency,
            'probability': self.probability,
            'stage': self.stage,
            'stage_label': self.stage_label,
            'stage_color': self.stage_color,
            'expected_close_date': self.expected_close_date.isoformat() if self.expected_close_date else None,
            'actual_close_date': self.actual_close_date.isoformat() if self.actual_close_date else None,
            'weighted_amount': float(self.weighted_amount),
            'days_until_close': self.days_until_close,
            'is_overdue': self.is_overdue,
            'contact': {
                'id': self.contact.id,
                'name': self.contact.name,
                'email': self.contact.email,
            } if self.contact_id else None,
            'company': {'id': self.company.id, 'name': self.company.name} if self.company_id else None,
            'user': self.user.to_summary() if self.user_id else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if detail:
            data.update({
                'lead_source': self.lead_source,
                'loss_reason': self.loss_reason,
                'next_step': self.next_step,
                'competitors': self.competitors,
                'custom_fields': self.custom_fields,
                'products': [product.to_dict() for product in self.products.all()],
                'activities': [activity.to_dict() for activity in self.activities.select_related('user')],
            })
        return data


class OpportunityProduct(models.Model):

    opportunity = models.ForeignKey(Opportunity, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('1'))
    unit_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0'), help_text='quantity x unit price')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Opportunity Product'
        verbose_name_plural = 'Opportunity Products'
        ordering = ['id']

    def __str__(self):
        return f"{self.name} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.total = (Decimal(self.quantity) * Decimal(self.unit_price)).quantize(Decimal('0.01'))
        super().save(*args, **kwargs)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'quantity': float(self.quantity),
            'unit_price': float(self.unit_price),
            'total': float(self.total),
        }


class OpportunityActivityQuerySet(models.QuerySet):

    def pending_tasks(self):
        return self.filter(type=OpportunityActivity.TYPE_TASK, completed_at__isnull=True, scheduled_at__isnull=False)

    def completed(self):
        return self.filter(completed_at__isnull=False)


class OpportunityActivity(models.Model):
    """
    Append-only trail of what happened on an opportunity

    Rows are written by Opportunity methods (creation, stage/amount changes,
    duplication) and by sales users logging calls, meetings, notes...
    Only completed_at is ever touched afterwards.
    """

    TYPE_NOTE = 'note'
    TYPE_CALL = 'call'
    TYPE_EMAIL = 'email'
    TYPE_MEETING = 'meeting'
    TYPE_TASK = 'task'
    TYPE_STAGE_CHANGE = 'stage_change'
    TYPE_AMOUNT_CHANGE = 'amount_change'
    TYPE_OTHER = 'other'

    TYPE_CHOICES = [
        (TYPE_NOTE, 'Note'),
        (TYPE_CALL, 'Appel'),
        (TYPE_EMAIL, 'Email'),
        (TYPE_MEETING, 'Réunion'),
        (TYPE_TASK, 'Tâche'),
        (TYPE_STAGE_CHANGE, "Changement d'étape"),
        (TYPE_AMOUNT_CHANGE, 'Changement de montant'),
        (TYPE_OTHER, 'Autre'),
    ]

    # Types a user can log by hand; the two *_change types are system-only
    MANUAL_TYPES = [TYPE_NOTE, TYPE_CALL, TYPE_EMAIL, TYPE_MEETING, TYPE_TASK, TYPE_OTHER]

    opportunity = models.ForeignKey(Opportunity, on_delete=models.CASCADE, related_name='activities')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='opportunity_activities', help_text='Who performed this action (empty = system)')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    old_value = models.CharField(max_length=255, blank=True, null=True)
    new_value = models.CharField(max_length=255, blank=True, null=True)
    scheduled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OpportunityActivityQuerySet.as_manager()

    class Meta:
        verbose_name = 'Opportunity Activity'
        verbose_name_plural = 'Opportunity Activities'
        ordering = ['-created_at', '-id']

    def __str__(self):
        user_name = self.user.get_full_name() if self.user else 'System'
        return f"{user_name}: {self.title}"

    def mark_completed(self):
        self.completed_at = timezone.now()
        self.save(update_fields=['completed_at', 'updated_at'])

    def to_dict(self):
        return {
            'id': self.id,
            'opportunity_id': self.opportunity_id,
            'type': self.type,
            'type_display': self.get_type_display(),
            'title': self.title,
            'description': self.description,
            'old_value': self.old_value,
            'new_value': self.new_value,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'user': self.user.to_summary() if self.user else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
