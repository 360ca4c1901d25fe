from django import forms

from apps.contacts.models import Company, Contact
from .models import OpportunityActivity, OpportunityStage


class OpportunityForm(forms.Form):
    """
    Validates the JSON payload of create/update

    Foreign keys travel as contact_id / company_id like the rest of the API;
    to_model_fields() maps the cleaned data onto Opportunity field names.
    """

    name = forms.CharField(max_length=255, error_messages={'required': 'Name is required', 'max_length': 'Name is too long (max 255 characters)'})
    description = forms.CharField(required=False)
    contact_id = forms.ModelChoiceField(queryset=Contact.objects.all(), error_messages={'required': 'A contact is required', 'invalid_choice': 'Unknown contact'})
    company_id = forms.ModelChoiceField(queryset=Company.objects.all(), required=False, error_messages={'invalid_choice': 'Unknown company'})
    amount = forms.DecimalField(max_digits=15, decimal_places=2, min_value=0)
    currency = forms.CharField(max_length=3, required=False)
    probability = forms.IntegerField(min_value=0, max_value=100)
    stage = forms.ChoiceField(choices=OpportunityStage.choices, error_messages={'invalid_choice': 'Unknown stage "%(value)s"'})
    expected_close_date = forms.DateField(error_messages={'required': 'Expected close date is required'})
    lead_source = forms.CharField(max_length=255, required=False)
    loss_reason = forms.CharField(required=False)
    next_step = forms.CharField(required=False)
    competitors = forms.CharField(required=False)
    custom_fields = forms.JSONField(required=False)

    # Optional keys left out of the payload keep their stored value
    OPTIONAL_FIELDS = (
        'description', 'company_id', 'currency', 'lead_source',
        'loss_reason', 'next_step', 'competitors', 'custom_fields',
    )

    def to_model_fields(self):
        data = {
            field: value for field, value in self.cleaned_data.items()
            if field not in self.OPTIONAL_FIELDS or field in self.data
        }
        data['contact'] = data.pop('contact_id')
        if 'company_id' in data:
            data['company'] = data.pop('company_id')
        if not data.get('currency', True):
            del data['currency']
        if 'custom_fields' in data and data['custom_fields'] is None:
            data['custom_fields'] = {}
        return data


class OpportunityProductForm(forms.Form):

    name = forms.CharField(max_length=255)
    quantity = forms.DecimalField(max_digits=10, decimal_places=2, min_value=1)
    unit_price = forms.DecimalField(max_digits=15, decimal_places=2, min_value=0)


def clean_products(raw_products):
    """
    Validate a list of product lines

    Returns:
        tuple: (products, errors) - errors use 'products.<index>.<field>' keys
    """
    if raw_products is None:
        return None, {}

    if not isinstance(raw_products, list):
        return None, {'products': ['Products must be a list']}

    products = []
    errors = {}
    for index, raw in enumerate(raw_products):
        form = OpportunityProductForm(raw if isinstance(raw, dict) else {})
        if form.is_valid():
            products.append(form.cleaned_data)
        else:
            for field, messages in form.errors.items():
                errors[f'products.{index}.{field}'] = [str(message) for message in messages]

    return products, errors


class OpportunityActivityForm(forms.Form):
    """Activities a user logs by hand (no stage/amount changes)"""

    type = forms.ChoiceField(choices=[
        (value, label) for value, label in OpportunityActivity.TYPE_CHOICES
        if value in OpportunityActivity.MANUAL_TYPES
    ])
    title = forms.CharField(max_length=255)
    description = forms.CharField(required=False)
    scheduled_at = forms.DateTimeField(required=False)


class TimelineNoteForm(forms.Form):

    content = forms.CharField(max_length=5000)


class StageMoveForm(forms.Form):

    stage = forms.ChoiceField(choices=OpportunityStage.choices)
    probability = forms.IntegerField(min_value=0, max_value=100, required=False)


class ForecastForm(forms.Form):

    PERIOD_MONTHS = {'quarter': 3, 'semester': 6, 'year': 12}

    # Midpoint of each scenario's adjustment range
    SCENARIO_FACTORS = {
        'pessimistic': 0.7,
        'realistic': 0.95,
        'optimistic': 1.2,
    }

    period = forms.ChoiceField(choices=[(key, key) for key in PERIOD_MONTHS], required=False)
    scenario = forms.ChoiceField(choices=[(key, key) for key in SCENARIO_FACTORS], required=False)

    def clean_period(self):
        return self.cleaned_data.get('period') or 'quarter'

    def clean_scenario(self):
        return self.cleaned_data.get('scenario') or 'realistic'


class ExportForm(forms.Form):

    format = forms.ChoiceField(choices=[('csv', 'CSV'), ('excel', 'Excel')], required=False)
    stage = forms.ChoiceField(choices=OpportunityStage.choices, required=False)

    def clean_format(self):
        return self.cleaned_data.get('format') or 'csv'
