from django import forms
from django.utils import timezone

from apps.contacts.models import Contact
from apps.opportunities.models import Opportunity
from .models import Reminder


class ReminderForm(forms.ModelForm):

    opportunity_id = forms.ModelChoiceField(queryset=Opportunity.objects.all(), required=False, error_messages={'invalid_choice': 'Unknown opportunity'})
    contact_id = forms.ModelChoiceField(queryset=Contact.objects.all(), required=False, error_messages={'invalid_choice': 'Unknown contact'})

    class Meta:
        model = Reminder
        fields = [
            'title', 'description', 'reminder_date', 'type', 'priority',
            'is_recurring', 'recurrence_pattern', 'recurrence_interval', 'recurrence_end_date',
        ]

        error_messages = {
            'title': {'required': 'Title is required'},
            'reminder_date': {'required': 'A reminder date is required', 'invalid': 'Enter a valid date/time'},
        }

    def clean(self):
        cleaned_data = super().clean()

        reminder_date = cleaned_data.get('reminder_date')
        end_date = cleaned_data.get('recurrence_end_date')
        if reminder_date and end_date and end_date <= timezone.localdate(reminder_date):
            self.add_error('recurrence_end_date', 'The recurrence end date must be after the reminder date')
        return cleaned_data

    def save(self, commit=True):
        reminder = super().save(commit=False)
        if 'opportunity_id' in self.data:
            reminder.opportunity = self.cleaned_data.get('opportunity_id')
        if 'contact_id' in self.data:
            reminder.contact = self.cleaned_data.get('contact_id')
        if commit:
            reminder.save()
        return reminder


class ReminderUpdateForm(ReminderForm):
    """Editing keeps the recurrence settings chosen at creation"""

    class Meta(ReminderForm.Meta):
        fields = ['title', 'description', 'reminder_date', 'type', 'priority']


class SnoozeForm(forms.Form):

    minutes = forms.IntegerField(min_value=1, max_value=60 * 24 * 30, required=False)

    def clean_minutes(self):
        return self.cleaned_data.get('minutes') or 60
