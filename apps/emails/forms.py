from django import forms
from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from apps.contacts.models import Contact
from apps.opportunities.models import Opportunity
from .models import EmailTemplate


class EmailTemplateForm(forms.ModelForm):

    class Meta:
        model = EmailTemplate
        fields = ['name', 'category', 'subject', 'body', 'is_shared', 'is_active']

        error_messages = {
            'name': {'required': 'Le nom du template est obligatoire.'},
            'category': {'required': 'La catégorie est obligatoire.', 'invalid_choice': 'Catégorie inconnue.'},
            'subject': {'required': "L'objet est obligatoire.", 'max_length': "L'objet ne peut pas dépasser 255 caractères."},
            'body': {'required': 'Le contenu est obligatoire.'},
        }

    def clean_is_shared(self):
        if 'is_shared' not in self.data:
            return self.instance.is_shared
        return self.cleaned_data['is_shared']

    def clean_is_active(self):
        # A checkbox left out of a JSON payload is not a "false"
        if 'is_active' not in self.data:
            return self.instance.is_active
        return self.cleaned_data['is_active']

    def save(self, commit=True):
        template = super().save(commit=False)
        template.refresh_variables()
        if commit:
            template.save()
        return template


class TemplateContextForm(forms.Form):
    """Which contact / opportunity fills the placeholders"""

    contact_id = forms.ModelChoiceField(queryset=Contact.objects.select_related('company'), required=False, error_messages={'invalid_choice': 'Unknown contact'})
    opportunity_id = forms.ModelChoiceField(queryset=Opportunity.objects.all(), required=False, error_messages={'invalid_choice': 'Unknown opportunity'})


def split_addresses(value):
    addresses = [address.strip() for address in (value or '').split(',') if address.strip()]
    for address in addresses:
        try:
            validate_email(address)
        except ValidationError:
            raise ValidationError(f'Adresse invalide : {address}')
    return addresses


class SendEmailForm(TemplateContextForm):

    to = forms.EmailField(error_messages={'required': 'Le destinataire est obligatoire.', 'invalid': 'Veuillez entrer une adresse email valide.'})
    cc = forms.CharField(required=False)
    bcc = forms.CharField(required=False)
    subject = forms.CharField(max_length=255)
    body = forms.CharField()

    def clean_cc(self):
        return split_addresses(self.cleaned_data.get('cc'))

    def clean_bcc(self):
        return split_addresses(self.cleaned_data.get('bcc'))
