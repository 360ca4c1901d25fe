from django import forms
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from apps.opportunities.models import OpportunityStage
from .models import Company, Contact

User = get_user_model()


class CompanyForm(forms.ModelForm):

    owner_id = forms.ModelChoiceField(queryset=User.objects.filter(is_active=True), required=False, error_messages={'invalid_choice': 'Unknown user'})

    class Meta:
        model = Company
        fields = ['name', 'domain', 'industry', 'size', 'status', 'address', 'city', 'zipcode', 'country', 'notes']

        error_messages = {
            'name': {'required': 'Le nom de la société est obligatoire.', 'max_length': 'Name is too long (max 255 characters)'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Status is optional in payloads, the stored value (or default) is kept
        self.fields['status'].required = False

    def clean_status(self):
        return self.cleaned_data.get('status') or self.instance.status or Company.STATUS_PROSPECT

    def clean_domain(self):
        domain = self.cleaned_data.get('domain', '').strip().lower()
        for prefix in ('https://', 'http://', 'www.'):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        return domain.rstrip('/')

    def save(self, commit=True):
        company = super().save(commit=False)
        if 'owner_id' in self.data:
            company.owner = self.cleaned_data.get('owner_id')
        if commit:
            company.save()
        return company


class ContactForm(forms.ModelForm):

    company_id = forms.ModelChoiceField(queryset=Company.objects.all(), required=False, error_messages={'invalid_choice': 'Unknown company'})

    class Meta:
        model = Contact
        fields = ['name', 'email', 'phone', 'address', 'status', 'latitude', 'longitude']

        error_messages = {
            'name': {'required': 'Le nom du contact est obligatoire.', 'max_length': 'Le nom ne doit pas dépasser 50 caractères.'},
            'email': {'invalid': 'Veuillez entrer une adresse email valide.', 'unique': 'Cet e-mail est déjà utilisé.'},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'status' in self.fields:
            self.fields['status'].required = False

    def clean_email(self):
        email = self.cleaned_data.get('email')
        if email:
            return email.strip().lower()
        return None

    def clean_status(self):
        return self.cleaned_data.get('status') or self.instance.status or OpportunityStage.NOUVEAU

    def save(self, commit=True):
        contact = super().save(commit=False)
        if 'company_id' in self.data:
            contact.company = self.cleaned_data.get('company_id')
        if commit:
            contact.save()
        return contact


class ContactImportRowForm(ContactForm):
    """One imported row; imported contacts must have an email, status stays the default"""

    class Meta(ContactForm.Meta):
        fields = ['name', 'email', 'phone', 'address']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['email'].required = True


class ContactImportForm(forms.Form):

    file = forms.FileField(error_messages={'required': 'Please choose a CSV or Excel file'})

    def clean_file(self):
        uploaded = self.cleaned_data['file']

        if not uploaded.name.lower().endswith(('.csv', '.txt', '.xlsx')):
            raise ValidationError('Only .csv and .xlsx files are accepted')

        if uploaded.size > settings.CONTACT_IMPORT_MAX_FILE_SIZE:
            max_mb = settings.CONTACT_IMPORT_MAX_FILE_SIZE // (1024 * 1024)
            raise ValidationError(f'File is too large (max {max_mb} MB)')

        return uploaded


class AttachContactForm(forms.Form):

    contact_id = forms.ModelChoiceField(queryset=Contact.objects.all(), error_messages={'invalid_choice': 'Unknown contact'})

    def __init__(self, *args, company=None, **kwargs):
        self.company = company
        super().__init__(*args, **kwargs)

    def clean_contact_id(self):
        contact = self.cleaned_data['contact_id']
        if contact.company_id and contact.company_id != getattr(self.company, 'id', None):
            raise ValidationError('This contact is already attached to a company.')
        return contact
