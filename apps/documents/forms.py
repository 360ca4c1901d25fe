import json

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

from apps.contacts.models import Company, Contact
from .models import Document, upload_extension

LINK_TARGETS = {
    'company': Company,
    'contact': Contact,
}

SORTABLE_FIELDS = ['name', 'original_filename', 'extension', 'size_bytes', 'visibility', 'created_at', 'updated_at']


def decode_list(value, field_label):
    """Multipart payloads carry lists as JSON strings; JSON payloads as real lists"""
    if value in (None, ''):
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError(f'Les {field_label} doivent être un tableau.')
    if not isinstance(value, list):
        raise ValidationError(f'Les {field_label} doivent être un tableau.')
    return value


class TagListField(forms.Field):
    """["a", "b"], '["a", "b"]' or 'a, b' -> ['a', 'b']"""

    def to_python(self, value):
        if isinstance(value, str) and value.strip() and not value.strip().startswith('['):
            value = value.split(',')
        tags = decode_list(value, 'tags')

        cleaned = []
        for tag in tags:
            if not isinstance(tag, str):
                raise ValidationError('Chaque tag doit être une chaîne de caractères.')
            tag = tag.strip()
            if len(tag) > 30:
                raise ValidationError('Chaque tag ne peut pas dépasser 30 caractères.')
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned


def validate_upload(upload):
    """Extension whitelist and size limit, both from settings"""
    allowed = [ext.lower() for ext in settings.DOCUMENT_ALLOWED_EXTENSIONS]
    if upload_extension(upload.name) not in allowed:
        raise ValidationError(
            f"Le type de fichier n'est pas autorisé. Extensions acceptées : {', '.join(allowed)}"
        )

    max_mb = settings.DOCUMENT_MAX_UPLOAD_MB
    if upload.size > max_mb * 1024 * 1024:
        raise ValidationError(f'Le fichier ne peut pas dépasser {max_mb}MB.')


def resolve_link(link_type, link_id):
    model = LINK_TARGETS.get(link_type)
    if model is None:
        raise ValidationError('Le type doit être company ou contact.')
    try:
        return model.objects.get(pk=link_id)
    except model.DoesNotExist:
        raise ValidationError(f'{model._meta.verbose_name} #{link_id} introuvable.')


class DocumentUploadForm(forms.Form):

    file = forms.FileField(error_messages={'required': 'Un fichier est obligatoire.'})
    name = forms.CharField(max_length=255, required=False, error_messages={'max_length': 'Le nom ne peut pas dépasser 255 caractères.'})
    description = forms.CharField(max_length=1000, required=False, error_messages={'max_length': 'La description ne peut pas dépasser 1000 caractères.'})
    visibility = forms.ChoiceField(choices=Document.VISIBILITY_CHOICES, required=False, error_messages={'invalid_choice': 'La visibilité doit être private, team ou company.'})
    tags = TagListField(required=False)
    links = forms.Field(required=False)

    def clean_file(self):
        upload = self.cleaned_data['file']
        validate_upload(upload)
        return upload

    def clean_visibility(self):
        return self.cleaned_data.get('visibility') or Document.VISIBILITY_PRIVATE

    def clean_links(self):
        """[{'type': 'company', 'id': 3, 'role': 'contrat'}, ...] -> [(target, role), ...]"""
        links = decode_list(self.cleaned_data.get('links'), 'liens')

        resolved = []
        for link in links:
            if not isinstance(link, dict) or 'type' not in link or 'id' not in link:
                raise ValidationError('Le type et l\'ID sont obligatoires pour chaque lien.')
            try:
                link_id = int(link['id'])
            except (TypeError, ValueError):
                raise ValidationError('L\'ID doit être un nombre entier.')
            if link_id < 1:
                raise ValidationError('L\'ID doit être supérieur à 0.')

            role = link.get('role') or ''
            if len(role) > 50:
                raise ValidationError('Le rôle ne peut pas dépasser 50 caractères.')

            resolved.append((resolve_link(link['type'], link_id), role))
        return resolved


class DocumentUpdateForm(forms.Form):
    """Metadata only; keys missing from the payload keep their stored value"""

    name = forms.CharField(max_length=255, required=False)
    description = forms.CharField(required=False)
    visibility = forms.ChoiceField(choices=Document.VISIBILITY_CHOICES, required=False, error_messages={'invalid_choice': 'La visibilité doit être private, team ou company.'})
    tags = TagListField(required=False)

    def clean_name(self):
        name = self.cleaned_data.get('name', '').strip()
        if 'name' in self.data and not name:
            raise ValidationError('Le nom ne peut pas être vide.')
        return name

    def clean_visibility(self):
        visibility = self.cleaned_data.get('visibility')
        if 'visibility' in self.data and not visibility:
            raise ValidationError('La visibilité doit être private, team ou company.')
        return visibility

    def apply(self, document):
        for field in ('name', 'description', 'visibility'):
            if field in self.data:
                setattr(document, field, self.cleaned_data[field])
        document.save()

        if 'tags' in self.data:
            document.tags.set(self.cleaned_data['tags'], clear=True)
        return document


class VersionUploadForm(forms.Form):

    file = forms.FileField(error_messages={'required': 'Un fichier est obligatoire.'})

    def clean_file(self):
        upload = self.cleaned_data['file']
        validate_upload(upload)
        return upload


class DocumentLinkForm(forms.Form):

    type = forms.ChoiceField(choices=[(key, key) for key in LINK_TARGETS], error_messages={'invalid_choice': 'Le type doit être company ou contact.'})
    id = forms.IntegerField(min_value=1)
    role = forms.CharField(max_length=50, required=False, error_messages={'max_length': 'Le rôle ne peut pas dépasser 50 caractères.'})

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('type') and cleaned_data.get('id'):
            try:
                cleaned_data['target'] = resolve_link(cleaned_data['type'], cleaned_data['id'])
            except ValidationError as e:
                self.add_error('id', e)
        return cleaned_data


class DocumentFilterForm(forms.Form):
    """Query string of the document list"""

    search = forms.CharField(required=False)
    tag = forms.CharField(required=False)
    type = forms.CharField(required=False)
    owner_id = forms.IntegerField(required=False)
    company_id = forms.IntegerField(required=False)
    contact_id = forms.IntegerField(required=False)
    sort = forms.ChoiceField(
        required=False,
        choices=[(field, field) for field in SORTABLE_FIELDS] + [(f'-{field}', f'-{field}') for field in SORTABLE_FIELDS],
    )
