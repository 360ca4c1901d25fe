from django import forms
from django.contrib.auth.forms import UserCreationForm, UserChangeForm
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _
from .models import User


def _unique_email(form):
    email = form.cleaned_data.get('email', '').lower().strip()
    others = User.objects.filter(email__iexact=email)
    if form.instance.pk:
        others = others.exclude(pk=form.instance.pk)
    if others.exists():
        raise ValidationError(_('A user with this email already exists.'))
    return email


# Admin "add user" page
class UserCreateForm(UserCreationForm):

    class Meta:
        model = User
        fields = ['email', 'first_name', 'last_name', 'phone', 'job_title', 'role']

    def clean_email(self):
        return _unique_email(self)


# Admin "change user" page
class UserEditForm(UserChangeForm):
    """The last active admin can be neither demoted nor deactivated"""

    class Meta:
        model = User
        fields = ['email', 'first_name', 'last_name', 'phone', 'job_title', 'role', 'is_active']

    def clean_email(self):
        return _unique_email(self)

    def clean(self):
        cleaned_data = super().clean()
        user = self.instance
        if not user.pk or user.is_superuser:
            return cleaned_data

        keeps_admin = cleaned_data.get('role') == User.ROLE_ADMIN and cleaned_data.get('is_active', True)
        if not keeps_admin and user.is_last_active_admin():
            raise ValidationError(_('The CRM needs at least one active administrator.'))
        return cleaned_data
