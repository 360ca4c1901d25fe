# Models:
# 1. User - email-login sales user (AUTH_USER_MODEL)
#
# Ownership of CRM records (contacts, opportunities, reminders, documents,
# email templates) is always a foreign key to this model; admins bypass it.


from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _


class UserQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def admins(self):
        return self.filter(models.Q(role=User.ROLE_ADMIN) | models.Q(is_superuser=True))


# USER MANAGER (email instead of username)
class UserManager(BaseUserManager.from_queryset(UserQuerySet)):

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError(_('Users must have an email address'))

        user = self.model(email=self.normalize_email(email).lower(), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        """
        Create a sales user (pass role='admin' for an admin without staff access)

        Example:
            User.objects.create_user('claire@acme.fr', 'secret', first_name='Claire', role='sales')
        """
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        """Superusers are CRM admins with Django admin access"""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self._create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    CRM user

    Sales users work on the records they own; admins see and edit every
    record. The phone and job title feed the {{user_*}} email variables.
    """

    ROLE_ADMIN = 'admin'
    ROLE_SALES = 'sales'
    ROLE_CHOICES = [
        (ROLE_ADMIN, _('Administrator')),
        (ROLE_SALES, _('Sales')),
    ]

    phone_validator = RegexValidator(regex=r'^\+?1?\d{9,15}$', message=_('Phone number must be entered in the format: +33612345678. Up to 15 digits allowed.'))

    email = models.EmailField(_('email address'), unique=True, max_length=255, help_text=_('Login, also used as Reply-To of sent emails'))
    first_name = models.CharField(_('first name'), max_length=50, blank=True)
    last_name = models.CharField(_('last name'), max_length=50, blank=True)
    phone = models.CharField(_('phone number'), validators=[phone_validator], max_length=17, blank=True, null=True)
    role = models.CharField(_('role'), max_length=20, choices=ROLE_CHOICES, default=ROLE_SALES, help_text=_('Admins see every record, sales users their own'))
    job_title = models.CharField(_('job title'), max_length=100, blank=True, help_text=_('e.g. Account Executive'))

    is_active = models.BooleanField(_('active'), default=True, help_text=_('Deactivate instead of deleting: owned records keep their owner.'))
    is_staff = models.BooleanField(_('staff status'), default=False, help_text=_('Can log into the Django admin site.'))
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['first_name', 'last_name', 'email']
        indexes = [
            models.Index(fields=['role', 'is_active'], name='accounts_us_role_3a1f2c_idx'),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.email})" if self.first_name else self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email

    def get_initials(self):
        if self.first_name and self.last_name:
            return f"{self.first_name[0]}{self.last_name[0]}".upper()
        return (self.first_name or self.email)[0].upper()

    # ROLE CHECKS
    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def is_sales(self):
        return self.role == self.ROLE_SALES

    def is_last_active_admin(self):
        if not self.is_active or not self.is_admin():
            return False
        return not User.objects.admins().active().exclude(pk=self.pk).exists()

    def can_manage(self, owner_id):
        """True when the user owns the record (by owner id) or is an admin"""
        return self.is_admin() or (owner_id is not None and owner_id == self.id)

    def to_summary(self):
        """Small JSON payload used wherever a user is embedded in an API response"""
        return {
            'id': self.id,
            'name': self.get_full_name(),
            'email': self.email,
            'initials': self.get_initials(),
        }
