import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Company',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Company name', max_length=255)),
                ('domain', models.CharField(blank=True, help_text='Web domain (e.g. acme.fr)', max_length=255)),
                ('industry', models.CharField(blank=True, help_text='Business sector', max_length=255)),
                ('size', models.CharField(blank=True, help_text='Headcount bracket (e.g. 11-50)', max_length=50)),
                ('status', models.CharField(choices=[('Prospect', 'Prospect'), ('Client', 'Client'), ('Inactif', 'Inactif')], db_index=True, default='Prospect', help_text='Relationship with the company', max_length=20)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('zipcode', models.CharField(blank=True, max_length=20)),
                ('country', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True, help_text='Free notes about the company')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(blank=True, help_text='Account owner', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='companies', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Company',
                'verbose_name_plural': 'Companies',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Contact',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text="Contact's full name", max_length=50)),
                ('email', models.EmailField(blank=True, help_text='Email address (unique when set)', max_length=100, null=True, unique=True)),
                ('phone', models.CharField(blank=True, help_text='Phone number', max_length=20, validators=[django.core.validators.RegexValidator(message='Enter a valid phone number.', regex='^\\+?[\\d\\s.()-]{6,20}$')])),
                ('address', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('nouveau', 'Nouveau'), ('qualification', 'Qualification'), ('proposition_envoyee', 'Proposition envoyée'), ('negociation', 'Négociation'), ('converti', 'Converti'), ('perdu', 'Perdu')], db_index=True, default='nouveau', help_text='Position of the contact in the sales funnel', max_length=30)),
                ('latitude', models.DecimalField(blank=True, decimal_places=7, max_digits=10, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=7, max_digits=10, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(blank=True, help_text='Employer of the contact', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contacts', to='contacts.company')),
                ('user', models.ForeignKey(blank=True, help_text='Sales user who owns the contact', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contacts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Contact',
                'verbose_name_plural': 'Contacts',
                'ordering': ['-created_at'],
            },
        ),
    ]
