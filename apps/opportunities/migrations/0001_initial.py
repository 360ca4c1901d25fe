from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('contacts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Opportunity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Deal name', max_length=255)),
                ('description', models.TextField(blank=True)),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=15, validators=[django.core.validators.MinValueValidator(0)])),
                ('currency', models.CharField(default='EUR', max_length=3)),
                ('probability', models.PositiveSmallIntegerField(default=10, help_text='Win probability in percent, set by the sales user', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('stage', models.CharField(choices=[('nouveau', 'Nouveau'), ('qualification', 'Qualification'), ('proposition_envoyee', 'Proposition envoyée'), ('negociation', 'Négociation'), ('converti', 'Converti'), ('perdu', 'Perdu')], db_index=True, default='nouveau', max_length=30)),
                ('expected_close_date', models.DateField(blank=True, db_index=True, null=True)),
                ('actual_close_date', models.DateField(blank=True, help_text='Set when the deal is won or lost', null=True)),
                ('lead_source', models.CharField(blank=True, max_length=255)),
                ('loss_reason', models.TextField(blank=True)),
                ('next_step', models.TextField(blank=True)),
                ('competitors', models.TextField(blank=True)),
                ('custom_fields', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='opportunities', to='contacts.company')),
                ('contact', models.ForeignKey(help_text='Main contact of the deal', on_delete=django.db.models.deletion.CASCADE, related_name='opportunities', to='contacts.contact')),
                ('user', models.ForeignKey(blank=True, help_text='Sales user who owns the deal', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='opportunities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Opportunity',
                'verbose_name_plural': 'Opportunities',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['company', 'stage'], name='opportuniti_company_9c2d1e_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OpportunityProduct',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('quantity', models.DecimalField(decimal_places=2, default=Decimal('1'), max_digits=10)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=15)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='quantity x unit price', max_digits=15)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('opportunity', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to='opportunities.opportunity')),
            ],
            options={
                'verbose_name': 'Opportunity Product',
                'verbose_name_plural': 'Opportunity Products',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='OpportunityActivity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('note', 'Note'), ('call', 'Appel'), ('email', 'Email'), ('meeting', 'Réunion'), ('task', 'Tâche'), ('stage_change', "Changement d'étape"), ('amount_change', 'Changement de montant'), ('other', 'Autre')], db_index=True, max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('old_value', models.CharField(blank=True, max_length=255, null=True)),
                ('new_value', models.CharField(blank=True, max_length=255, null=True)),
                ('scheduled_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('opportunity', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activities', to='opportunities.opportunity')),
                ('user', models.ForeignKey(blank=True, help_text='Who performed this action (empty = system)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='opportunity_activities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Opportunity Activity',
                'verbose_name_plural': 'Opportunity Activities',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
