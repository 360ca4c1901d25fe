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
            name='EmailTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(choices=[('general', 'Général'), ('welcome', 'Bienvenue'), ('follow_up', 'Suivi'), ('proposal', 'Proposition'), ('negotiation', 'Négociation'), ('closing', 'Clôture'), ('thank_you', 'Remerciement'), ('meeting', 'Réunion'), ('information', 'Information')], db_index=True, default='general', max_length=30)),
                ('subject', models.CharField(max_length=255)),
                ('body', models.TextField()),
                ('variables', models.JSONField(blank=True, default=list, help_text='Placeholders found in the body')),
                ('is_active', models.BooleanField(default=True)),
                ('is_shared', models.BooleanField(db_index=True, default=False, help_text='Visible to every user')),
                ('usage_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(help_text='Author of the template', on_delete=django.db.models.deletion.CASCADE, related_name='email_templates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Email Template',
                'verbose_name_plural': 'Email Templates',
                'ordering': ['category', 'name'],
                'indexes': [models.Index(fields=['user', 'is_active'], name='emails_emai_user_id_5e8a3c_idx')],
            },
        ),
    ]
