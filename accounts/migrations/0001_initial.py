# Generated migration for Accounts app

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('contact_number', models.CharField(blank=True, help_text='Phone number in international format', max_length=20, null=True, verbose_name='Contact Number')),
                ('whatsapp_opt_in', models.BooleanField(default=False, help_text='User agreed to receive WhatsApp messages', verbose_name='WhatsApp Opt-in')),
                ('push_token', models.CharField(blank=True, max_length=255, null=True, verbose_name='Push Token')),
                ('referral_code', models.SlugField(blank=True, help_text="Prefix for this user's node boss referral links", null=True, unique=True, verbose_name='Referral Code')),
                ('timezone', models.CharField(blank=True, help_text='Used only to display send times to this user', max_length=64, null=True, verbose_name='Timezone')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Profile',
                'verbose_name_plural': 'Profiles',
            },
        ),
    ]
