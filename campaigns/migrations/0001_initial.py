# Generated migration for Campaigns app

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('organizations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ContentItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('body', models.TextField(verbose_name='Body')),
                ('meta', models.JSONField(blank=True, default=dict, help_text='Free-form extras such as bible references', verbose_name='Meta')),
                ('content_type', models.CharField(choices=[('prayer', 'Prayer'), ('devotional', 'Devotional'), ('scripture', 'Scripture'), ('general', 'General')], default='general', max_length=20, verbose_name='Content Type')),
                ('is_ai_generated', models.BooleanField(default=False, verbose_name='AI Generated')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_content_items', to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='content_items', to='organizations.organization', verbose_name='Organization')),
            ],
            options={
                'verbose_name': 'Content Item',
                'verbose_name_plural': 'Content Items',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Campaign',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('start_date', models.DateField(verbose_name='Start Date')),
                ('end_date', models.DateField(blank=True, help_text='Inclusive. AI campaigns may leave it empty and run for content_count days', null=True, verbose_name='End Date')),
                ('send_time_local', models.TimeField(help_text='Same wall-clock time every day in the campaign timezone', verbose_name='Send Time (local)')),
                ('timezone', models.CharField(help_text='Copied from the organization when the campaign is created', max_length=64, verbose_name='Timezone')),
                ('channels', models.JSONField(default=list, verbose_name='Channels')),
                ('prompt', models.TextField(blank=True, null=True, verbose_name='Prompt')),
                ('content_type', models.CharField(blank=True, choices=[('prayer', 'Prayer'), ('devotional', 'Devotional'), ('scripture', 'Scripture'), ('general', 'General')], max_length=20, null=True, verbose_name='Content Type')),
                ('content_count', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Content Count')),
                ('status', models.CharField(choices=[('active', 'Active'), ('paused', 'Paused'), ('cancelled', 'Cancelled')], default='active', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled At')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_campaigns', to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaigns', to='organizations.organization', verbose_name='Organization')),
                ('recipients', models.ManyToManyField(blank=True, related_name='campaigns', to=settings.AUTH_USER_MODEL, verbose_name='Recipients')),
            ],
            options={
                'verbose_name': 'Campaign',
                'verbose_name_plural': 'Campaigns',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='CampaignContent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField(verbose_name='Position')),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rotation', to='campaigns.campaign', verbose_name='Campaign')),
                ('content_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rotation_entries', to='campaigns.contentitem', verbose_name='Content Item')),
            ],
            options={
                'verbose_name': 'Campaign Content',
                'verbose_name_plural': 'Campaign Contents',
                'ordering': ['campaign', 'position'],
                'unique_together': {('campaign', 'position')},
            },
        ),
        migrations.AddField(
            model_name='campaign',
            name='content_items',
            field=models.ManyToManyField(blank=True, related_name='campaigns', through='campaigns.CampaignContent', to='campaigns.contentitem', verbose_name='Content Rotation'),
        ),
        migrations.CreateModel(
            name='ScheduledDrop',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.PositiveIntegerField(help_text='0-based day index inside the campaign', verbose_name='Sequence')),
                ('drop_date', models.DateField(verbose_name='Drop Date (local)')),
                ('publish_at_utc', models.DateTimeField(db_index=True, verbose_name='Publish At (UTC)')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('expanded', 'Handed to Delivery'), ('sent', 'Sent'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='Status')),
                ('expanded_at', models.DateTimeField(blank=True, null=True, verbose_name='Handed Over At')),
                ('sent_at', models.DateTimeField(blank=True, null=True, verbose_name='Sent At')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scheduled_drops', to='campaigns.campaign', verbose_name='Campaign')),
                ('content_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='scheduled_drops', to='campaigns.contentitem', verbose_name='Content Item')),
            ],
            options={
                'verbose_name': 'Scheduled Drop',
                'verbose_name_plural': 'Scheduled Drops',
                'ordering': ['campaign', 'sequence'],
                'indexes': [models.Index(fields=['status', 'publish_at_utc'], name='campaigns_s_status_3c9e1a_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('campaign', 'sequence'), name='unique_drop_sequence_per_campaign'),
                    models.UniqueConstraint(fields=('campaign', 'drop_date'), name='unique_drop_date_per_campaign'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SendJob',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('channel', models.CharField(choices=[('whatsapp', 'WhatsApp'), ('web', 'Web'), ('push', 'Push Notification')], max_length=20, verbose_name='Channel')),
                ('status', models.CharField(choices=[('queued', 'Queued'), ('sent', 'Sent'), ('delivered', 'Delivered'), ('failed', 'Failed')], default='queued', max_length=20, verbose_name='Status')),
                ('error_message', models.TextField(blank=True, null=True, verbose_name='Error Message')),
                ('sent_at', models.DateTimeField(blank=True, null=True, verbose_name='Sent At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('drop', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='send_jobs', to='campaigns.scheduleddrop', verbose_name='Scheduled Drop')),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='send_jobs', to=settings.AUTH_USER_MODEL, verbose_name='Recipient')),
            ],
            options={
                'verbose_name': 'Send Job',
                'verbose_name_plural': 'Send Jobs',
                'ordering': ['drop', 'id'],
                'indexes': [models.Index(fields=['drop', 'status'], name='campaigns_s_drop_id_7b2f4d_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('drop', 'recipient', 'channel'), name='unique_send_job_per_drop_recipient_channel'),
                ],
            },
        ),
    ]
