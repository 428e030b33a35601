"""
Campaign Models for Daily Content Drops

A campaign sends one piece of content per calendar day, at the same local
time, to every selected user on every selected channel. Each day becomes a
ScheduledDrop; each (user, channel) pair of a drop becomes a SendJob that
external delivery workers pick up.
"""
from django.db import models
from django.contrib.auth.models import User
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator


class ContentItem(models.Model):
    """Prayer, devotional or scripture text that campaigns rotate through"""

    TYPE_PRAYER = 'prayer'
    TYPE_DEVOTIONAL = 'devotional'
    TYPE_SCRIPTURE = 'scripture'
    TYPE_GENERAL = 'general'

    CONTENT_TYPE_CHOICES = [
        (TYPE_PRAYER, _('Prayer')),
        (TYPE_DEVOTIONAL, _('Devotional')),
        (TYPE_SCRIPTURE, _('Scripture')),
        (TYPE_GENERAL, _('General')),
    ]

    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='content_items',
        verbose_name=_('Organization')
    )
    title = models.CharField(_('Title'), max_length=200)
    body = models.TextField(_('Body'))
    meta = models.JSONField(
        _('Meta'),
        default=dict,
        blank=True,
        help_text=_('Free-form extras such as bible references')
    )
    content_type = models.CharField(
        _('Content Type'),
        max_length=20,
        choices=CONTENT_TYPE_CHOICES,
        default=TYPE_GENERAL
    )
    is_ai_generated = models.BooleanField(_('AI Generated'), default=False)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_content_items',
        verbose_name=_('Created By')
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        verbose_name = _('Content Item')
        verbose_name_plural = _('Content Items')
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class Campaign(models.Model):
    """
    Recurring daily content campaign.
    Either a manual rotation of content items or an AI generation request.
    """

    STATUS_ACTIVE = 'active'
    STATUS_PAUSED = 'paused'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, _('Active')),
        (STATUS_PAUSED, _('Paused')),
        (STATUS_CANCELLED, _('Cancelled')),
    ]

    CHANNEL_WHATSAPP = 'whatsapp'
    CHANNEL_WEB = 'web'
    CHANNEL_PUSH = 'push'

    CHANNEL_CHOICES = [
        (CHANNEL_WHATSAPP, _('WhatsApp')),
        (CHANNEL_WEB, _('Web')),
        (CHANNEL_PUSH, _('Push Notification')),
    ]

    name = models.CharField(_('Name'), max_length=200)
    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='campaigns',
        verbose_name=_('Organization')
    )

    # Schedule
    start_date = models.DateField(_('Start Date'))
    end_date = models.DateField(
        _('End Date'),
        null=True,
        blank=True,
        help_text=_('Inclusive. AI campaigns may leave it empty and run for content_count days')
    )
    send_time_local = models.TimeField(
        _('Send Time (local)'),
        help_text=_('Same wall-clock time every day in the campaign timezone')
    )
    timezone = models.CharField(
        _('Timezone'),
        max_length=64,
        help_text=_("Copied from the organization when the campaign is created")
    )

    # Delivery
    channels = models.JSONField(_('Channels'), default=list)
    recipients = models.ManyToManyField(
        User,
        related_name='campaigns',
        blank=True,
        verbose_name=_('Recipients')
    )
    content_items = models.ManyToManyField(
        ContentItem,
        through='CampaignContent',
        related_name='campaigns',
        blank=True,
        verbose_name=_('Content Rotation')
    )

    # AI generation request
    prompt = models.TextField(_('Prompt'), blank=True, null=True)
    content_type = models.CharField(
        _('Content Type'),
        max_length=20,
        choices=ContentItem.CONTENT_TYPE_CHOICES,
        blank=True,
        null=True
    )
    content_count = models.PositiveSmallIntegerField(
        _('Content Count'),
        null=True,
        blank=True,
        validators=[MinValueValidator(1)]
    )

    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_campaigns',
        verbose_name=_('Created By')
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    cancelled_at = models.DateTimeField(_('Cancelled At'), null=True, blank=True)

    class Meta:
        verbose_name = _('Campaign')
        verbose_name_plural = _('Campaigns')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"

    @property
    def is_ai_campaign(self):
        return bool(self.prompt)

    @property
    def is_cancelled(self):
        return self.status == self.STATUS_CANCELLED

    def get_rotation(self):
        """Content items in rotation order"""
        return [
            entry.content_item
            for entry in self.rotation.select_related('content_item').order_by('position')
        ]


class CampaignContent(models.Model):
    """Position of a content item inside a campaign's rotation"""

    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.CASCADE,
        related_name='rotation',
        verbose_name=_('Campaign')
    )
    content_item = models.ForeignKey(
        ContentItem,
        on_delete=models.PROTECT,
        related_name='rotation_entries',
        verbose_name=_('Content Item')
    )
    position = models.PositiveIntegerField(_('Position'))

    class Meta:
        verbose_name = _('Campaign Content')
        verbose_name_plural = _('Campaign Contents')
        ordering = ['campaign', 'position']
        unique_together = ['campaign', 'position']

    def __str__(self):
        return f"{self.campaign.name} #{self.position + 1}: {self.content_item.title}"


class ScheduledDrop(models.Model):
    """One calendar day of a campaign"""

    STATUS_PENDING = 'pending'
    STATUS_EXPANDED = 'expanded'
    STATUS_SENT = 'sent'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, _('Pending')),
        (STATUS_EXPANDED, _('Handed to Delivery')),
        (STATUS_SENT, _('Sent')),
        (STATUS_CANCELLED, _('Cancelled')),
    ]

    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.CASCADE,
        related_name='scheduled_drops',
        verbose_name=_('Campaign')
    )
    sequence = models.PositiveIntegerField(
        _('Sequence'),
        help_text=_('0-based day index inside the campaign')
    )
    drop_date = models.DateField(_('Drop Date (local)'))
    publish_at_utc = models.DateTimeField(_('Publish At (UTC)'), db_index=True)
    content_item = models.ForeignKey(
        ContentItem,
        on_delete=models.PROTECT,
        related_name='scheduled_drops',
        verbose_name=_('Content Item')
    )
    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING
    )
    expanded_at = models.DateTimeField(_('Handed Over At'), null=True, blank=True)
    sent_at = models.DateTimeField(_('Sent At'), null=True, blank=True)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        verbose_name = _('Scheduled Drop')
        verbose_name_plural = _('Scheduled Drops')
        ordering = ['campaign', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['campaign', 'sequence'],
                name='unique_drop_sequence_per_campaign'
            ),
            models.UniqueConstraint(
                fields=['campaign', 'drop_date'],
                name='unique_drop_date_per_campaign'
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'publish_at_utc'], name='campaigns_s_status_3c9e1a_idx'),
        ]

    def __str__(self):
        return f"{self.campaign.name} - {self.drop_date} ({self.get_status_display()})"


class SendJob(models.Model):
    """Delivery of one drop to one user over one channel"""

    STATUS_QUEUED = 'queued'
    STATUS_SENT = 'sent'
    STATUS_DELIVERED = 'delivered'
    STATUS_FAILED = 'failed'

    STATUS_CHOICES = [
        (STATUS_QUEUED, _('Queued')),
        (STATUS_SENT, _('Sent')),
        (STATUS_DELIVERED, _('Delivered')),
        (STATUS_FAILED, _('Failed')),
    ]

    TERMINAL_STATUSES = (STATUS_DELIVERED, STATUS_FAILED)

    drop = models.ForeignKey(
        ScheduledDrop,
        on_delete=models.CASCADE,
        related_name='send_jobs',
        verbose_name=_('Scheduled Drop')
    )
    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='send_jobs',
        verbose_name=_('Recipient')
    )
    channel = models.CharField(
        _('Channel'),
        max_length=20,
        choices=Campaign.CHANNEL_CHOICES
    )
    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_QUEUED
    )
    error_message = models.TextField(_('Error Message'), blank=True, null=True)
    sent_at = models.DateTimeField(_('Sent At'), null=True, blank=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        verbose_name = _('Send Job')
        verbose_name_plural = _('Send Jobs')
        ordering = ['drop', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['drop', 'recipient', 'channel'],
                name='unique_send_job_per_drop_recipient_channel'
            ),
        ]
        indexes = [
            models.Index(fields=['drop', 'status'], name='campaigns_s_drop_id_7b2f4d_idx'),
        ]

    def __str__(self):
        return f"{self.drop} -> {self.recipient_id} via {self.channel}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES
