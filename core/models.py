from django.db import models
from django.utils.translation import gettext_lazy as _


class AuditLog(models.Model):
    """Model to store audit trail of user actions"""

    ACTION_CREATE = 'create'
    ACTION_UPDATE = 'update'
    ACTION_CANCEL = 'cancel'
    ACTION_PAUSE = 'pause'
    ACTION_RESUME = 'resume'
    ACTION_STATUS_CHANGE = 'status_change'
    ACTION_SALE = 'sale'
    ACTION_OTHER = 'other'

    ACTION_CHOICES = [
        (ACTION_CREATE, _('Create')),
        (ACTION_UPDATE, _('Update')),
        (ACTION_CANCEL, _('Cancel')),
        (ACTION_PAUSE, _('Pause')),
        (ACTION_RESUME, _('Resume')),
        (ACTION_STATUS_CHANGE, _('Status Change')),
        (ACTION_SALE, _('Sale')),
        (ACTION_OTHER, _('Other')),
    ]

    # Who performed the action
    user = models.ForeignKey(
        'auth.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name=_("User")
    )

    # What action was performed
    action = models.CharField(
        _("Action"),
        max_length=20,
        choices=ACTION_CHOICES
    )

    # Target object (generic relation)
    content_type = models.ForeignKey(
        'contenttypes.ContentType',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_("Content Type")
    )
    object_id = models.PositiveIntegerField(null=True, blank=True, verbose_name=_("Object ID"))

    # Human-readable target description
    target_repr = models.CharField(_("Target"), max_length=255, blank=True)

    details = models.TextField(_("Details"), blank=True, null=True)
    changes = models.JSONField(_("Changes"), default=dict, blank=True)

    # Request context
    ip_address = models.GenericIPAddressField(_("IP Address"), null=True, blank=True)
    user_agent = models.TextField(_("User Agent"), blank=True, null=True)

    organization = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name=_("Organization")
    )

    created_at = models.DateTimeField(_("Created At"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("Audit Log")
        verbose_name_plural = _("Audit Logs")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='core_auditl_user_id_5a1c2e_idx'),
            models.Index(fields=['action', 'created_at'], name='core_auditl_action_8f3b1d_idx'),
            models.Index(fields=['content_type', 'object_id'], name='core_auditl_content_4e7a9c_idx'),
            models.Index(fields=['organization', 'created_at'], name='core_auditl_organiz_b2d6f0_idx'),
        ]

    def __str__(self):
        if self.user:
            user_name = self.user.get_full_name() or self.user.username
        else:
            user_name = 'System'
        return f"{user_name} - {self.get_action_display()} - {self.target_repr}"
