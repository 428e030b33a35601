import logging

from django.db import models
from django.contrib.auth.models import User
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)


class Profile(models.Model):
    """
    Delivery and referral details for a platform user.

    The campaign create form shows which channels can actually reach
    a user; node boss referral links are derived from ``referral_code``.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile',
        verbose_name=_("User")
    )
    contact_number = models.CharField(
        _("Contact Number"),
        max_length=20,
        blank=True,
        null=True,
        help_text=_("Phone number in international format")
    )
    whatsapp_opt_in = models.BooleanField(
        _("WhatsApp Opt-in"),
        default=False,
        help_text=_("User agreed to receive WhatsApp messages")
    )
    push_token = models.CharField(
        _("Push Token"),
        max_length=255,
        blank=True,
        null=True
    )
    referral_code = models.SlugField(
        _("Referral Code"),
        max_length=50,
        unique=True,
        blank=True,
        null=True,
        help_text=_("Prefix for this user's node boss referral links")
    )
    timezone = models.CharField(
        _("Timezone"),
        max_length=64,
        blank=True,
        null=True,
        help_text=_("Used only to display send times to this user")
    )
    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated at"), auto_now=True)

    class Meta:
        verbose_name = _("Profile")
        verbose_name_plural = _("Profiles")

    def __str__(self):
        return self.user.get_full_name() or self.user.username

    @property
    def reachable_channels(self):
        """Channels an external worker can deliver to for this user"""
        channels = ['web']
        if self.contact_number and self.whatsapp_opt_in:
            channels.append('whatsapp')
        if self.push_token:
            channels.append('push')
        return channels


@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    """Every user gets an empty profile on creation"""
    if created:
        Profile.objects.get_or_create(user=instance)
        logger.debug("Created profile for user %s", instance.pk)
