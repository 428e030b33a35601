import zoneinfo

from django.db import models
from django.contrib.auth.models import User
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError

from Believe.campaign_config import CampaignConfig


def validate_timezone_name(value):
    """Reject names the IANA database does not know"""
    try:
        zoneinfo.ZoneInfo(value)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        raise ValidationError(_("Unknown timezone: %(tz)s"), params={"tz": value})


class Organization(models.Model):
    """Nonprofit / ministry that owns campaigns and content"""

    name = models.CharField(_("Name"), max_length=200)
    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="owned_organizations",
        verbose_name=_("Owner"),
    )
    # Campaign send times are interpreted in this zone
    timezone = models.CharField(
        _("Timezone"),
        max_length=64,
        default=CampaignConfig.DEFAULT_TIMEZONE,
        validators=[validate_timezone_name],
        help_text=_("IANA timezone name, e.g. 'America/New_York'"),
    )
    email = models.EmailField(_("Email"), blank=True, null=True)
    phone = models.CharField(_("Phone"), max_length=20, blank=True, null=True)
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated at"), auto_now=True)

    class Meta:
        verbose_name = _("Organization")
        verbose_name_plural = _("Organizations")
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        is_new = self.pk is None
        super().save(*args, **kwargs)
        # Owner is always a member
        if is_new:
            OrganizationMember.objects.get_or_create(
                organization=self,
                user=self.owner,
                defaults={"role": OrganizationMember.ROLE_OWNER},
            )

    @classmethod
    def for_user(cls, user):
        """
        Organization the user acts for: an owned one first,
        then the first active membership. None if neither exists.
        """
        if not user or not user.is_authenticated:
            return None
        owned = cls.objects.filter(owner=user, is_active=True).order_by("id").first()
        if owned:
            return owned
        membership = (
            OrganizationMember.objects.filter(
                user=user, is_active=True, organization__is_active=True
            )
            .select_related("organization")
            .order_by("id")
            .first()
        )
        return membership.organization if membership else None


class OrganizationMember(models.Model):
    """Staff/manager attached to an organization"""

    ROLE_OWNER = "owner"
    ROLE_MANAGER = "manager"
    ROLE_STAFF = "staff"

    ROLE_CHOICES = [
        (ROLE_OWNER, _("Owner")),
        (ROLE_MANAGER, _("Manager")),
        (ROLE_STAFF, _("Staff")),
    ]

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="members",
        verbose_name=_("Organization"),
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="organization_memberships",
        verbose_name=_("User"),
    )
    role = models.CharField(_("Role"), max_length=20, choices=ROLE_CHOICES, default=ROLE_STAFF)
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("Organization Member")
        verbose_name_plural = _("Organization Members")
        unique_together = ["organization", "user"]

    def __str__(self):
        return f"{self.user.get_full_name() or self.user.username} ({self.get_role_display()})"

    @property
    def can_manage_campaigns(self):
        return self.is_active and self.role in (self.ROLE_OWNER, self.ROLE_MANAGER)
