"""
Node Boss Models

A NodeBoss is a fundraising node sold in shares. Buyers get a certificate
and their own referral link for the node boss they bought into.
"""
from decimal import Decimal

from django.db import models
from django.contrib.auth.models import User
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator, MaxValueValidator

from Believe.campaign_config import CampaignConfig


class NodeBoss(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, _('Active')),
        (STATUS_INACTIVE, _('Inactive')),
    ]

    name = models.CharField(_('Name'), max_length=200)
    description = models.TextField(_('Description'), blank=True, null=True)
    price = models.DecimalField(_('Price'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(_('Status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_node_bosses',
        verbose_name=_('Created By')
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        verbose_name = _('Node Boss')
        verbose_name_plural = _('Node Bosses')
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class NodeShare(models.Model):
    """A block of a node boss that buyers fill up; closes once fully sold"""

    STATUS_OPEN = 'open'
    STATUS_CLOSED = 'closed'

    STATUS_CHOICES = [
        (STATUS_OPEN, _('Open')),
        (STATUS_CLOSED, _('Closed')),
    ]

    node_boss = models.ForeignKey(
        NodeBoss,
        on_delete=models.CASCADE,
        related_name='shares',
        verbose_name=_('Node Boss')
    )
    cost = models.DecimalField(
        _('Cost'), max_digits=12, decimal_places=2,
        default=CampaignConfig.DEFAULT_SHARE_COST
    )
    sold = models.DecimalField(_('Sold'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    remaining = models.DecimalField(
        _('Remaining'), max_digits=12, decimal_places=2,
        default=CampaignConfig.DEFAULT_SHARE_COST
    )
    status = models.CharField(_('Status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        verbose_name = _('Node Share')
        verbose_name_plural = _('Node Shares')
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.node_boss.name} share #{self.pk} ({self.remaining}/{self.cost})"


class NodeSell(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CANCELED = 'canceled'

    STATUS_CHOICES = [
        (STATUS_PENDING, _('Pending')),
        (STATUS_COMPLETED, _('Completed')),
        (STATUS_FAILED, _('Failed')),
        (STATUS_CANCELED, _('Canceled')),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='node_sells',
        verbose_name=_('Buyer Account')
    )
    node_boss = models.ForeignKey(
        NodeBoss,
        on_delete=models.PROTECT,
        related_name='sells',
        verbose_name=_('Node Boss')
    )
    node_share = models.ForeignKey(
        NodeShare,
        on_delete=models.PROTECT,
        related_name='sells',
        verbose_name=_('Node Share')
    )
    node_referral = models.ForeignKey(
        'NodeReferral',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='node_sells',
        verbose_name=_('Referral Used')
    )
    amount = models.DecimalField(_('Amount'), max_digits=12, decimal_places=2)
    buyer_name = models.CharField(_('Buyer Name'), max_length=255)
    buyer_email = models.EmailField(_('Buyer Email'), max_length=255)
    message = models.TextField(_('Message'), blank=True, null=True)
    status = models.CharField(_('Status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_method = models.CharField(_('Payment Method'), max_length=50, blank=True, null=True)
    transaction_id = models.CharField(_('Transaction ID'), max_length=255, blank=True, null=True)
    certificate_id = models.CharField(_('Certificate ID'), max_length=20, unique=True)
    purchase_date = models.DateTimeField(_('Purchase Date'), null=True, blank=True)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        verbose_name = _('Node Sell')
        verbose_name_plural = _('Node Sells')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.certificate_id} - {self.buyer_name} ({self.amount})"


class NodeReferral(models.Model):
    """A user's own referral link for one node boss"""

    STATUS_INACTIVE = 'inactive'
    STATUS_ACTIVE = 'active'

    STATUS_CHOICES = [
        (STATUS_INACTIVE, _('Inactive')),
        (STATUS_ACTIVE, _('Active')),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='node_referrals',
        verbose_name=_('User')
    )
    node_boss = models.ForeignKey(
        NodeBoss,
        on_delete=models.CASCADE,
        related_name='referrals',
        verbose_name=_('Node Boss')
    )
    node_share = models.ForeignKey(
        NodeShare,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='referrals',
        verbose_name=_('Node Share')
    )
    # Sale that enrolled this user
    node_sell = models.ForeignKey(
        NodeSell,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='enrolled_referrals',
        verbose_name=_('Triggering Sale')
    )
    parent_referral = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='child_referrals',
        verbose_name=_('Parent Referral')
    )
    referral_link = models.CharField(_('Referral Link'), max_length=100, unique=True)
    commission_percentage = models.DecimalField(
        _('Commission %'),
        max_digits=5,
        decimal_places=2,
        default=CampaignConfig.DEFAULT_COMMISSION_PERCENTAGE,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    is_big_boss = models.BooleanField(_('Big Boss'), default=False)
    level = models.PositiveSmallIntegerField(_('Level'), default=1)
    status = models.CharField(_('Status'), max_length=20, choices=STATUS_CHOICES, default=STATUS_INACTIVE)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        verbose_name = _('Node Referral')
        verbose_name_plural = _('Node Referrals')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'node_boss'],
                name='unique_referral_per_user_node_boss'
            ),
        ]

    def __str__(self):
        return f"{self.referral_link} ({self.get_status_display()})"
