"""
Node Sell & Referral Service

Records share purchases, completes them once payment is confirmed and keeps
every buyer enrolled with exactly one referral link per node boss.
"""
import string
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction, IntegrityError
from django.db.models import F
from django.contrib.auth.models import User
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.text import slugify

from Believe.campaign_config import CampaignConfig
from core.audit import log_action
from core.models import AuditLog
from nodeboss.models import NodeBoss, NodeShare, NodeSell, NodeReferral

logger = logging.getLogger(__name__)


class NodeSellError(Exception):
    """Custom exception for node sell and referral errors"""
    pass


class NodeSellService:
    """
    Service class for node share sales.
    All state changes are atomic; sales and shares are row-locked.
    """

    @staticmethod
    def validate_amount(amount):
        """Validate that amount is a decimal of at least 1"""
        try:
            decimal_amount = Decimal(str(amount))
        except (InvalidOperation, ValueError, TypeError):
            raise NodeSellError(f"Invalid amount: {amount}")
        if not decimal_amount.is_finite() or decimal_amount < 1:
            raise NodeSellError("Amount must be at least 1")
        return decimal_amount.quantize(Decimal('0.01'))

    @staticmethod
    def generate_certificate_id():
        while True:
            certificate_id = 'CERT-' + get_random_string(8, string.ascii_uppercase + string.digits)
            if not NodeSell.objects.filter(certificate_id=certificate_id).exists():
                return certificate_id

    @staticmethod
    def referral_link_candidates(user):
        """
        The user's referral code first (if any), then slug-plus-digits variants.
        """
        profile = getattr(user, 'profile', None)
        code = getattr(profile, 'referral_code', None)
        base = slugify(user.get_full_name() or user.username) or 'member'

        if code:
            yield code
        for _attempt in range(CampaignConfig.REFERRAL_LINK_ATTEMPTS):
            yield f"{code or base}-{get_random_string(4, string.digits)}"

    @staticmethod
    def on_node_sell_created(node_sell: NodeSell, acting_user_id):
        """
        Enroll the acting user for the sold node boss.

        Returns (referral, created). Without an acting user this is a no-op
        returning (None, False).
        """
        if not acting_user_id:
            logger.debug("Node sell %s has no acting user, skipping referral enrollment", node_sell.pk)
            return None, False

        user = node_sell.user if node_sell.user_id == acting_user_id else None
        if user is None:
            user = User.objects.select_related('profile').get(pk=acting_user_id)

        parent = node_sell.node_referral
        if parent is not None and parent.user_id == acting_user_id:
            parent = None

        for link in NodeSellService.referral_link_candidates(user):
            try:
                with transaction.atomic():
                    referral = NodeReferral.objects.create(
                        user_id=acting_user_id,
                        node_boss_id=node_sell.node_boss_id,
                        node_share_id=node_sell.node_share_id,
                        node_sell=node_sell,
                        parent_referral=parent,
                        level=parent.level + 1 if parent else 1,
                        referral_link=link,
                        commission_percentage=CampaignConfig.DEFAULT_COMMISSION_PERCENTAGE,
                        status=NodeReferral.STATUS_INACTIVE,
                    )
            except IntegrityError:
                existing = NodeReferral.objects.filter(
                    user_id=acting_user_id,
                    node_boss_id=node_sell.node_boss_id,
                ).first()
                if existing is not None:
                    return existing, False
                logger.debug("Referral link %s already taken, retrying", link)
                continue

            logger.info(
                "Enrolled user %s as referrer for node boss %s (%s)",
                acting_user_id, node_sell.node_boss_id, referral.referral_link
            )
            return referral, True

        raise NodeSellError(f"Could not generate a unique referral link for user {acting_user_id}")

    @staticmethod
    @transaction.atomic
    def get_or_create_available_share(node_boss: NodeBoss, amount: Decimal) -> NodeShare:
        """Oldest open share that can take the amount, otherwise a fresh share"""
        # Bring share statuses in line with what is left
        NodeShare.objects.filter(
            node_boss=node_boss, remaining__lte=0, status=NodeShare.STATUS_OPEN
        ).update(status=NodeShare.STATUS_CLOSED)
        NodeShare.objects.filter(
            node_boss=node_boss, remaining__gt=0, status=NodeShare.STATUS_CLOSED
        ).update(status=NodeShare.STATUS_OPEN)

        share = (
            NodeShare.objects.select_for_update()
            .filter(node_boss=node_boss, status=NodeShare.STATUS_OPEN, remaining__gte=amount)
            .order_by('created_at', 'id')
            .first()
        )
        if share:
            logger.info("Using existing share %s with remaining %s", share.pk, share.remaining)
            return share

        cost = max(CampaignConfig.DEFAULT_SHARE_COST, amount)
        logger.info("Opening new share of %s for node boss %s", cost, node_boss.pk)
        return NodeShare.objects.create(
            node_boss=node_boss,
            cost=cost,
            sold=Decimal('0.00'),
            remaining=cost,
            status=NodeShare.STATUS_OPEN,
        )

    @staticmethod
    @transaction.atomic
    def record_node_sell(
        node_boss: NodeBoss,
        amount,
        buyer_name: str,
        buyer_email: str,
        user=None,
        message: str = None,
        ref: str = None,
        request=None
    ) -> NodeSell:
        """
        Create a pending sale and enroll the buyer as a referrer.

        Raises:
            NodeSellError: invalid amount or buyer, inactive node boss,
                or a buyer using their own referral link
        """
        amount = NodeSellService.validate_amount(amount)

        if not (buyer_name or '').strip():
            raise NodeSellError("Buyer name is required")
        if not (buyer_email or '').strip():
            raise NodeSellError("Buyer email is required")

        node_boss = NodeBoss.objects.select_for_update().get(pk=node_boss.pk)
        if node_boss.status != NodeBoss.STATUS_ACTIVE:
            raise NodeSellError(f"Node boss '{node_boss.name}' is not on sale")

        used_referral = None
        if ref:
            referral = NodeReferral.objects.filter(referral_link=ref).first()
            if referral:
                if user is not None and referral.user_id == user.pk and not user.is_staff:
                    raise NodeSellError("You cannot use your own referral link.")
                if referral.node_boss_id == node_boss.pk:
                    used_referral = referral

        share = NodeSellService.get_or_create_available_share(node_boss, amount)

        node_sell = NodeSell.objects.create(
            user=user,
            node_boss=node_boss,
            node_share=share,
            node_referral=used_referral,
            amount=amount,
            buyer_name=buyer_name.strip(),
            buyer_email=buyer_email.strip(),
            message=message or None,
            status=NodeSell.STATUS_PENDING,
            certificate_id=NodeSellService.generate_certificate_id(),
            purchase_date=timezone.now(),
        )

        NodeSellService.on_node_sell_created(node_sell, user.pk if user else None)

        log_action(
            user=user,
            action=AuditLog.ACTION_CREATE,
            target=node_sell,
            details=f"Share purchase of {amount} for {node_boss.name}",
            request=request
        )
        logger.info("Recorded node sell %s (%s) for node boss %s", node_sell.pk, amount, node_boss.pk)

        return node_sell

    @staticmethod
    @transaction.atomic
    def complete_node_sell(node_sell_id: int, transaction_id: str, payment_method: str,
                           request=None) -> Decimal:
        """
        Mark a pending sale as paid, fill its share and activate the referral
        that brought the buyer in.

        Returns:
            Commission owed to the referrer (0.00 when none)
        """
        node_sell = NodeSell.objects.select_for_update().get(id=node_sell_id)
        if node_sell.status != NodeSell.STATUS_PENDING:
            raise NodeSellError(f"Node sell {node_sell_id} is {node_sell.status}, not pending")

        node_sell.transaction_id = transaction_id
        node_sell.payment_method = payment_method
        node_sell.status = NodeSell.STATUS_COMPLETED
        node_sell.purchase_date = timezone.now()
        node_sell.save(update_fields=[
            'transaction_id', 'payment_method', 'status', 'purchase_date', 'updated_at'
        ])

        share = NodeShare.objects.select_for_update().get(pk=node_sell.node_share_id)
        share.sold = F('sold') + node_sell.amount
        share.remaining = F('remaining') - node_sell.amount
        share.save(update_fields=['sold', 'remaining', 'updated_at'])
        share.refresh_from_db(fields=['sold', 'remaining'])
        if share.remaining <= 0:
            # remaining never drops below zero, even when pending sales oversold the share
            share.remaining = Decimal('0.00')
            share.status = NodeShare.STATUS_CLOSED
            share.save(update_fields=['remaining', 'status', 'updated_at'])
            logger.info("Share %s fully sold and closed", share.pk)

        commission = Decimal('0.00')
        referral = node_sell.node_referral
        if referral is not None and referral.user_id != node_sell.user_id:
            if referral.status != NodeReferral.STATUS_ACTIVE:
                referral.status = NodeReferral.STATUS_ACTIVE
                referral.save(update_fields=['status', 'updated_at'])
            commission = (
                node_sell.amount * referral.commission_percentage / Decimal('100')
            ).quantize(Decimal('0.01'))

        log_action(
            user=request.user if request else None,
            action=AuditLog.ACTION_SALE,
            target=node_sell,
            details=f"Payment confirmed ({payment_method}), commission {commission}",
            changes={'status': 'completed', 'commission': str(commission)},
            request=request
        )
        logger.info("Node sell %s completed, commission %s", node_sell_id, commission)

        return commission

    @staticmethod
    @transaction.atomic
    def cancel_node_sell(node_sell_id: int, request=None) -> NodeSell:
        node_sell = NodeSell.objects.select_for_update().get(id=node_sell_id)
        if node_sell.status != NodeSell.STATUS_PENDING:
            raise NodeSellError(f"Only pending sales can be canceled (status: {node_sell.status})")

        node_sell.status = NodeSell.STATUS_CANCELED
        node_sell.save(update_fields=['status', 'updated_at'])

        log_action(
            user=request.user if request else None,
            action=AuditLog.ACTION_CANCEL,
            target=node_sell,
            request=request
        )
        return node_sell


# Convenience functions
def on_node_sell_created(node_sell, acting_user_id):
    """Convenience function for NodeSellService.on_node_sell_created"""
    return NodeSellService.on_node_sell_created(node_sell, acting_user_id)


def get_or_create_available_share(node_boss, amount):
    """Convenience function for NodeSellService.get_or_create_available_share"""
    return NodeSellService.get_or_create_available_share(
        node_boss, NodeSellService.validate_amount(amount)
    )


def record_node_sell(node_boss, amount, buyer_name, buyer_email, user=None,
                     message=None, ref=None, **kwargs):
    """Convenience function for NodeSellService.record_node_sell"""
    return NodeSellService.record_node_sell(
        node_boss=node_boss,
        amount=amount,
        buyer_name=buyer_name,
        buyer_email=buyer_email,
        user=user,
        message=message,
        ref=ref,
        **kwargs
    )


def complete_node_sell(node_sell_id, transaction_id, payment_method, **kwargs):
    """Convenience function for NodeSellService.complete_node_sell"""
    return NodeSellService.complete_node_sell(
        node_sell_id=node_sell_id,
        transaction_id=transaction_id,
        payment_method=payment_method,
        **kwargs
    )


def cancel_node_sell(node_sell_id, **kwargs):
    """Convenience function for NodeSellService.cancel_node_sell"""
    return NodeSellService.cancel_node_sell(node_sell_id=node_sell_id, **kwargs)
