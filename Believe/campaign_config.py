"""
Centralized Campaign & Referral Configuration

This file contains the scheduling and referral settings that apply to ALL
organizations. Values can be overridden per environment through env vars.
"""
import os
from decimal import Decimal


class CampaignConfig:
    """
    Central configuration for campaign fan-out and delivery hand-off.
    All settings here apply to ALL organizations unless overridden in env.
    """

    # =============================================================================
    # CHANNELS
    # =============================================================================

    # Channels a campaign may fan out to (external delivery workers exist for each)
    SUPPORTED_CHANNELS = [
        c.strip()
        for c in os.getenv('CAMPAIGN_SUPPORTED_CHANNELS', 'whatsapp,web,push').split(',')
        if c.strip()
    ]

    # Channels pre-selected on the create form
    DEFAULT_CHANNELS = [
        c.strip()
        for c in os.getenv('CAMPAIGN_DEFAULT_CHANNELS', 'whatsapp,web').split(',')
        if c.strip()
    ]

    # =============================================================================
    # SCHEDULING
    # =============================================================================

    # Local wall-clock time used when the form leaves it empty (HH:MM)
    DEFAULT_SEND_TIME = os.getenv('CAMPAIGN_DEFAULT_SEND_TIME', '07:00')

    # Fallback IANA timezone for organizations that never set one
    DEFAULT_TIMEZONE = os.getenv('CAMPAIGN_DEFAULT_TIMEZONE', 'UTC')

    # Upper bound for AI campaigns (one generated item per day)
    MAX_AI_CONTENT_COUNT = int(os.getenv('CAMPAIGN_MAX_AI_CONTENT_COUNT', '30'))

    # Longest date range a manual campaign may cover, in days
    MAX_CAMPAIGN_DAYS = int(os.getenv('CAMPAIGN_MAX_DAYS', '366'))

    # Rows per INSERT when persisting send jobs
    JOB_BATCH_SIZE = int(os.getenv('CAMPAIGN_JOB_BATCH_SIZE', '500'))

    # =============================================================================
    # NODE BOSS / REFERRALS
    # =============================================================================

    # Commission percentage given to a freshly enrolled referral link
    DEFAULT_COMMISSION_PERCENTAGE = Decimal(
        os.getenv('REFERRAL_DEFAULT_COMMISSION_PERCENTAGE', '20.00')
    )

    # Size of a newly opened node share
    DEFAULT_SHARE_COST = Decimal(os.getenv('NODE_SHARE_DEFAULT_COST', '2000.00'))

    # Attempts at generating a unique referral link before giving up
    REFERRAL_LINK_ATTEMPTS = int(os.getenv('REFERRAL_LINK_ATTEMPTS', '5'))

    # =============================================================================
    # HELPER METHODS
    # =============================================================================

    @classmethod
    def get_all_settings(cls):
        """Get all current settings as a dictionary"""
        return {
            'SUPPORTED_CHANNELS': cls.SUPPORTED_CHANNELS,
            'DEFAULT_CHANNELS': cls.DEFAULT_CHANNELS,
            'DEFAULT_SEND_TIME': cls.DEFAULT_SEND_TIME,
            'DEFAULT_TIMEZONE': cls.DEFAULT_TIMEZONE,
            'MAX_AI_CONTENT_COUNT': cls.MAX_AI_CONTENT_COUNT,
            'MAX_CAMPAIGN_DAYS': cls.MAX_CAMPAIGN_DAYS,
            'JOB_BATCH_SIZE': cls.JOB_BATCH_SIZE,
            'DEFAULT_COMMISSION_PERCENTAGE': cls.DEFAULT_COMMISSION_PERCENTAGE,
            'DEFAULT_SHARE_COST': cls.DEFAULT_SHARE_COST,
            'REFERRAL_LINK_ATTEMPTS': cls.REFERRAL_LINK_ATTEMPTS,
        }

    @classmethod
    def validate_settings(cls):
        """Validate configuration and return warnings"""
        warnings = []

        unknown = set(cls.DEFAULT_CHANNELS) - set(cls.SUPPORTED_CHANNELS)
        if unknown:
            warnings.append(f"❌ DEFAULT_CHANNELS contains unsupported channels: {sorted(unknown)}")

        if cls.MAX_AI_CONTENT_COUNT < 1:
            warnings.append("❌ MAX_AI_CONTENT_COUNT must be at least 1")

        if cls.MAX_CAMPAIGN_DAYS < 1:
            warnings.append("❌ MAX_CAMPAIGN_DAYS must be at least 1")

        if cls.JOB_BATCH_SIZE < 1:
            warnings.append("❌ JOB_BATCH_SIZE must be at least 1")

        if not (Decimal('0') <= cls.DEFAULT_COMMISSION_PERCENTAGE <= Decimal('100')):
            warnings.append("❌ DEFAULT_COMMISSION_PERCENTAGE must be between 0 and 100")

        if not warnings:
            warnings.append("✅ All settings are valid")

        return warnings
