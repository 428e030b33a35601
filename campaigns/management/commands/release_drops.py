"""
Hand due scheduled drops to the delivery workers

Usage:
    python manage.py release_drops                  # Release everything due now
    python manage.py release_drops --dry-run        # Only list what is due
    python manage.py release_drops --config         # Show campaign configuration
    python manage.py release_drops --config --validate
"""
from django.core.management.base import BaseCommand
from django.utils import timezone

from Believe.campaign_config import CampaignConfig
from campaigns.models import Campaign, ScheduledDrop
from campaigns.fanout_service import release_due_drops


class Command(BaseCommand):
    help = 'Release due campaign drops to the external delivery workers (run from cron)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show which drops are due without releasing them'
        )
        parser.add_argument(
            '--config',
            action='store_true',
            help='Show campaign configuration instead of releasing'
        )
        parser.add_argument(
            '--validate',
            action='store_true',
            help='Validate configuration settings (with --config)'
        )

    def handle(self, *args, **options):
        if options['config']:
            self._handle_config(options)
            return

        now = timezone.now()

        if options['dry_run']:
            due = ScheduledDrop.objects.filter(
                status=ScheduledDrop.STATUS_PENDING,
                publish_at_utc__lte=now,
                campaign__status=Campaign.STATUS_ACTIVE,
            ).select_related('campaign').order_by('publish_at_utc')
            if not due:
                self.stdout.write(self.style.WARNING('No drops are due'))
                return
            for drop in due:
                self.stdout.write(
                    f"  [DRY RUN] {drop.campaign.name}: day {drop.sequence + 1} "
                    f"({drop.drop_date}, {drop.publish_at_utc:%Y-%m-%d %H:%M} UTC)"
                )
            self.stdout.write(self.style.WARNING(f"[DRY RUN] Would release {len(due)} drop(s)"))
            return

        released = release_due_drops(now=now)
        if not released:
            self.stdout.write(self.style.WARNING('No drops are due'))
            return

        self.stdout.write(self.style.SUCCESS(f"✓ Released {len(released)} drop(s)"))

    def _handle_config(self, options):
        self.stdout.write(self.style.SUCCESS("\n" + "=" * 60))
        self.stdout.write(self.style.SUCCESS("CURRENT CAMPAIGN CONFIGURATION"))
        self.stdout.write(self.style.SUCCESS("=" * 60))
        for key, value in CampaignConfig.get_all_settings().items():
            self.stdout.write(f"{key:<35} {value}")
        self.stdout.write(self.style.SUCCESS("=" * 60))

        if options['validate']:
            self.stdout.write("\n" + self.style.WARNING("Validating configuration..."))
            for warning in CampaignConfig.validate_settings():
                if "✅" in warning:
                    self.stdout.write(self.style.SUCCESS(warning))
                else:
                    self.stdout.write(self.style.ERROR(warning))
