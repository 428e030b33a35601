"""
Materialize active campaigns that have content but no drops yet

Usage:
    python manage.py materialize_campaigns
    python manage.py materialize_campaigns --campaign <id>
    python manage.py materialize_campaigns --dry-run
"""
from django.core.management.base import BaseCommand, CommandError

from campaigns.models import Campaign
from campaigns.fanout_service import (
    CampaignSpec, CampaignError, InvalidCampaignSpec,
    expand_campaign, materialize_campaign,
)


class Command(BaseCommand):
    help = 'Create scheduled drops and send jobs for campaigns that have none'

    def add_arguments(self, parser):
        parser.add_argument(
            '--campaign',
            type=int,
            help='Only materialize this campaign ID'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be created without writing anything'
        )

    def handle(self, *args, **options):
        campaigns = Campaign.objects.filter(
            status=Campaign.STATUS_ACTIVE,
            rotation__isnull=False,
            scheduled_drops__isnull=True,
        ).distinct().order_by('id')

        if options['campaign']:
            if not Campaign.objects.filter(id=options['campaign']).exists():
                raise CommandError(f"Campaign with ID {options['campaign']} does not exist")
            campaigns = campaigns.filter(id=options['campaign'])

        if not campaigns:
            self.stdout.write(self.style.WARNING('No campaigns to materialize'))
            return

        created = 0
        for campaign in campaigns:
            try:
                if options['dry_run']:
                    fanout = expand_campaign(CampaignSpec.from_campaign(campaign))
                    self.stdout.write(self.style.WARNING(
                        f"  [DRY RUN] {campaign.name}: {len(fanout.drops)} drops, "
                        f"{len(fanout.jobs)} send jobs"
                    ))
                    continue

                fanout = materialize_campaign(campaign)
            except (InvalidCampaignSpec, CampaignError) as e:
                self.stdout.write(self.style.ERROR(f"  ✗ {campaign.name}: {e}"))
                continue

            created += 1
            self.stdout.write(self.style.SUCCESS(
                f"  ✓ {campaign.name}: {len(fanout.drops)} drops, {len(fanout.jobs)} send jobs"
            ))

        if not options['dry_run']:
            self.stdout.write(self.style.SUCCESS(f"Materialized {created} campaign(s)"))
