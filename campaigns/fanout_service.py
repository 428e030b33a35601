"""
Fan-out Service for Daily Content Campaigns

Expands a campaign into one ScheduledDrop per calendar day and every drop
into one SendJob per (recipient, channel). Persistence, cancellation and the
hand-off to external delivery workers all run inside atomic blocks.
"""
import zoneinfo
import logging
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import List, Dict, Optional
from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from django.contrib.auth.models import User

from Believe.campaign_config import CampaignConfig
from core.audit import log_action
from core.models import AuditLog
from .models import Campaign, CampaignContent, ContentItem, ScheduledDrop, SendJob

logger = logging.getLogger(__name__)


class InvalidCampaignSpec(Exception):
    """Campaign input rejected before anything was written"""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{key}: {msg}" for key, msg in errors.items()))


class CampaignError(Exception):
    """Custom exception for illegal campaign operations"""
    pass


@dataclass
class CampaignSpec:
    """Everything needed to expand a campaign, detached from the ORM"""
    start_date: Optional[date]
    end_date: Optional[date]
    send_time_local: Optional[time]
    timezone: str
    channels: List[str]
    recipient_ids: List[int]
    rotation: List[int] = field(default_factory=list)
    content_count: Optional[int] = None
    campaign: Optional[Campaign] = None

    @classmethod
    def from_campaign(cls, campaign: Campaign) -> 'CampaignSpec':
        return cls(
            start_date=campaign.start_date,
            end_date=campaign.end_date,
            send_time_local=campaign.send_time_local,
            timezone=campaign.timezone,
            channels=list(campaign.channels or []),
            recipient_ids=list(
                campaign.recipients.order_by('id').values_list('id', flat=True)
            ),
            rotation=list(
                campaign.rotation.order_by('position').values_list('content_item_id', flat=True)
            ),
            content_count=campaign.content_count,
            campaign=campaign,
        )


@dataclass
class FanOut:
    """Unsaved drops and jobs produced by expand_campaign"""
    drops: List[ScheduledDrop]
    jobs: List[SendJob]

    @property
    def jobs_per_drop(self) -> int:
        if not self.drops:
            return 0
        return len(self.jobs) // len(self.drops)


def _unique(values):
    return list(dict.fromkeys(values))


def validate_campaign_spec(spec: CampaignSpec, require_rotation: bool = True):
    """
    Check a spec and raise InvalidCampaignSpec listing every problem.
    Errors are keyed by the form field they belong to.
    """
    errors = {}

    if not spec.channels:
        errors['channels'] = "Select at least one channel."
    else:
        unsupported = [c for c in spec.channels if c not in CampaignConfig.SUPPORTED_CHANNELS]
        if unsupported:
            errors['channels'] = f"Unsupported channels: {', '.join(map(str, unsupported))}."

    if not spec.recipient_ids:
        errors['user_ids'] = "Select at least one recipient."

    if require_rotation and not spec.rotation:
        errors['content_items'] = "Select at least one content item."

    if spec.start_date is None:
        errors['start_date'] = "Start date is required."

    if spec.send_time_local is None:
        errors['send_time_local'] = "Send time is required."

    if spec.content_count is not None and spec.content_count < 1:
        errors['content_count'] = "Content count must be at least 1."

    if spec.end_date is None:
        if spec.content_count is None:
            errors['end_date'] = "Provide an end date or a content count."
    elif spec.start_date is not None and spec.end_date < spec.start_date:
        errors['end_date'] = "End date must be on or after the start date."
    elif (spec.start_date is not None
          and (spec.end_date - spec.start_date).days + 1 > CampaignConfig.MAX_CAMPAIGN_DAYS):
        errors['end_date'] = (
            f"A campaign can cover at most {CampaignConfig.MAX_CAMPAIGN_DAYS} days."
        )

    try:
        zoneinfo.ZoneInfo(spec.timezone)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, TypeError):
        errors['timezone'] = f"Unknown timezone: {spec.timezone}"

    if errors:
        raise InvalidCampaignSpec(errors)


def enumerate_drop_days(spec: CampaignSpec) -> List[date]:
    """Inclusive calendar days of the campaign, ascending"""
    if spec.end_date is not None:
        total = (spec.end_date - spec.start_date).days + 1
    else:
        total = spec.content_count or 0
    return [spec.start_date + timedelta(days=offset) for offset in range(total)]


def localize_send_time(day: date, send_time: time, tz_name: str) -> datetime:
    """
    UTC instant of ``send_time`` on ``day`` in ``tz_name``.

    Uses that day's own UTC offset, so the local wall-clock time stays fixed
    across DST changes. A time skipped by spring-forward keeps the offset in
    force before the jump; a repeated autumn time maps to its first occurrence.
    """
    local = datetime.combine(day, send_time.replace(tzinfo=None, fold=0))
    local = local.replace(tzinfo=zoneinfo.ZoneInfo(tz_name))
    return local.astimezone(dt_timezone.utc)


def select_content(rotation: list, index: int):
    """Content for day ``index``: the rotation wraps around"""
    if not rotation:
        raise CampaignError("Campaign has no content to rotate")
    return rotation[index % len(rotation)]


def expand_campaign(spec: CampaignSpec) -> FanOut:
    """
    Build (but do not save) every drop and send job of a campaign.
    Jobs are ordered by day, then recipient, then channel.
    """
    validate_campaign_spec(spec)

    channels = _unique(spec.channels)
    recipient_ids = _unique(spec.recipient_ids)

    drops = []
    jobs = []
    for sequence, day in enumerate(enumerate_drop_days(spec)):
        drop = ScheduledDrop(
            campaign=spec.campaign,
            sequence=sequence,
            drop_date=day,
            publish_at_utc=localize_send_time(day, spec.send_time_local, spec.timezone),
            content_item_id=select_content(spec.rotation, sequence),
            status=ScheduledDrop.STATUS_PENDING,
        )
        drops.append(drop)
        for recipient_id in recipient_ids:
            for channel in channels:
                jobs.append(SendJob(
                    drop=drop,
                    recipient_id=recipient_id,
                    channel=channel,
                    status=SendJob.STATUS_QUEUED,
                ))

    return FanOut(drops=drops, jobs=jobs)


@transaction.atomic
def materialize_campaign(campaign: Campaign) -> FanOut:
    """Persist all drops and jobs of a campaign, all-or-nothing"""
    campaign = Campaign.objects.select_for_update().get(pk=campaign.pk)

    if campaign.is_cancelled:
        raise CampaignError(f"Campaign {campaign.pk} is cancelled")
    if campaign.scheduled_drops.exists():
        raise CampaignError(f"Campaign {campaign.pk} is already materialized")

    fanout = expand_campaign(CampaignSpec.from_campaign(campaign))

    for drop in fanout.drops:
        drop.save()
    for job in fanout.jobs:
        job.drop_id = job.drop.pk

    SendJob.objects.bulk_create(fanout.jobs, batch_size=CampaignConfig.JOB_BATCH_SIZE)

    logger.info(
        "Materialized campaign %s: %s drops, %s send jobs",
        campaign.pk, len(fanout.drops), len(fanout.jobs)
    )
    return fanout


def _resolve_campaign_id(campaign_or_id) -> int:
    return getattr(campaign_or_id, 'pk', campaign_or_id)


@transaction.atomic
def cancel_campaign(campaign_or_id, user: User = None, request=None) -> int:
    """
    Soft-cancel a campaign. Only pending drops are cancelled; drops already
    handed to delivery and all send jobs stay as they are.
    Returns the number of drops cancelled.
    """
    campaign = Campaign.objects.select_for_update().get(pk=_resolve_campaign_id(campaign_or_id))

    if campaign.is_cancelled:
        return 0

    cancelled = campaign.scheduled_drops.filter(
        status=ScheduledDrop.STATUS_PENDING
    ).update(status=ScheduledDrop.STATUS_CANCELLED)

    campaign.status = Campaign.STATUS_CANCELLED
    campaign.cancelled_at = timezone.now()
    campaign.save(update_fields=['status', 'cancelled_at', 'updated_at'])

    if isinstance(campaign_or_id, Campaign):
        campaign_or_id.status = campaign.status
        campaign_or_id.cancelled_at = campaign.cancelled_at

    log_action(
        user=user,
        action=AuditLog.ACTION_CANCEL,
        target=campaign,
        details=f"Cancelled campaign, {cancelled} pending drops cancelled",
        changes={'cancelled_drops': cancelled},
        request=request,
    )
    logger.info("Campaign %s cancelled, %s drops cancelled", campaign.pk, cancelled)
    return cancelled


def _transition(campaign_or_id, from_status, to_status, action, user, request):
    campaign = Campaign.objects.select_for_update().get(pk=_resolve_campaign_id(campaign_or_id))

    if campaign.status != from_status:
        raise CampaignError(
            f"Cannot change campaign from '{campaign.status}' to '{to_status}'"
        )

    campaign.status = to_status
    campaign.save(update_fields=['status', 'updated_at'])

    if isinstance(campaign_or_id, Campaign):
        campaign_or_id.status = to_status

    log_action(
        user=user,
        action=action,
        target=campaign,
        changes={'status': {'old': from_status, 'new': to_status}},
        request=request,
    )
    return campaign


@transaction.atomic
def pause_campaign(campaign_or_id, user: User = None, request=None) -> Campaign:
    """Stop releasing drops until resumed"""
    return _transition(
        campaign_or_id, Campaign.STATUS_ACTIVE, Campaign.STATUS_PAUSED,
        AuditLog.ACTION_PAUSE, user, request
    )


@transaction.atomic
def resume_campaign(campaign_or_id, user: User = None, request=None) -> Campaign:
    """Drops that fell due while paused are released on the next run"""
    return _transition(
        campaign_or_id, Campaign.STATUS_PAUSED, Campaign.STATUS_ACTIVE,
        AuditLog.ACTION_RESUME, user, request
    )


@transaction.atomic
def release_due_drops(now: datetime = None) -> List[ScheduledDrop]:
    """
    Hand due pending drops of active campaigns to the delivery workers.
    Their send jobs become visible to the workers as soon as the drop is expanded.
    """
    now = now or timezone.now()

    drops = list(
        ScheduledDrop.objects.select_for_update()
        .filter(
            status=ScheduledDrop.STATUS_PENDING,
            publish_at_utc__lte=now,
            campaign__status=Campaign.STATUS_ACTIVE,
        )
        .order_by('publish_at_utc', 'id')
    )
    if not drops:
        return []

    ScheduledDrop.objects.filter(pk__in=[d.pk for d in drops]).update(
        status=ScheduledDrop.STATUS_EXPANDED,
        expanded_at=now,
    )
    for drop in drops:
        drop.status = ScheduledDrop.STATUS_EXPANDED
        drop.expanded_at = now

    logger.info("Released %s due drops", len(drops))
    return drops


JOB_TRANSITIONS = {
    SendJob.STATUS_QUEUED: (SendJob.STATUS_SENT, SendJob.STATUS_FAILED),
    SendJob.STATUS_SENT: (SendJob.STATUS_DELIVERED, SendJob.STATUS_FAILED),
    SendJob.STATUS_DELIVERED: (),
    SendJob.STATUS_FAILED: (),
}


@transaction.atomic
def record_job_status(job, status: str, error: str = None) -> SendJob:
    """
    Delivery worker callback. Once no job of the drop is still queued the
    drop itself counts as sent.
    """
    job = SendJob.objects.select_for_update().get(pk=getattr(job, 'pk', job))

    if status not in JOB_TRANSITIONS:
        raise CampaignError(f"Unknown send job status: {status}")
    if status not in JOB_TRANSITIONS[job.status]:
        raise CampaignError(f"Send job {job.pk} cannot go from '{job.status}' to '{status}'")

    now = timezone.now()
    job.status = status
    if status == SendJob.STATUS_FAILED:
        job.error_message = error or ''
    elif job.sent_at is None:
        job.sent_at = now
    job.save(update_fields=['status', 'error_message', 'sent_at', 'updated_at'])

    drop = ScheduledDrop.objects.select_for_update().get(pk=job.drop_id)
    if (
        drop.status == ScheduledDrop.STATUS_EXPANDED
        and not drop.send_jobs.filter(status=SendJob.STATUS_QUEUED).exists()
    ):
        drop.status = ScheduledDrop.STATUS_SENT
        drop.sent_at = now
        drop.save(update_fields=['status', 'sent_at'])
        logger.info("Drop %s fully sent", drop.pk)

    return job


@transaction.atomic
def attach_generated_content(campaign: Campaign, items, user: User = None,
                             materialize: bool = True) -> List[ContentItem]:
    """
    Store AI generated content as the campaign rotation.

    ``items`` are ContentItem instances or dicts with title/body/meta.
    Exactly ``content_count`` items are required.
    """
    campaign = Campaign.objects.select_for_update().get(pk=campaign.pk)

    if not campaign.is_ai_campaign:
        raise CampaignError(f"Campaign {campaign.pk} is not an AI campaign")
    if campaign.is_cancelled:
        raise CampaignError(f"Campaign {campaign.pk} is cancelled")
    if campaign.rotation.exists():
        raise CampaignError(f"Campaign {campaign.pk} already has content")
    if len(items) != campaign.content_count:
        raise CampaignError(
            f"Expected {campaign.content_count} content items, got {len(items)}"
        )

    stored = []
    for position, item in enumerate(items):
        if isinstance(item, dict):
            item = ContentItem(
                title=item.get('title') or f"{campaign.name} #{position + 1}",
                body=item.get('body', ''),
                meta=item.get('meta') or {},
            )
        if item.pk is None:
            item.organization = campaign.organization
            item.content_type = campaign.content_type or ContentItem.TYPE_GENERAL
            item.is_ai_generated = True
            item.created_by = user
            item.save()
        CampaignContent.objects.create(campaign=campaign, content_item=item, position=position)
        stored.append(item)

    logger.info("Attached %s generated items to campaign %s", len(stored), campaign.pk)

    if materialize:
        materialize_campaign(campaign)
    return stored


def campaign_stats(campaign: Campaign) -> Dict[str, int]:
    """Counters shown on the campaign detail page"""
    drop_counts = campaign.scheduled_drops.aggregate(
        total_drops=Count('id'),
        sent_drops=Count('id', filter=Q(status=ScheduledDrop.STATUS_SENT)),
        pending_drops=Count('id', filter=Q(status__in=[
            ScheduledDrop.STATUS_PENDING, ScheduledDrop.STATUS_EXPANDED
        ])),
        cancelled_drops=Count('id', filter=Q(status=ScheduledDrop.STATUS_CANCELLED)),
    )
    job_counts = SendJob.objects.filter(drop__campaign=campaign).aggregate(
        total_sends=Count('id'),
        successful_sends=Count('id', filter=Q(status__in=[
            SendJob.STATUS_SENT, SendJob.STATUS_DELIVERED
        ])),
        failed_sends=Count('id', filter=Q(status=SendJob.STATUS_FAILED)),
    )
    return {**drop_counts, **job_counts}


def serialize_campaign(campaign: Campaign) -> dict:
    drops_count = getattr(campaign, 'scheduled_drops_count', None)
    if drops_count is None:
        drops_count = campaign.scheduled_drops.count()
    return {
        'id': campaign.pk,
        'name': campaign.name,
        'start_date': campaign.start_date.isoformat() if campaign.start_date else None,
        'end_date': campaign.end_date.isoformat() if campaign.end_date else None,
        'send_time_local': campaign.send_time_local.strftime('%H:%M'),
        'timezone': campaign.timezone,
        'channels': list(campaign.channels or []),
        'status': campaign.status,
        'is_ai': campaign.is_ai_campaign,
        'scheduled_drops_count': drops_count,
    }


def serialize_drop(drop: ScheduledDrop) -> dict:
    item = drop.content_item
    return {
        'id': drop.pk,
        'sequence': drop.sequence,
        'drop_date': drop.drop_date.isoformat(),
        'publish_at_utc': drop.publish_at_utc.isoformat(),
        'status': drop.status,
        'content_item': {
            'id': item.pk,
            'title': item.title,
            'body': item.body,
            'meta': item.meta,
        },
        'send_jobs': [
            {
                'id': job.pk,
                'status': job.status,
                'channel': job.channel,
                'user': {
                    'id': job.recipient_id,
                    'name': job.recipient.get_full_name() or job.recipient.username,
                },
            }
            for job in drop.send_jobs.all()
        ],
    }


def _check_organization_refs(organization, content_item_ids, user_ids) -> Dict[str, str]:
    errors = {}
    if content_item_ids:
        wanted = set(content_item_ids)
        found = set(
            ContentItem.objects.filter(organization=organization, pk__in=wanted)
            .values_list('id', flat=True)
        )
        if wanted - found:
            errors['content_items'] = "Some content items do not exist."
    if user_ids:
        wanted = set(user_ids)
        found = set(
            User.objects.filter(pk__in=wanted, is_active=True).values_list('id', flat=True)
        )
        if wanted - found:
            errors['user_ids'] = "Some recipients do not exist."
    return errors


def create_campaign(organization, user: User, name: str, start_date: date,
                    end_date: date, send_time_local: time, channels: List[str],
                    content_item_ids: List[int], user_ids: List[int],
                    request=None) -> Campaign:
    """Create a manual rotation campaign and materialize its drops immediately"""
    spec = CampaignSpec(
        start_date=start_date,
        end_date=end_date,
        send_time_local=send_time_local,
        timezone=organization.timezone,
        channels=list(channels or []),
        recipient_ids=list(user_ids or []),
        rotation=list(content_item_ids or []),
    )

    errors = {}
    if not isinstance(name, str) or not name.strip():
        errors['name'] = "Name is required."
    if end_date is None:
        errors['end_date'] = "End date is required."
    try:
        validate_campaign_spec(spec)
    except InvalidCampaignSpec as e:
        errors.update(e.errors)
    for key, msg in _check_organization_refs(organization, spec.rotation, spec.recipient_ids).items():
        errors.setdefault(key, msg)
    if errors:
        raise InvalidCampaignSpec(errors)

    with transaction.atomic():
        campaign = Campaign.objects.create(
            name=name.strip(),
            organization=organization,
            start_date=start_date,
            end_date=end_date,
            send_time_local=send_time_local,
            timezone=organization.timezone,
            channels=_unique(spec.channels),
            created_by=user,
        )
        CampaignContent.objects.bulk_create([
            CampaignContent(campaign=campaign, content_item_id=item_id, position=position)
            for position, item_id in enumerate(spec.rotation)
        ])
        campaign.recipients.set(_unique(spec.recipient_ids))
        fanout = materialize_campaign(campaign)

        log_action(
            user=user,
            action=AuditLog.ACTION_CREATE,
            target=campaign,
            details=f"Created campaign with {len(fanout.drops)} drops and {len(fanout.jobs)} send jobs",
            request=request,
        )

    return campaign


def create_ai_campaign(organization, user: User, name: str, start_date: date,
                       send_time_local: time, channels: List[str], user_ids: List[int],
                       prompt: str, content_type: str, content_count,
                       end_date: date = None, request=None) -> Campaign:
    """
    Create an AI campaign. It has no drops until the generated content is
    handed to attach_generated_content.
    """
    errors = {}
    if not isinstance(name, str) or not name.strip():
        errors['name'] = "Name is required."
    if not isinstance(prompt, str) or not prompt.strip():
        errors['prompt'] = "Prompt is required."
    valid_types = [value for value, _label in ContentItem.CONTENT_TYPE_CHOICES]
    if content_type not in valid_types:
        errors['content_type'] = "Choose a valid content type."

    try:
        content_count = int(content_count)
    except (TypeError, ValueError):
        content_count = None
    if content_count is None or not 1 <= content_count <= CampaignConfig.MAX_AI_CONTENT_COUNT:
        errors['content_count'] = (
            f"Content count must be between 1 and {CampaignConfig.MAX_AI_CONTENT_COUNT}."
        )
        content_count = None

    spec = CampaignSpec(
        start_date=start_date,
        end_date=end_date,
        send_time_local=send_time_local,
        timezone=organization.timezone,
        channels=list(channels or []),
        recipient_ids=list(user_ids or []),
        content_count=content_count,
    )
    try:
        validate_campaign_spec(spec, require_rotation=False)
    except InvalidCampaignSpec as e:
        for key, msg in e.errors.items():
            errors.setdefault(key, msg)
    for key, msg in _check_organization_refs(organization, [], spec.recipient_ids).items():
        errors.setdefault(key, msg)
    if (
        'content_count' not in errors and end_date is not None and start_date is not None
        and end_date >= start_date and (end_date - start_date).days + 1 != content_count
    ):
        errors['end_date'] = "End date must cover exactly one day per generated item."
    if errors:
        raise InvalidCampaignSpec(errors)

    with transaction.atomic():
        campaign = Campaign.objects.create(
            name=name.strip(),
            organization=organization,
            start_date=start_date,
            end_date=end_date,
            send_time_local=send_time_local,
            timezone=organization.timezone,
            channels=_unique(spec.channels),
            prompt=prompt.strip(),
            content_type=content_type,
            content_count=content_count,
            created_by=user,
        )
        campaign.recipients.set(_unique(spec.recipient_ids))

        log_action(
            user=user,
            action=AuditLog.ACTION_CREATE,
            target=campaign,
            details=f"Requested {content_count} generated {content_type} items",
            request=request,
        )

    logger.info("AI campaign %s created, awaiting %s generated items", campaign.pk, content_count)
    return campaign
