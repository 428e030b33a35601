"""
Campaign Views (JSON API for the dashboard)

Create, inspect, pause, resume and cancel daily content campaigns.
"""
import json
import logging
from datetime import date, time

from django.shortcuts import get_object_or_404
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.views.decorators.http import require_POST, require_GET
from django.db.models import Count, Prefetch
from django.utils.translation import gettext_lazy as _
from django.contrib.auth.models import User

from Believe.campaign_config import CampaignConfig
from organizations.models import Organization, OrganizationMember
from .models import Campaign, ContentItem, ScheduledDrop, SendJob
from .fanout_service import (
    InvalidCampaignSpec, CampaignError,
    create_campaign, create_ai_campaign, cancel_campaign,
    pause_campaign, resume_campaign,
    campaign_stats, serialize_campaign, serialize_drop,
)

logger = logging.getLogger(__name__)


def _forbidden(message):
    return JsonResponse({'success': False, 'error': str(message)}, status=403)


def _get_organization(request, manage=False):
    """
    Organization the current user acts for.
    With ``manage`` the user must be the owner or a manager.
    """
    organization = Organization.for_user(request.user)
    if organization is None:
        return None
    if manage and organization.owner_id != request.user.pk:
        membership = OrganizationMember.objects.filter(
            organization=organization, user=request.user
        ).first()
        if not membership or not membership.can_manage_campaigns:
            return None
    return organization


def _read_payload(request):
    """Form-encoded or JSON request body as a dict of values and lists"""
    if request.content_type == 'application/json':
        try:
            payload = json.loads(request.body or b'{}')
        except (ValueError, UnicodeDecodeError):
            return None
        return payload if isinstance(payload, dict) else None

    payload = {key: request.POST.get(key) for key in request.POST.keys()}
    for key in ('channels', 'content_items', 'user_ids'):
        payload[key] = request.POST.getlist(key)
    return payload


def _as_list(value):
    if value is None or value == '':
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _text(payload, key, errors):
    """Stripped string value; JSON numbers, lists and objects are rejected"""
    raw = payload.get(key)
    if raw is None:
        return ''
    if not isinstance(raw, str):
        errors[key] = _("Enter text.")
        return ''
    return raw.strip()


def _parse_form(payload, errors):
    """Convert raw request values; problems are added to ``errors``"""
    parsed = {}

    def parse_date(key, required):
        raw = payload.get(key)
        if not raw:
            if required:
                errors[key] = _("This field is required.")
            return None
        try:
            return date.fromisoformat(str(raw))
        except ValueError:
            errors[key] = _("Enter a valid date (YYYY-MM-DD).")
            return None

    def parse_ids(key):
        try:
            return [int(v) for v in _as_list(payload.get(key))]
        except (TypeError, ValueError):
            errors[key] = _("Invalid id list.")
            return []

    parsed['name'] = _text(payload, 'name', errors)
    parsed['start_date'] = parse_date('start_date', required=True)
    parsed['end_date'] = parse_date('end_date', required=False)

    raw_time = payload.get('send_time_local') or CampaignConfig.DEFAULT_SEND_TIME
    try:
        parsed['send_time_local'] = time.fromisoformat(str(raw_time))
    except ValueError:
        errors['send_time_local'] = _("Enter a valid time (HH:MM).")
        parsed['send_time_local'] = None

    parsed['channels'] = [str(c) for c in _as_list(payload.get('channels'))]
    parsed['user_ids'] = parse_ids('user_ids')
    parsed['content_items'] = parse_ids('content_items')
    return parsed


def _validation_response(errors):
    return JsonResponse(
        {'success': False, 'errors': {key: str(msg) for key, msg in errors.items()}},
        status=422
    )


@login_required
@require_GET
def campaign_list(request):
    """Campaigns of the user's organization, newest first"""
    organization = _get_organization(request)
    if organization is None:
        return _forbidden(_("You are not a member of any organization."))

    campaigns = (
        Campaign.objects.filter(organization=organization)
        .annotate(scheduled_drops_count=Count('scheduled_drops'))
        .order_by('-created_at')
    )

    status = request.GET.get('status')
    if status:
        campaigns = campaigns.filter(status=status)

    paginator = Paginator(campaigns, 20)
    page = paginator.get_page(request.GET.get('page', 1))

    return JsonResponse({
        'success': True,
        'campaigns': [serialize_campaign(c) for c in page],
        'page': page.number,
        'num_pages': paginator.num_pages,
        'total': paginator.count,
    })


@login_required
@require_GET
def campaign_form_options(request):
    """Choices and defaults for the create form, with each user's reachable channels"""
    organization = _get_organization(request, manage=True)
    if organization is None:
        return _forbidden(_("You don't have permission to create campaigns."))

    content_items = (
        ContentItem.objects.filter(organization=organization)
        .order_by('-created_at')
        .values('id', 'title', 'content_type')
    )
    users = (
        User.objects.filter(is_active=True)
        .select_related('profile')
        .order_by('first_name', 'username')
    )

    return JsonResponse({
        'success': True,
        'default_channels': CampaignConfig.DEFAULT_CHANNELS,
        'supported_channels': CampaignConfig.SUPPORTED_CHANNELS,
        'default_send_time': CampaignConfig.DEFAULT_SEND_TIME,
        'timezone': organization.timezone,
        'max_campaign_days': CampaignConfig.MAX_CAMPAIGN_DAYS,
        'content_items': list(content_items),
        'users': [
            {
                'id': user.pk,
                'name': user.get_full_name() or user.username,
                'email': user.email,
                'reachable_channels': (
                    user.profile.reachable_channels if hasattr(user, 'profile') else ['web']
                ),
            }
            for user in users
        ],
    })


@login_required
@require_POST
def campaign_create(request):
    """Create a campaign from a manual content rotation"""
    organization = _get_organization(request, manage=True)
    if organization is None:
        return _forbidden(_("You don't have permission to create campaigns."))

    payload = _read_payload(request)
    if payload is None:
        return JsonResponse({'success': False, 'error': 'Invalid request body'}, status=400)

    errors = {}
    form = _parse_form(payload, errors)
    if errors:
        return _validation_response(errors)

    try:
        campaign = create_campaign(
            organization=organization,
            user=request.user,
            name=form['name'],
            start_date=form['start_date'],
            end_date=form['end_date'],
            send_time_local=form['send_time_local'],
            channels=form['channels'],
            content_item_ids=form['content_items'],
            user_ids=form['user_ids'],
            request=request,
        )
    except InvalidCampaignSpec as e:
        return _validation_response(e.errors)

    return JsonResponse({'success': True, 'campaign': serialize_campaign(campaign)}, status=201)


@login_required
@require_POST
def campaign_ai_create(request):
    """Create a campaign whose content will be generated from a prompt"""
    organization = _get_organization(request, manage=True)
    if organization is None:
        return _forbidden(_("You don't have permission to create campaigns."))

    payload = _read_payload(request)
    if payload is None:
        return JsonResponse({'success': False, 'error': 'Invalid request body'}, status=400)

    errors = {}
    form = _parse_form(payload, errors)
    prompt = _text(payload, 'prompt', errors)
    content_type = _text(payload, 'content_type', errors)
    if errors:
        return _validation_response(errors)

    try:
        campaign = create_ai_campaign(
            organization=organization,
            user=request.user,
            name=form['name'],
            start_date=form['start_date'],
            end_date=form['end_date'],
            send_time_local=form['send_time_local'],
            channels=form['channels'],
            user_ids=form['user_ids'],
            prompt=prompt,
            content_type=content_type,
            content_count=payload.get('content_count'),
            request=request,
        )
    except InvalidCampaignSpec as e:
        return _validation_response(e.errors)

    return JsonResponse({'success': True, 'campaign': serialize_campaign(campaign)}, status=201)


@login_required
@require_GET
def campaign_detail(request, campaign_id):
    """Campaign with every drop, its send jobs and the delivery counters"""
    organization = _get_organization(request)
    if organization is None:
        return _forbidden(_("You are not a member of any organization."))

    campaign = get_object_or_404(Campaign, id=campaign_id, organization=organization)

    drops = (
        campaign.scheduled_drops.select_related('content_item')
        .prefetch_related(Prefetch(
            'send_jobs',
            queryset=SendJob.objects.select_related('recipient').order_by('id')
        ))
        .order_by('sequence')
    )

    return JsonResponse({
        'success': True,
        'campaign': serialize_campaign(campaign),
        'scheduled_drops': [serialize_drop(drop) for drop in drops],
        'stats': campaign_stats(campaign),
    })


@login_required
@require_POST
def campaign_destroy(request, campaign_id):
    """Soft cancel: pending drops stop, the campaign row stays"""
    organization = _get_organization(request, manage=True)
    if organization is None:
        return _forbidden(_("You don't have permission to cancel campaigns."))

    campaign = get_object_or_404(Campaign, id=campaign_id, organization=organization)

    try:
        cancelled = cancel_campaign(campaign, user=request.user, request=request)
    except Exception:
        logger.exception("Failed to cancel campaign %s", campaign_id)
        return JsonResponse(
            {'success': False, 'error': str(_("Could not cancel the campaign. Please try again."))},
            status=500
        )

    return JsonResponse({
        'success': True,
        'cancelled_drops': cancelled,
        'campaign': serialize_campaign(campaign),
    })


def _change_status(request, campaign_id, operation):
    organization = _get_organization(request, manage=True)
    if organization is None:
        return _forbidden(_("You don't have permission to change campaigns."))

    campaign = get_object_or_404(Campaign, id=campaign_id, organization=organization)

    try:
        operation(campaign, user=request.user, request=request)
    except CampaignError as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=409)

    return JsonResponse({'success': True, 'campaign': serialize_campaign(campaign)})


@login_required
@require_POST
def campaign_pause(request, campaign_id):
    return _change_status(request, campaign_id, pause_campaign)


@login_required
@require_POST
def campaign_resume(request, campaign_id):
    return _change_status(request, campaign_id, resume_campaign)
