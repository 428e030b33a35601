"""
Tests for Campaign Fan-out System

Covers:
- Drop enumeration, rotation and DST-correct publish times
- Spec validation (nothing is written for invalid input)
- Materialization, cancellation, pause/resume
- Delivery hand-off and job status reporting
- AI campaigns
- JSON views and management commands
"""
import json
import zoneinfo
from io import StringIO
from unittest.mock import patch
from datetime import date, time, datetime, timedelta, timezone as dt_timezone

from django.test import TestCase, SimpleTestCase, Client
from django.contrib.auth.models import User
from django.core.management import call_command
from django.utils import timezone
from django.urls import reverse

from Believe.campaign_config import CampaignConfig
from core.models import AuditLog
from organizations.models import Organization, OrganizationMember
from campaigns.models import Campaign, CampaignContent, ContentItem, ScheduledDrop, SendJob
from campaigns.fanout_service import (
    CampaignSpec, InvalidCampaignSpec, CampaignError,
    validate_campaign_spec, enumerate_drop_days, localize_send_time,
    select_content, expand_campaign, materialize_campaign,
    cancel_campaign, pause_campaign, resume_campaign,
    release_due_drops, record_job_status, attach_generated_content,
    campaign_stats, serialize_campaign, create_campaign, create_ai_campaign,
)


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


def make_spec(**overrides):
    values = dict(
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 7),
        send_time_local=time(7, 0),
        timezone='UTC',
        channels=['web'],
        recipient_ids=[1],
        rotation=[10],
    )
    values.update(overrides)
    return CampaignSpec(**values)


class ExpandCampaignTest(SimpleTestCase):
    """Pure expansion, no database access"""

    def test_one_drop_per_day_inclusive(self):
        fanout = expand_campaign(make_spec())

        self.assertEqual(len(fanout.drops), 7)
        self.assertEqual(
            [d.drop_date for d in fanout.drops],
            [date(2024, 1, 1) + timedelta(days=i) for i in range(7)]
        )
        self.assertEqual([d.sequence for d in fanout.drops], list(range(7)))

    def test_single_day_campaign(self):
        fanout = expand_campaign(make_spec(end_date=date(2024, 1, 1)))
        self.assertEqual(len(fanout.drops), 1)

    def test_job_count_is_days_times_recipients_times_channels(self):
        fanout = expand_campaign(make_spec(
            recipient_ids=[1, 2, 3],
            channels=['web', 'whatsapp'],
        ))

        self.assertEqual(len(fanout.jobs), 7 * 3 * 2)
        self.assertEqual(fanout.jobs_per_drop, 6)
        for drop in fanout.drops:
            self.assertEqual(len([j for j in fanout.jobs if j.drop is drop]), 6)

    def test_jobs_ordered_by_day_recipient_channel(self):
        fanout = expand_campaign(make_spec(
            end_date=date(2024, 1, 2),
            recipient_ids=[5, 6],
            channels=['whatsapp', 'web'],
        ))

        self.assertEqual(
            [(j.drop.sequence, j.recipient_id, j.channel) for j in fanout.jobs],
            [
                (0, 5, 'whatsapp'), (0, 5, 'web'), (0, 6, 'whatsapp'), (0, 6, 'web'),
                (1, 5, 'whatsapp'), (1, 5, 'web'), (1, 6, 'whatsapp'), (1, 6, 'web'),
            ]
        )

    def test_duplicate_channels_and_recipients_collapse(self):
        fanout = expand_campaign(make_spec(
            end_date=date(2024, 1, 1),
            recipient_ids=[1, 1],
            channels=['web', 'web'],
        ))
        self.assertEqual(len(fanout.jobs), 1)

    def test_rotation_wraps_around(self):
        fanout = expand_campaign(make_spec(rotation=[1, 2, 3]))
        self.assertEqual([d.content_item_id for d in fanout.drops], [1, 2, 3, 1, 2, 3, 1])

    def test_all_drops_start_pending_and_jobs_queued(self):
        fanout = expand_campaign(make_spec())
        self.assertTrue(all(d.status == ScheduledDrop.STATUS_PENDING for d in fanout.drops))
        self.assertTrue(all(j.status == SendJob.STATUS_QUEUED for j in fanout.jobs))

    def test_content_count_without_end_date(self):
        spec = make_spec(end_date=None, content_count=4)
        self.assertEqual(
            enumerate_drop_days(spec),
            [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4)]
        )

    def test_spring_forward_keeps_local_wall_clock(self):
        fanout = expand_campaign(make_spec(
            start_date=date(2024, 3, 8),
            end_date=date(2024, 3, 11),
            send_time_local=time(7, 0),
            timezone='America/New_York',
            channels=['web', 'whatsapp'],
            recipient_ids=[1, 2],
            rotation=['A', 'B'],
        ))

        self.assertEqual([d.content_item_id for d in fanout.drops], ['A', 'B', 'A', 'B'])
        self.assertEqual(len(fanout.jobs), 16)
        self.assertEqual(
            [d.publish_at_utc for d in fanout.drops],
            [utc(2024, 3, 8, 12), utc(2024, 3, 9, 12), utc(2024, 3, 10, 11), utc(2024, 3, 11, 11)]
        )
        new_york = zoneinfo.ZoneInfo('America/New_York')
        for drop in fanout.drops:
            self.assertEqual(drop.publish_at_utc.astimezone(new_york).time(), time(7, 0))

    def test_fall_back_keeps_local_wall_clock(self):
        fanout = expand_campaign(make_spec(
            start_date=date(2024, 11, 2),
            end_date=date(2024, 11, 4),
            timezone='America/New_York',
        ))
        self.assertEqual(
            [d.publish_at_utc for d in fanout.drops],
            [utc(2024, 11, 2, 11), utc(2024, 11, 3, 12), utc(2024, 11, 4, 12)]
        )

    def test_nonexistent_local_time_uses_offset_before_jump(self):
        self.assertEqual(
            localize_send_time(date(2024, 3, 10), time(2, 30), 'America/New_York'),
            utc(2024, 3, 10, 7, 30)
        )

    def test_ambiguous_local_time_uses_first_occurrence(self):
        self.assertEqual(
            localize_send_time(date(2024, 11, 3), time(1, 30), 'America/New_York'),
            utc(2024, 11, 3, 5, 30)
        )

    def test_select_content_requires_rotation(self):
        self.assertEqual(select_content(['A', 'B'], 5), 'B')
        with self.assertRaises(CampaignError):
            select_content([], 0)


class ValidateCampaignSpecTest(SimpleTestCase):

    def assertInvalid(self, field, **overrides):
        with self.assertRaises(InvalidCampaignSpec) as ctx:
            validate_campaign_spec(make_spec(**overrides))
        self.assertIn(field, ctx.exception.errors)

    def test_valid_spec_passes(self):
        validate_campaign_spec(make_spec())

    def test_empty_channels(self):
        self.assertInvalid('channels', channels=[])

    def test_unsupported_channel(self):
        self.assertInvalid('channels', channels=['sms'])

    def test_empty_recipients(self):
        self.assertInvalid('user_ids', recipient_ids=[])

    def test_empty_rotation(self):
        self.assertInvalid('content_items', rotation=[])

    def test_end_before_start(self):
        self.assertInvalid('end_date', end_date=date(2023, 12, 31))

    def test_needs_end_date_or_content_count(self):
        self.assertInvalid('end_date', end_date=None, content_count=None)

    def test_unknown_timezone(self):
        self.assertInvalid('timezone', timezone='Mars/Olympus_Mons')

    @patch.object(CampaignConfig, 'MAX_CAMPAIGN_DAYS', 7)
    def test_date_range_capped(self):
        validate_campaign_spec(make_spec(end_date=date(2024, 1, 7)))
        self.assertInvalid('end_date', end_date=date(2024, 1, 8))

    def test_expand_raises_before_producing_anything(self):
        with self.assertRaises(InvalidCampaignSpec):
            expand_campaign(make_spec(channels=[], recipient_ids=[]))

    def test_all_errors_reported_together(self):
        with self.assertRaises(InvalidCampaignSpec) as ctx:
            validate_campaign_spec(make_spec(channels=[], recipient_ids=[], rotation=[]))
        self.assertEqual(
            set(ctx.exception.errors),
            {'channels', 'user_ids', 'content_items'}
        )


class CampaignTestBase(TestCase):
    """Organization with three content items and two recipients"""

    @classmethod
    def setUpTestData(cls):
        cls.owner = User.objects.create_user(username='owner', password='testpass123')
        cls.organization = Organization.objects.create(
            name='Grace Ministry',
            owner=cls.owner,
            timezone='America/New_York'
        )
        cls.item_a = ContentItem.objects.create(
            organization=cls.organization, title='A', body='Prayer A',
            content_type=ContentItem.TYPE_PRAYER
        )
        cls.item_b = ContentItem.objects.create(
            organization=cls.organization, title='B', body='Prayer B',
            content_type=ContentItem.TYPE_PRAYER
        )
        cls.item_c = ContentItem.objects.create(
            organization=cls.organization, title='C', body='Scripture C',
            content_type=ContentItem.TYPE_SCRIPTURE, meta={'reference': 'John 3:16'}
        )
        cls.u1 = User.objects.create_user(username='u1', first_name='Una')
        cls.u2 = User.objects.create_user(username='u2')

    def create(self, **overrides):
        values = dict(
            organization=self.organization,
            user=self.owner,
            name='Lent Prayers',
            start_date=date(2024, 3, 8),
            end_date=date(2024, 3, 11),
            send_time_local=time(7, 0),
            channels=['web', 'whatsapp'],
            content_item_ids=[self.item_a.pk, self.item_b.pk],
            user_ids=[self.u1.pk, self.u2.pk],
        )
        values.update(overrides)
        return create_campaign(**values)


class CreateCampaignTest(CampaignTestBase):

    def test_create_materializes_drops_and_jobs(self):
        campaign = self.create()

        self.assertEqual(campaign.timezone, 'America/New_York')
        self.assertEqual(campaign.status, Campaign.STATUS_ACTIVE)

        drops = list(campaign.scheduled_drops.order_by('sequence'))
        self.assertEqual(len(drops), 4)
        self.assertEqual(
            [d.content_item_id for d in drops],
            [self.item_a.pk, self.item_b.pk, self.item_a.pk, self.item_b.pk]
        )
        self.assertEqual(drops[2].publish_at_utc, utc(2024, 3, 10, 11))
        self.assertEqual(SendJob.objects.filter(drop__campaign=campaign).count(), 16)
        for drop in drops:
            self.assertEqual(drop.send_jobs.count(), 4)

    def test_century_long_campaign_rejected(self):
        with self.assertRaises(InvalidCampaignSpec) as ctx:
            self.create(start_date=date(2024, 1, 1), end_date=date(2123, 12, 31))

        self.assertIn('end_date', ctx.exception.errors)
        self.assertEqual(Campaign.objects.count(), 0)
        self.assertEqual(ScheduledDrop.objects.count(), 0)

    def test_rotation_positions_preserved(self):
        campaign = self.create(content_item_ids=[self.item_c.pk, self.item_a.pk])
        self.assertEqual(campaign.get_rotation(), [self.item_c, self.item_a])

    def test_create_writes_audit_log(self):
        campaign = self.create()
        entry = AuditLog.objects.get(action=AuditLog.ACTION_CREATE, object_id=campaign.pk)
        self.assertEqual(entry.user, self.owner)
        self.assertEqual(entry.organization, self.organization)

    def test_invalid_input_writes_nothing(self):
        for overrides in (
            {'channels': []},
            {'user_ids': []},
            {'end_date': date(2024, 3, 1)},
        ):
            with self.subTest(overrides=overrides):
                with self.assertRaises(InvalidCampaignSpec):
                    self.create(**overrides)

        self.assertEqual(Campaign.objects.count(), 0)
        self.assertEqual(ScheduledDrop.objects.count(), 0)
        self.assertEqual(SendJob.objects.count(), 0)

    def test_name_required(self):
        with self.assertRaises(InvalidCampaignSpec) as ctx:
            self.create(name='  ')
        self.assertIn('name', ctx.exception.errors)

    def test_foreign_content_rejected(self):
        other_owner = User.objects.create_user(username='other')
        other_org = Organization.objects.create(name='Other', owner=other_owner)
        foreign = ContentItem.objects.create(organization=other_org, title='X', body='X')

        with self.assertRaises(InvalidCampaignSpec) as ctx:
            self.create(content_item_ids=[foreign.pk])
        self.assertIn('content_items', ctx.exception.errors)

    def test_unknown_recipient_rejected(self):
        with self.assertRaises(InvalidCampaignSpec) as ctx:
            self.create(user_ids=[self.u1.pk, 99999])
        self.assertIn('user_ids', ctx.exception.errors)

    def test_materialize_twice_refused(self):
        campaign = self.create()
        with self.assertRaises(CampaignError):
            materialize_campaign(campaign)
        self.assertEqual(campaign.scheduled_drops.count(), 4)

    def test_spec_from_campaign(self):
        campaign = self.create(user_ids=[self.u2.pk, self.u1.pk])
        spec = CampaignSpec.from_campaign(campaign)

        self.assertEqual(spec.recipient_ids, [self.u1.pk, self.u2.pk])
        self.assertEqual(spec.rotation, [self.item_a.pk, self.item_b.pk])
        self.assertEqual(spec.channels, ['web', 'whatsapp'])


class CancelCampaignTest(CampaignTestBase):

    def setUp(self):
        self.campaign = self.create(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 5),
            channels=['web'],
        )

    def test_cancel_only_touches_pending_drops(self):
        ScheduledDrop.objects.filter(campaign=self.campaign, sequence__in=[0, 1]).update(
            status=ScheduledDrop.STATUS_SENT
        )
        jobs_before = list(
            SendJob.objects.filter(drop__campaign=self.campaign).values_list('id', 'status')
        )

        cancelled = cancel_campaign(self.campaign, user=self.owner)

        self.assertEqual(cancelled, 3)
        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.status, Campaign.STATUS_CANCELLED)
        self.assertIsNotNone(self.campaign.cancelled_at)
        statuses = list(self.campaign.scheduled_drops.order_by('sequence').values_list('status', flat=True))
        self.assertEqual(statuses, ['sent', 'sent', 'cancelled', 'cancelled', 'cancelled'])
        self.assertEqual(
            list(SendJob.objects.filter(drop__campaign=self.campaign).values_list('id', 'status')),
            jobs_before
        )

    def test_expanded_drops_survive_cancel(self):
        ScheduledDrop.objects.filter(campaign=self.campaign, sequence=0).update(
            status=ScheduledDrop.STATUS_EXPANDED
        )
        self.assertEqual(cancel_campaign(self.campaign.pk), 4)
        self.assertEqual(
            self.campaign.scheduled_drops.get(sequence=0).status,
            ScheduledDrop.STATUS_EXPANDED
        )

    def test_cancel_is_idempotent(self):
        self.assertEqual(cancel_campaign(self.campaign), 5)
        self.assertEqual(cancel_campaign(self.campaign), 0)
        self.assertEqual(
            AuditLog.objects.filter(action=AuditLog.ACTION_CANCEL).count(), 1
        )

    def test_cancelled_campaign_cannot_resume_or_materialize(self):
        cancel_campaign(self.campaign)
        with self.assertRaises(CampaignError):
            resume_campaign(self.campaign)
        with self.assertRaises(CampaignError):
            materialize_campaign(self.campaign)


class PauseResumeTest(CampaignTestBase):

    def test_pause_and_resume(self):
        campaign = self.create()

        pause_campaign(campaign, user=self.owner)
        self.assertEqual(campaign.status, Campaign.STATUS_PAUSED)
        with self.assertRaises(CampaignError):
            pause_campaign(campaign)

        resume_campaign(campaign, user=self.owner)
        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.STATUS_ACTIVE)
        with self.assertRaises(CampaignError):
            resume_campaign(campaign)

        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_PAUSE).exists())
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_RESUME).exists())


class DeliveryHandOffTest(CampaignTestBase):

    def setUp(self):
        self.campaign = self.create(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 3),
            channels=['web'],
        )
        self.drops = list(self.campaign.scheduled_drops.order_by('sequence'))

    def test_release_only_due_drops(self):
        released = release_due_drops(now=self.drops[1].publish_at_utc)

        self.assertEqual([d.pk for d in released], [self.drops[0].pk, self.drops[1].pk])
        statuses = list(self.campaign.scheduled_drops.order_by('sequence').values_list('status', flat=True))
        self.assertEqual(statuses, ['expanded', 'expanded', 'pending'])
        self.assertIsNotNone(self.campaign.scheduled_drops.get(sequence=0).expanded_at)

    def test_release_is_not_repeated(self):
        release_due_drops(now=timezone.now())
        self.assertEqual(release_due_drops(now=timezone.now()), [])

    def test_paused_campaign_drops_are_held(self):
        pause_campaign(self.campaign)
        self.assertEqual(release_due_drops(now=timezone.now()), [])

        resume_campaign(self.campaign)
        self.assertEqual(len(release_due_drops(now=timezone.now())), 3)

    def test_drop_becomes_sent_when_no_job_is_queued(self):
        release_due_drops(now=self.drops[0].publish_at_utc)
        first, second = list(self.drops[0].send_jobs.order_by('id'))

        record_job_status(first, SendJob.STATUS_SENT)
        self.drops[0].refresh_from_db()
        self.assertEqual(self.drops[0].status, ScheduledDrop.STATUS_EXPANDED)

        record_job_status(second.pk, SendJob.STATUS_FAILED, error='Number unreachable')
        self.drops[0].refresh_from_db()
        self.assertEqual(self.drops[0].status, ScheduledDrop.STATUS_SENT)
        self.assertIsNotNone(self.drops[0].sent_at)

        second.refresh_from_db()
        self.assertEqual(second.error_message, 'Number unreachable')

    def test_job_status_transitions(self):
        job = self.drops[0].send_jobs.first()

        with self.assertRaises(CampaignError):
            record_job_status(job, SendJob.STATUS_DELIVERED)
        with self.assertRaises(CampaignError):
            record_job_status(job, 'bounced')

        record_job_status(job, SendJob.STATUS_SENT)
        job = record_job_status(job, SendJob.STATUS_DELIVERED)
        self.assertEqual(job.status, SendJob.STATUS_DELIVERED)
        self.assertIsNotNone(job.sent_at)

        with self.assertRaises(CampaignError):
            record_job_status(job, SendJob.STATUS_FAILED)

    def test_stats(self):
        cancel_campaign(self.campaign)
        ScheduledDrop.objects.filter(pk=self.drops[0].pk).update(status=ScheduledDrop.STATUS_SENT)
        job = self.drops[0].send_jobs.first()
        record_job_status(job, SendJob.STATUS_FAILED)

        stats = campaign_stats(self.campaign)

        self.assertEqual(stats, {
            'total_drops': 3,
            'sent_drops': 1,
            'pending_drops': 0,
            'cancelled_drops': 2,
            'total_sends': 6,
            'successful_sends': 0,
            'failed_sends': 1,
        })

    def test_serialize_campaign(self):
        data = serialize_campaign(self.campaign)
        self.assertEqual(data['send_time_local'], '07:00')
        self.assertEqual(data['channels'], ['web'])
        self.assertEqual(data['scheduled_drops_count'], 3)
        self.assertEqual(data['end_date'], '2024-01-03')


class AICampaignTest(CampaignTestBase):

    def create_ai(self, **overrides):
        values = dict(
            organization=self.organization,
            user=self.owner,
            name='Advent Devotionals',
            start_date=date(2024, 12, 1),
            send_time_local=time(6, 30),
            channels=['push'],
            user_ids=[self.u1.pk],
            prompt='Short devotionals about hope',
            content_type=ContentItem.TYPE_DEVOTIONAL,
            content_count=3,
        )
        values.update(overrides)
        return create_ai_campaign(**values)

    def test_created_without_drops(self):
        campaign = self.create_ai()
        self.assertTrue(campaign.is_ai_campaign)
        self.assertEqual(campaign.scheduled_drops.count(), 0)

    def test_content_count_bounds(self):
        for count in (0, 31, 'many'):
            with self.subTest(count=count):
                with self.assertRaises(InvalidCampaignSpec) as ctx:
                    self.create_ai(content_count=count)
                self.assertIn('content_count', ctx.exception.errors)

    def test_prompt_and_type_required(self):
        with self.assertRaises(InvalidCampaignSpec) as ctx:
            self.create_ai(prompt='', content_type='poem')
        self.assertIn('prompt', ctx.exception.errors)
        self.assertIn('content_type', ctx.exception.errors)

    def test_attach_generated_content_materializes(self):
        campaign = self.create_ai()

        items = attach_generated_content(campaign, [
            {'title': 'Hope 1', 'body': 'Day one'},
            {'title': 'Hope 2', 'body': 'Day two'},
            {'title': 'Hope 3', 'body': 'Day three', 'meta': {'reference': 'Rom 15:13'}},
        ])

        self.assertEqual(len(items), 3)
        self.assertTrue(all(i.is_ai_generated for i in items))
        self.assertTrue(all(i.content_type == ContentItem.TYPE_DEVOTIONAL for i in items))
        drops = list(campaign.scheduled_drops.order_by('sequence'))
        self.assertEqual([d.drop_date for d in drops], [date(2024, 12, 1), date(2024, 12, 2), date(2024, 12, 3)])
        self.assertEqual([d.content_item for d in drops], items)
        self.assertEqual(SendJob.objects.filter(drop__campaign=campaign).count(), 3)

    def test_attach_wrong_count_rejected(self):
        campaign = self.create_ai()
        with self.assertRaises(CampaignError):
            attach_generated_content(campaign, [{'title': 'Only one', 'body': '...'}])
        self.assertEqual(ContentItem.objects.filter(is_ai_generated=True).count(), 0)

    def test_attach_to_manual_campaign_rejected(self):
        campaign = self.create()
        with self.assertRaises(CampaignError):
            attach_generated_content(campaign, [])


class CampaignViewsTest(CampaignTestBase):

    def setUp(self):
        self.client = Client()
        self.client.force_login(self.owner)

    def payload(self, **overrides):
        data = {
            'name': 'Morning Prayer',
            'start_date': '2024-03-08',
            'end_date': '2024-03-11',
            'send_time_local': '07:00',
            'channels': ['web', 'whatsapp'],
            'content_items': [self.item_a.pk, self.item_b.pk],
            'user_ids': [self.u1.pk, self.u2.pk],
        }
        data.update(overrides)
        return data

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def test_login_required(self):
        response = Client().get(reverse('campaign_list'))
        self.assertEqual(response.status_code, 302)

    def test_create_campaign(self):
        response = self.post_json(reverse('campaign_create'), self.payload())

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['campaign']['scheduled_drops_count'], 4)

    def test_create_with_form_encoding(self):
        response = self.client.post(reverse('campaign_create'), self.payload())
        self.assertEqual(response.status_code, 201)

    def test_validation_errors_return_422(self):
        response = self.post_json(reverse('campaign_create'), self.payload(
            channels=[], end_date='2024-03-01'
        ))

        self.assertEqual(response.status_code, 422)
        errors = response.json()['errors']
        self.assertIn('channels', errors)
        self.assertIn('end_date', errors)
        self.assertEqual(Campaign.objects.count(), 0)

    def test_bad_date_returns_422(self):
        response = self.post_json(reverse('campaign_create'), self.payload(start_date='08/03/2024'))
        self.assertEqual(response.status_code, 422)
        self.assertIn('start_date', response.json()['errors'])

    def test_staff_cannot_create(self):
        staff = User.objects.create_user(username='staff')
        OrganizationMember.objects.create(
            organization=self.organization, user=staff, role=OrganizationMember.ROLE_STAFF
        )
        self.client.force_login(staff)

        response = self.post_json(reverse('campaign_create'), self.payload())
        self.assertEqual(response.status_code, 403)

    def test_list_and_detail(self):
        campaign = self.create()

        response = self.client.get(reverse('campaign_list'), {'status': 'active'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['id'] for c in response.json()['campaigns']], [campaign.pk])

        response = self.client.get(reverse('campaign_detail', args=[campaign.pk]))
        data = response.json()
        self.assertEqual(len(data['scheduled_drops']), 4)
        self.assertEqual(len(data['scheduled_drops'][0]['send_jobs']), 4)
        self.assertEqual(data['scheduled_drops'][0]['content_item']['title'], 'A')
        self.assertEqual(data['stats']['total_sends'], 16)

    def test_other_organization_campaign_is_404(self):
        campaign = self.create()
        outsider = User.objects.create_user(username='outsider')
        Organization.objects.create(name='Elsewhere', owner=outsider)
        self.client.force_login(outsider)

        response = self.client.get(reverse('campaign_detail', args=[campaign.pk]))
        self.assertEqual(response.status_code, 404)

    def test_destroy_is_soft_cancel(self):
        campaign = self.create()

        response = self.client.post(reverse('campaign_destroy', args=[campaign.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['cancelled_drops'], 4)
        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.STATUS_CANCELLED)
        self.assertEqual(SendJob.objects.filter(drop__campaign=campaign).count(), 16)

    def test_pause_resume_endpoints(self):
        campaign = self.create()

        response = self.client.post(reverse('campaign_pause', args=[campaign.pk]))
        self.assertEqual(response.json()['campaign']['status'], 'paused')

        response = self.client.post(reverse('campaign_pause', args=[campaign.pk]))
        self.assertEqual(response.status_code, 409)

        response = self.client.post(reverse('campaign_resume', args=[campaign.pk]))
        self.assertEqual(response.json()['campaign']['status'], 'active')

    def test_ai_create(self):
        response = self.post_json(reverse('campaign_ai_create'), {
            'name': 'Generated',
            'start_date': '2024-12-01',
            'send_time_local': '06:30',
            'channels': ['web'],
            'user_ids': [self.u1.pk],
            'prompt': 'Psalms for the week',
            'content_type': 'scripture',
            'content_count': 7,
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['campaign']['scheduled_drops_count'], 0)

    def test_ai_create_non_text_fields_return_422(self):
        response = self.post_json(reverse('campaign_ai_create'), {
            'name': 'Generated',
            'start_date': '2024-12-01',
            'channels': ['web'],
            'user_ids': [self.u1.pk],
            'prompt': 5,
            'content_type': ['scripture'],
            'content_count': 7,
        })

        self.assertEqual(response.status_code, 422)
        errors = response.json()['errors']
        self.assertIn('prompt', errors)
        self.assertIn('content_type', errors)
        self.assertEqual(Campaign.objects.count(), 0)

    def test_create_non_text_name_returns_422(self):
        response = self.post_json(reverse('campaign_create'), self.payload(name=42))

        self.assertEqual(response.status_code, 422)
        self.assertIn('name', response.json()['errors'])

    def test_create_over_long_range_returns_422(self):
        response = self.post_json(reverse('campaign_create'), self.payload(
            start_date='2024-01-01', end_date='2124-01-01'
        ))

        self.assertEqual(response.status_code, 422)
        self.assertIn('end_date', response.json()['errors'])
        self.assertEqual(ScheduledDrop.objects.count(), 0)

    def test_form_options(self):
        self.u1.profile.contact_number = '+254700000000'
        self.u1.profile.whatsapp_opt_in = True
        self.u1.profile.save()

        response = self.client.get(reverse('campaign_form_options'))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['default_channels'], CampaignConfig.DEFAULT_CHANNELS)
        self.assertEqual(data['timezone'], 'America/New_York')
        self.assertEqual(
            {item['title'] for item in data['content_items']}, {'A', 'B', 'C'}
        )
        users = {u['id']: u for u in data['users']}
        self.assertEqual(users[self.u1.pk]['reachable_channels'], ['web', 'whatsapp'])
        self.assertEqual(users[self.u2.pk]['reachable_channels'], ['web'])

    def test_form_options_requires_manager(self):
        staff = User.objects.create_user(username='staff')
        OrganizationMember.objects.create(
            organization=self.organization, user=staff, role=OrganizationMember.ROLE_STAFF
        )
        self.client.force_login(staff)

        response = self.client.get(reverse('campaign_form_options'))
        self.assertEqual(response.status_code, 403)


class CampaignCommandsTest(CampaignTestBase):

    def test_release_drops_command(self):
        self.create(start_date=date(2024, 1, 1), end_date=date(2024, 1, 2), channels=['web'])
        out = StringIO()

        call_command('release_drops', stdout=out)

        self.assertIn('Released 2 drop(s)', out.getvalue())
        self.assertEqual(
            ScheduledDrop.objects.filter(status=ScheduledDrop.STATUS_EXPANDED).count(), 2
        )

    def test_release_drops_dry_run(self):
        self.create(start_date=date(2024, 1, 1), end_date=date(2024, 1, 2), channels=['web'])
        out = StringIO()

        call_command('release_drops', '--dry-run', stdout=out)

        self.assertIn('Would release 2 drop(s)', out.getvalue())
        self.assertFalse(ScheduledDrop.objects.exclude(status=ScheduledDrop.STATUS_PENDING).exists())

    def test_release_drops_config(self):
        out = StringIO()
        call_command('release_drops', '--config', '--validate', stdout=out)
        self.assertIn('SUPPORTED_CHANNELS', out.getvalue())
        self.assertIn('All settings are valid', out.getvalue())

    def test_materialize_campaigns_command(self):
        campaign = Campaign.objects.create(
            name='Imported',
            organization=self.organization,
            start_date=date(2024, 5, 1),
            end_date=date(2024, 5, 3),
            send_time_local=time(8, 0),
            timezone='Europe/London',
            channels=['web'],
        )
        CampaignContent.objects.create(campaign=campaign, content_item=self.item_c, position=0)
        campaign.recipients.set([self.u1, self.u2])

        out = StringIO()
        call_command('materialize_campaigns', '--dry-run', stdout=out)
        self.assertIn('3 drops, 6 send jobs', out.getvalue())
        self.assertEqual(campaign.scheduled_drops.count(), 0)

        call_command('materialize_campaigns', stdout=out)
        self.assertEqual(campaign.scheduled_drops.count(), 3)
        self.assertEqual(
            campaign.scheduled_drops.first().publish_at_utc, utc(2024, 5, 1, 7)
        )

        out = StringIO()
        call_command('materialize_campaigns', stdout=out)
        self.assertIn('No campaigns to materialize', out.getvalue())
