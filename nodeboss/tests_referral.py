"""
Tests for Node Sells and Referral Enrollment

Tests cover:
- One referral per (user, node boss), however many sales
- No acting user means no referral and no error
- Referral link generation and collision retries
- Share allocation and closing
- Completing and canceling sales, commission amounts
- Self-referral rejection
- JSON endpoints
"""
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase, Client
from django.contrib.auth.models import User
from django.urls import reverse

from core.models import AuditLog
from nodeboss.models import NodeBoss, NodeShare, NodeSell, NodeReferral
from nodeboss.referral_service import (
    NodeSellService, NodeSellError,
    on_node_sell_created, record_node_sell, get_or_create_available_share,
    complete_node_sell, cancel_node_sell,
)


class NodeSellTestBase(TestCase):
    """Base class with common test fixtures"""

    @classmethod
    def setUpTestData(cls):
        cls.buyer = User.objects.create_user(
            username='buyer',
            email='grace@example.com',
            first_name='Grace',
            last_name='Hopper'
        )
        cls.referrer = User.objects.create_user(
            username='referrer',
            email='ada@example.com',
            first_name='Ada',
            last_name='Lovelace'
        )
        cls.staff = User.objects.create_user(username='staff', is_staff=True)
        cls.node_boss = NodeBoss.objects.create(name='Clean Water Node', price=Decimal('2000.00'))
        cls.other_boss = NodeBoss.objects.create(name='School Node', price=Decimal('2000.00'))

    def buy(self, user=None, amount='100.00', node_boss=None, ref=None):
        return record_node_sell(
            node_boss=node_boss or self.node_boss,
            amount=amount,
            buyer_name='Grace Hopper',
            buyer_email='grace@example.com',
            user=user,
            ref=ref,
        )

    def bare_sell(self, user, certificate_id):
        """Sale row without running the enrollment hook"""
        share = NodeShare.objects.create(node_boss=self.node_boss)
        return NodeSell.objects.create(
            user=user,
            node_boss=self.node_boss,
            node_share=share,
            amount=Decimal('10.00'),
            buyer_name='Grace Hopper',
            buyer_email='grace@example.com',
            certificate_id=certificate_id,
        )


class ReferralEnrollmentTest(NodeSellTestBase):

    def test_first_sale_enrolls_buyer(self):
        sell = self.buy(user=self.buyer)

        referral = NodeReferral.objects.get(user=self.buyer, node_boss=self.node_boss)
        self.assertEqual(referral.status, NodeReferral.STATUS_INACTIVE)
        self.assertEqual(referral.commission_percentage, Decimal('20.00'))
        self.assertEqual(referral.node_sell, sell)
        self.assertEqual(referral.node_share, sell.node_share)
        self.assertEqual(referral.level, 1)
        self.assertIsNone(referral.parent_referral)

    def test_two_sales_same_node_boss_one_referral(self):
        self.buy(user=self.buyer)
        second = self.buy(user=self.buyer)

        self.assertEqual(
            NodeReferral.objects.filter(user=self.buyer, node_boss=self.node_boss).count(), 1
        )
        referral, created = on_node_sell_created(second, self.buyer.pk)
        self.assertFalse(created)
        self.assertEqual(referral.node_sell.node_boss, self.node_boss)

    def test_duplicate_insert_returns_existing_row(self):
        first = self.bare_sell(self.buyer, 'CERT-AAAA0001')
        second = self.bare_sell(self.buyer, 'CERT-AAAA0002')

        referral, created = on_node_sell_created(first, self.buyer.pk)
        again, created_again = on_node_sell_created(second, self.buyer.pk)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(again.pk, referral.pk)
        self.assertEqual(again.node_sell_id, first.pk)

    def test_separate_referral_per_node_boss(self):
        self.buy(user=self.buyer)
        self.buy(user=self.buyer, node_boss=self.other_boss)
        self.assertEqual(NodeReferral.objects.filter(user=self.buyer).count(), 2)

    def test_no_actor_is_silent_noop(self):
        sell = self.bare_sell(None, 'CERT-NOACTOR1')

        with self.assertNoLogs('nodeboss.referral_service', level='INFO'):
            result = on_node_sell_created(sell, None)

        self.assertEqual(result, (None, False))
        self.assertEqual(NodeReferral.objects.count(), 0)

    def test_anonymous_sale_creates_no_referral(self):
        sell = self.buy(user=None)
        self.assertEqual(sell.status, NodeSell.STATUS_PENDING)
        self.assertEqual(NodeReferral.objects.count(), 0)

    def test_link_uses_referral_code(self):
        self.buyer.profile.referral_code = 'grace'
        self.buyer.profile.save()

        self.buy(user=self.buyer)
        self.buy(user=self.buyer, node_boss=self.other_boss)

        first = NodeReferral.objects.get(user=self.buyer, node_boss=self.node_boss)
        second = NodeReferral.objects.get(user=self.buyer, node_boss=self.other_boss)
        self.assertEqual(first.referral_link, 'grace')
        self.assertRegex(second.referral_link, r'^grace-\d{4}$')

    def test_link_collision_is_retried(self):
        NodeReferral.objects.create(
            user=self.referrer,
            node_boss=self.other_boss,
            referral_link='grace-hopper-1111',
        )
        sell = self.bare_sell(self.buyer, 'CERT-COLLIDE1')

        with patch('nodeboss.referral_service.get_random_string', side_effect=['1111', '2222']):
            referral, created = on_node_sell_created(sell, self.buyer.pk)

        self.assertTrue(created)
        self.assertEqual(referral.referral_link, 'grace-hopper-2222')

    def test_gives_up_after_configured_attempts(self):
        NodeReferral.objects.create(
            user=self.referrer,
            node_boss=self.other_boss,
            referral_link='grace-hopper-1111',
        )
        sell = self.bare_sell(self.buyer, 'CERT-COLLIDE2')

        with patch('nodeboss.referral_service.get_random_string', return_value='1111'):
            with self.assertRaises(NodeSellError):
                on_node_sell_created(sell, self.buyer.pk)

        self.assertFalse(NodeReferral.objects.filter(user=self.buyer).exists())


class ReferralUsageTest(NodeSellTestBase):

    def setUp(self):
        self.buy(user=self.referrer)
        self.referral = NodeReferral.objects.get(user=self.referrer, node_boss=self.node_boss)

    def test_sale_through_referral_link(self):
        sell = self.buy(user=self.buyer, amount='150.00', ref=self.referral.referral_link)

        self.assertEqual(sell.node_referral, self.referral)
        own = NodeReferral.objects.get(user=self.buyer, node_boss=self.node_boss)
        self.assertEqual(own.parent_referral, self.referral)
        self.assertEqual(own.level, 2)

    def test_completion_activates_referral_and_returns_commission(self):
        sell = self.buy(user=self.buyer, amount='150.00', ref=self.referral.referral_link)

        commission = complete_node_sell(sell.pk, transaction_id='pi_123', payment_method='card')

        self.assertEqual(commission, Decimal('30.00'))
        self.referral.refresh_from_db()
        self.assertEqual(self.referral.status, NodeReferral.STATUS_ACTIVE)
        sell.refresh_from_db()
        self.assertEqual(sell.status, NodeSell.STATUS_COMPLETED)
        self.assertEqual(sell.transaction_id, 'pi_123')
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_SALE).exists())

    def test_own_link_rejected(self):
        with self.assertRaises(NodeSellError):
            self.buy(user=self.referrer, ref=self.referral.referral_link)
        self.assertEqual(NodeSell.objects.filter(user=self.referrer).count(), 1)

    def test_staff_may_use_own_link(self):
        self.referral.user = self.staff
        self.referral.save()
        sell = self.buy(user=self.staff, ref=self.referral.referral_link)
        self.assertEqual(sell.node_referral, self.referral)

    def test_link_for_other_node_boss_ignored(self):
        sell = self.buy(user=self.buyer, node_boss=self.other_boss, ref=self.referral.referral_link)
        self.assertIsNone(sell.node_referral)

    def test_unknown_link_ignored(self):
        sell = self.buy(user=self.buyer, ref='does-not-exist')
        self.assertIsNone(sell.node_referral)

    def test_no_commission_without_referral(self):
        sell = self.buy(user=self.buyer)
        self.assertEqual(complete_node_sell(sell.pk, 'pi_1', 'card'), Decimal('0.00'))


class NodeShareAllocationTest(NodeSellTestBase):

    def test_new_share_uses_default_cost(self):
        sell = self.buy(user=self.buyer)
        self.assertEqual(sell.node_share.cost, Decimal('2000.00'))
        self.assertEqual(sell.node_share.remaining, Decimal('2000.00'))
        self.assertTrue(sell.certificate_id.startswith('CERT-'))
        self.assertEqual(len(sell.certificate_id), 13)

    def test_completion_fills_and_closes_share(self):
        first = self.buy(user=self.buyer, amount='1500.00')
        second = self.buy(user=self.buyer, amount='500.00')
        self.assertEqual(first.node_share_id, second.node_share_id)

        complete_node_sell(first.pk, 'pi_1', 'card')
        share = NodeShare.objects.get(pk=first.node_share_id)
        self.assertEqual(share.sold, Decimal('1500.00'))
        self.assertEqual(share.remaining, Decimal('500.00'))
        self.assertEqual(share.status, NodeShare.STATUS_OPEN)

        complete_node_sell(second.pk, 'pi_2', 'card')
        share.refresh_from_db()
        self.assertEqual(share.remaining, Decimal('0.00'))
        self.assertEqual(share.status, NodeShare.STATUS_CLOSED)

        third = self.buy(user=self.buyer, amount='100.00')
        self.assertNotEqual(third.node_share_id, share.pk)

    def test_oversold_share_closes_at_zero(self):
        first = self.buy(user=self.buyer, amount='1500.00')
        second = self.buy(user=self.buyer, amount='1500.00')
        self.assertEqual(first.node_share_id, second.node_share_id)

        complete_node_sell(first.pk, 'pi_1', 'card')
        complete_node_sell(second.pk, 'pi_2', 'card')

        share = NodeShare.objects.get(pk=first.node_share_id)
        self.assertEqual(share.sold, Decimal('3000.00'))
        self.assertEqual(share.remaining, Decimal('0.00'))
        self.assertEqual(share.status, NodeShare.STATUS_CLOSED)

    def test_oldest_share_with_room_is_used(self):
        older = NodeShare.objects.create(
            node_boss=self.node_boss, sold=Decimal('1900.00'), remaining=Decimal('100.00')
        )
        newer = NodeShare.objects.create(node_boss=self.node_boss)

        self.assertEqual(get_or_create_available_share(self.node_boss, '50'), older)
        self.assertEqual(get_or_create_available_share(self.node_boss, '150'), newer)

    def test_share_status_repaired(self):
        stale = NodeShare.objects.create(
            node_boss=self.node_boss, sold=Decimal('2000.00'), remaining=Decimal('0.00'),
            status=NodeShare.STATUS_OPEN
        )
        share = get_or_create_available_share(self.node_boss, '10')

        stale.refresh_from_db()
        self.assertEqual(stale.status, NodeShare.STATUS_CLOSED)
        self.assertNotEqual(share, stale)

    def test_large_amount_gets_own_share(self):
        share = get_or_create_available_share(self.node_boss, '2500')
        self.assertEqual(share.cost, Decimal('2500.00'))


class NodeSellValidationTest(NodeSellTestBase):

    def test_invalid_amounts_rejected(self):
        for amount in ('0', '-5', 'abc', None, 'NaN'):
            with self.subTest(amount=amount):
                with self.assertRaises(NodeSellError):
                    self.buy(user=self.buyer, amount=amount)
        self.assertEqual(NodeSell.objects.count(), 0)

    def test_amount_quantized(self):
        self.assertEqual(NodeSellService.validate_amount('10.555'), Decimal('10.56'))

    def test_inactive_node_boss_rejected(self):
        self.node_boss.status = NodeBoss.STATUS_INACTIVE
        self.node_boss.save()
        with self.assertRaises(NodeSellError):
            self.buy(user=self.buyer)

    def test_complete_twice_rejected(self):
        sell = self.buy(user=self.buyer)
        complete_node_sell(sell.pk, 'pi_1', 'card')
        with self.assertRaises(NodeSellError):
            complete_node_sell(sell.pk, 'pi_1', 'card')

    def test_cancel_pending_sale(self):
        sell = self.buy(user=self.buyer)

        cancel_node_sell(sell.pk)
        sell.refresh_from_db()
        self.assertEqual(sell.status, NodeSell.STATUS_CANCELED)

        with self.assertRaises(NodeSellError):
            cancel_node_sell(sell.pk)
        with self.assertRaises(NodeSellError):
            complete_node_sell(sell.pk, 'pi_1', 'card')


class NodeBossViewsTest(NodeSellTestBase):

    def setUp(self):
        self.client = Client()

    def test_purchase_endpoint(self):
        self.client.force_login(self.buyer)

        response = self.client.post(
            reverse('node_sell_create', args=[self.node_boss.pk]),
            {'amount': '250', 'message': 'For the well'}
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['certificate_id'].startswith('CERT-'))
        sell = NodeSell.objects.get(pk=data['node_sell_id'])
        self.assertEqual(sell.buyer_name, 'Grace Hopper')
        self.assertEqual(sell.buyer_email, 'grace@example.com')
        self.assertTrue(NodeReferral.objects.filter(user=self.buyer).exists())

    def test_purchase_with_own_link_returns_error(self):
        self.buy(user=self.buyer)
        link = NodeReferral.objects.get(user=self.buyer).referral_link
        self.client.force_login(self.buyer)

        url = reverse('node_sell_create', args=[self.node_boss.pk]) + f'?ref={link}'
        response = self.client.post(url, {'amount': '100'})

        self.assertEqual(response.status_code, 400)
        self.assertIn('own referral link', response.json()['error'])

    def test_referral_list_scoped_and_filtered(self):
        self.buy(user=self.buyer)
        self.buy(user=self.referrer)
        self.client.force_login(self.buyer)

        data = self.client.get(reverse('node_referral_list')).json()
        self.assertEqual(len(data['referrals']), 1)
        self.assertEqual(data['stats']['total_referrals'], 1)

        self.client.force_login(self.staff)
        data = self.client.get(reverse('node_referral_list')).json()
        self.assertEqual(data['stats']['total_referrals'], 2)

        data = self.client.get(reverse('node_referral_list'), {'search': 'ada'}).json()
        self.assertEqual([r['user']['id'] for r in data['referrals']], [self.referrer.pk])

        data = self.client.get(reverse('node_referral_list'), {'type': 'big_boss'}).json()
        self.assertEqual(data['referrals'], [])

        data = self.client.get(reverse('node_referral_list'), {'status': 'inactive'}).json()
        self.assertEqual(len(data['referrals']), 2)

    def test_complete_endpoint_staff_only(self):
        sell = self.buy(user=self.buyer)
        url = reverse('node_sell_complete', args=[sell.pk])

        self.client.force_login(self.buyer)
        self.assertEqual(self.client.post(url, {'transaction_id': 'pi_9'}).status_code, 403)

        self.client.force_login(self.staff)
        response = self.client.post(url, {'transaction_id': 'pi_9', 'payment_method': 'card'})
        self.assertEqual(response.json(), {'success': True, 'commission': '0.00'})

    def test_cancel_endpoint(self):
        sell = self.buy(user=self.buyer)
        self.client.force_login(self.referrer)
        url = reverse('node_sell_cancel', args=[sell.pk])
        self.assertEqual(self.client.post(url).status_code, 403)

        self.client.force_login(self.buyer)
        self.assertEqual(self.client.post(url).status_code, 200)
