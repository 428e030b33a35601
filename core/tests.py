from django.test import TestCase, RequestFactory
from django.contrib.auth.models import User, AnonymousUser

from core.audit import log_action, get_client_ip
from core.models import AuditLog
from organizations.models import Organization, OrganizationMember


class AuditLogTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user('auditor')
        self.organization = Organization.objects.create(name='Audit Org', owner=self.user)
        self.factory = RequestFactory()

    def test_log_action_records_target(self):
        entry = log_action(
            user=self.user,
            action=AuditLog.ACTION_UPDATE,
            target=self.organization,
            details='Renamed',
            changes={'name': {'old': 'A', 'new': 'Audit Org'}},
        )

        self.assertEqual(entry.object_id, self.organization.pk)
        self.assertEqual(entry.target_repr, 'Audit Org')
        self.assertEqual(entry.changes['name']['new'], 'Audit Org')
        self.assertIsNone(entry.organization)

    def test_organization_taken_from_target(self):
        member = OrganizationMember.objects.get(organization=self.organization, user=self.user)
        entry = log_action(user=self.user, action=AuditLog.ACTION_UPDATE, target=member)
        self.assertEqual(entry.organization, self.organization)

    def test_anonymous_user_logged_as_system(self):
        entry = log_action(user=AnonymousUser(), action=AuditLog.ACTION_OTHER)
        self.assertIsNone(entry.user)
        self.assertIn('System', str(entry))

    def test_request_metadata(self):
        request = self.factory.post(
            '/', HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1', HTTP_USER_AGENT='pytest'
        )
        entry = log_action(user=self.user, action=AuditLog.ACTION_CREATE, request=request)

        self.assertEqual(entry.ip_address, '203.0.113.9')
        self.assertEqual(entry.user_agent, 'pytest')

    def test_client_ip_without_proxy(self):
        request = self.factory.get('/', REMOTE_ADDR='198.51.100.4')
        self.assertEqual(get_client_ip(request), '198.51.100.4')
