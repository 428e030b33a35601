from django.test import TestCase
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError

from organizations.models import Organization, OrganizationMember, validate_timezone_name


class OrganizationModelTest(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'owner@example.com', 'password')

    def test_owner_becomes_member(self):
        org = Organization.objects.create(name='Hope Church', owner=self.owner)

        member = OrganizationMember.objects.get(organization=org, user=self.owner)
        self.assertEqual(member.role, OrganizationMember.ROLE_OWNER)
        self.assertTrue(member.can_manage_campaigns)

    def test_default_timezone(self):
        org = Organization.objects.create(name='Hope Church', owner=self.owner)
        self.assertEqual(org.timezone, 'UTC')

    def test_timezone_validator(self):
        validate_timezone_name('Africa/Nairobi')
        with self.assertRaises(ValidationError):
            validate_timezone_name('Atlantis/Capital')

        org = Organization(name='Bad', owner=self.owner, timezone='Nowhere/Town')
        with self.assertRaises(ValidationError):
            org.full_clean()

    def test_for_user_prefers_owned_organization(self):
        other_owner = User.objects.create_user('other')
        joined = Organization.objects.create(name='Joined', owner=other_owner)
        OrganizationMember.objects.create(organization=joined, user=self.owner)
        owned = Organization.objects.create(name='Owned', owner=self.owner)

        self.assertEqual(Organization.for_user(self.owner), owned)

    def test_for_user_falls_back_to_membership(self):
        org = Organization.objects.create(name='Joined', owner=self.owner)
        staff = User.objects.create_user('staff')
        OrganizationMember.objects.create(organization=org, user=staff)

        self.assertEqual(Organization.for_user(staff), org)
        self.assertFalse(OrganizationMember.objects.get(user=staff).can_manage_campaigns)

    def test_for_user_without_organization(self):
        loner = User.objects.create_user('loner')
        self.assertIsNone(Organization.for_user(loner))

    def test_inactive_membership_ignored(self):
        org = Organization.objects.create(name='Joined', owner=self.owner)
        staff = User.objects.create_user('staff')
        OrganizationMember.objects.create(organization=org, user=staff, is_active=False)

        self.assertIsNone(Organization.for_user(staff))
