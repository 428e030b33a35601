from django.test import TestCase
from django.contrib.auth.models import User

from accounts.models import Profile


class ProfileTest(TestCase):

    def test_profile_created_with_user(self):
        user = User.objects.create_user('member')
        self.assertTrue(Profile.objects.filter(user=user).exists())

    def test_web_is_always_reachable(self):
        user = User.objects.create_user('member')
        self.assertEqual(user.profile.reachable_channels, ['web'])

    def test_whatsapp_requires_number_and_opt_in(self):
        profile = User.objects.create_user('member').profile
        profile.contact_number = '+254700000000'
        self.assertNotIn('whatsapp', profile.reachable_channels)

        profile.whatsapp_opt_in = True
        self.assertEqual(profile.reachable_channels, ['web', 'whatsapp'])

    def test_push_requires_token(self):
        profile = User.objects.create_user('member').profile
        profile.push_token = 'ExponentPushToken[abc]'
        self.assertEqual(profile.reachable_channels, ['web', 'push'])

    def test_str_prefers_full_name(self):
        user = User.objects.create_user('member', first_name='Ruth', last_name='Moab')
        self.assertEqual(str(user.profile), 'Ruth Moab')
