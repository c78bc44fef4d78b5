# users/tests/test_permissions.py

from types import SimpleNamespace

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from users.models import User
from users.permissions import IsAdmin, IsSalesStaff


def _request(user):
    return SimpleNamespace(user=user)


class RolePermissionTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(email="admin@example.com", role=User.ROLE_ADMIN)
        self.groomer = User.objects.create_user(username="groomer", role=User.ROLE_GROOMER)

    def test_sales_staff_covers_every_role(self):
        for user in (self.admin, self.groomer):
            with self.subTest(role=user.role):
                self.assertTrue(IsSalesStaff().has_permission(_request(user), None))

    def test_admin_only(self):
        self.assertTrue(IsAdmin().has_permission(_request(self.admin), None))
        self.assertFalse(IsAdmin().has_permission(_request(self.groomer), None))

    def test_anonymous_is_rejected(self):
        self.assertFalse(IsSalesStaff().has_permission(_request(AnonymousUser()), None))

    def test_username_shortcut_builds_email(self):
        self.assertEqual(self.groomer.email, "groomer@local.test")
        self.assertFalse(self.groomer.has_usable_password())
        self.assertEqual(self.groomer.display_name, "groomer@local.test")

    def test_admins_manager_skips_inactive(self):
        User.objects.create_user(
            email="old-admin@example.com", role=User.ROLE_ADMIN, is_active=False
        )

        self.assertEqual(list(User.objects.admins()), [self.admin])
