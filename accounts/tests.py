from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from .adapter import StaffAccountAdapter
from .models import User
from .permissions import can_edit_field, enforce_restricted_fields, is_elevated


@override_settings(ELEVATED_ROLES=("admin",))
class CanEditFieldTests(SimpleTestCase):
    def test_unrestricted_fields_are_editable_by_anyone(self):
        self.assertTrue(can_edit_field("user", "name"))
        self.assertTrue(can_edit_field(None, "whatsapp"))

    def test_restricted_contact_fields_need_elevated_role(self):
        for field in ("cell_id", "leader_id"):
            self.assertTrue(can_edit_field("admin", field))
            self.assertFalse(can_edit_field("leader", field))
            self.assertFalse(can_edit_field(None, field))

    def test_cells_only_restrict_leader(self):
        self.assertTrue(can_edit_field("leader", "name", "cells"))
        self.assertFalse(can_edit_field("leader", "leader_id", "cells"))

    @override_settings(ELEVATED_ROLES=("admin", "pastor"))
    def test_elevated_roles_come_from_settings(self):
        self.assertTrue(is_elevated("pastor"))
        self.assertTrue(can_edit_field("pastor", "cell_id"))


@override_settings(ELEVATED_ROLES=("admin",))
class EnforceRestrictedFieldsTests(SimpleTestCase):
    original = {"cell_id": "cell-1", "leader_id": None, "name": "Ana"}

    def test_non_elevated_role_keeps_original_values(self):
        payload = {"cell_id": "cell-Y", "leader_id": "prof-9", "name": "Ana Maria"}
        with self.assertLogs("accounts.permissions", level="WARNING"):
            enforce_restricted_fields(payload, self.original, "leader")
        self.assertEqual(payload, {"cell_id": "cell-1", "leader_id": None, "name": "Ana Maria"})

    def test_elevated_role_changes_pass_through(self):
        payload = {"cell_id": "cell-Y", "leader_id": "prof-9"}
        enforce_restricted_fields(payload, self.original, "admin")
        self.assertEqual(payload, {"cell_id": "cell-Y", "leader_id": "prof-9"})


class HomeViewTests(TestCase):
    def test_anonymous_user_is_sent_to_login(self):
        response = self.client.get(reverse("home"))
        self.assertRedirects(
            response, f"{reverse('account_login')}?next=/", fetch_redirect_response=False
        )

    def test_dashboard_shows_role(self):
        user = User.objects.create_user(email="lead@example.com", role=User.ROLE_LEADER)
        self.client.force_login(user)
        response = self.client.get(reverse("home"))
        self.assertContains(response, "Cell leader")
        self.assertContains(response, reverse("cells:list"))


class UserManagerTests(TestCase):
    def test_superuser_is_admin(self):
        user = User.objects.create_superuser(email="root@example.com", password="s3cret-pass")
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(user.is_staff)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email="")


class StaffAccountAdapterTests(SimpleTestCase):
    def test_signup_is_closed(self):
        request = RequestFactory().get("/accounts/signup/")
        self.assertFalse(StaffAccountAdapter(request).is_open_for_signup(request))
