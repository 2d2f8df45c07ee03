from unittest import mock

from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from accounts.models import User
from datastore.backends.memory import MemoryStore
from datastore.client import get_store, reset_store
from datastore.errors import QueryError
from datastore.testing import MEMORY_BACKEND, sample_data

from . import services
from .forms import CellEditForm


class MeetingLabelTests(SimpleTestCase):
    def test_time_and_weekday(self):
        self.assertEqual(
            services.meeting_label({"meeting_day": 3, "meeting_time": "19:30:00"}),
            "19:30 (Wednesday)",
        )
        self.assertEqual(
            services.meeting_label({"meeting_day": 0, "meeting_time": "08:05:00"}),
            "08:05 (Sunday)",
        )

    def test_out_of_range_day(self):
        self.assertEqual(services.meeting_label({"meeting_day": 9, "meeting_time": "10:00:00"}), "10:00")


class LeaderNameTests(SimpleTestCase):
    def test_resolves_profile(self):
        store = MemoryStore(sample_data())
        self.assertEqual(services.leader_name(store, "prof-2"), "Bruno")
        self.assertIsNone(services.leader_name(store, "missing"))
        self.assertIsNone(services.leader_name(store, None))


@override_settings(ELEVATED_ROLES=("admin",))
class CellEditFormTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())
        self.cell = self.store.get("cells", "cell-1")

    def data(self, **overrides):
        data = {
            "name": "Cell Hope",
            "address": "Rua A, 10",
            "meeting_day": "3",
            "meeting_time": "19:30",
            "leader_id": "prof-1",
            "neighborhood_id": "no-neighborhood",
            "active": "on",
        }
        data.update(overrides)
        return data

    def test_admin_can_change_leader(self):
        form = CellEditForm(self.data(), cell=self.cell, store=self.store, role="admin")
        self.assertTrue(form.is_valid(), form.errors)
        payload = form.payload()
        self.assertEqual(payload["leader_id"], "prof-1")
        self.assertIsNone(payload["neighborhood_id"])
        self.assertEqual(payload["meeting_time"], "19:30:00")
        self.assertEqual(payload["meeting_day"], 3)

    def test_leader_field_locked_for_other_roles(self):
        form = CellEditForm(self.data(), cell=self.cell, store=self.store, role="leader")
        self.assertTrue(form.fields["leader_id"].disabled)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.payload()["leader_id"], "prof-2")

    def test_name_required(self):
        form = CellEditForm(self.data(name=""), cell=self.cell, store=self.store, role="admin")
        self.assertFalse(form.is_valid())
        self.assertIn("name", form.errors)


@override_settings(
    DATASTORE_BACKEND=MEMORY_BACKEND,
    DATASTORE_OPTIONS={"data": sample_data()},
    ELEVATED_ROLES=("admin",),
)
class CellViewTests(TestCase):
    def setUp(self):
        reset_store()
        self.user = User.objects.create_user(email="leader@example.com", role=User.ROLE_LEADER)
        self.client.force_login(self.user)

    def test_list(self):
        response = self.client.get(reverse("cells:list"))
        self.assertContains(response, "Cell Faith")
        self.assertContains(response, "19:30 (Wednesday)")

    def test_detail_shows_cell_and_members(self):
        response = self.client.get(reverse("cells:detail", args=["cell-1"]))
        self.assertContains(response, "Cell Hope")
        self.assertContains(response, "Cell members (2)")
        self.assertContains(response, "Bruno")
        self.assertContains(response, "Ana")

    def test_detail_not_found_notifies_without_crashing(self):
        response = self.client.get(reverse("cells:detail", args=["X"]))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Cell not found.")
        self.assertNotContains(response, "Cell members")

    def test_detail_member_query_failure_keeps_cell(self):
        with mock.patch.object(get_store(), "select", side_effect=QueryError("boom")):
            response = self.client.get(reverse("cells:detail", args=["cell-1"]))
        self.assertContains(response, "Cell Hope")
        self.assertContains(response, "Error fetching cell members: boom")

    def test_edit_updates_cell(self):
        response = self.client.post(
            reverse("cells:edit", args=["cell-2"]),
            {
                "name": "Cell Faith Renewed",
                "address": "Rua B, 22",
                "meeting_day": "5",
                "meeting_time": "20:00",
                "leader_id": "prof-1",
                "neighborhood_id": "nb-3",
                "active": "on",
            },
        )
        self.assertRedirects(
            response, reverse("cells:detail", args=["cell-2"]), fetch_redirect_response=False
        )
        row = get_store().get("cells", "cell-2")
        self.assertEqual(row["name"], "Cell Faith Renewed")
        self.assertEqual(row["meeting_day"], 5)
        self.assertEqual(row["neighborhood_id"], "nb-3")
        # leader role cannot assign a leader
        self.assertIsNone(row["leader_id"])

    def test_edit_failure_rerenders(self):
        with mock.patch.object(get_store(), "update", side_effect=QueryError("offline")):
            response = self.client.post(
                reverse("cells:edit", args=["cell-2"]),
                {"name": "X", "meeting_day": "1", "meeting_time": "20:00"},
            )
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Error updating cell!")
