from datetime import date
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from accounts.models import User
from datastore.backends.memory import MemoryStore
from datastore.client import get_store, reset_store
from datastore.errors import QueryError
from datastore.testing import MEMORY_BACKEND, sample_data

from . import services
from .editing import (
    CLOSED,
    EDITING,
    SENTINELS,
    ContactEditor,
    ValidationFailure,
    build_payload,
    change_city,
    normalize,
    populate,
    validate_required,
)
from .forms import ContactEditForm


class PopulateTests(SimpleTestCase):
    def test_every_field_is_defaulted(self):
        data = populate({"id": "c1", "name": "Ana"})
        self.assertEqual(data["name"], "Ana")
        self.assertEqual(data["whatsapp"], "")
        self.assertEqual(data["cell_id"], "")
        self.assertEqual(data["status"], "pending")
        self.assertIs(data["baptized"], False)
        self.assertIsNone(data["age"])
        self.assertNotIn(None, [v for k, v in data.items() if k != "age"])

    def test_values_from_record(self):
        record = sample_data()["contacts"][0]
        data = populate(record)
        self.assertEqual(data["cell_id"], "cell-1")
        self.assertEqual(data["birth_date"], "1994-05-12")
        self.assertIs(data["encounter_with_god"], True)
        self.assertEqual(data["age"], 30)


class ValidationTests(SimpleTestCase):
    def test_first_blank_field_wins(self):
        with self.assertRaises(ValidationFailure) as ctx:
            validate_required({"name": "  ", "whatsapp": "", "neighborhood": ""})
        self.assertEqual(ctx.exception.field, "name")
        with self.assertRaises(ValidationFailure) as ctx:
            validate_required({"name": "Ana", "whatsapp": " ", "neighborhood": ""})
        self.assertEqual(ctx.exception.field, "whatsapp")
        with self.assertRaises(ValidationFailure) as ctx:
            validate_required({"name": "Ana", "whatsapp": "319", "neighborhood": "no-neighborhood"})
        self.assertEqual(ctx.exception.field, "neighborhood")

    def test_complete_form_passes(self):
        validate_required({"name": "Ana", "whatsapp": "319", "neighborhood": "Centro"})


class NormalizeTests(SimpleTestCase):
    def test_sentinels_and_blanks_become_null(self):
        form_data = populate({"name": "Ana", "whatsapp": "1", "neighborhood": "Centro"})
        form_data.update(SENTINELS)
        data = normalize(form_data)
        for field in SENTINELS:
            self.assertIsNone(data[field], field)
        self.assertIsNone(data["birth_date"])
        self.assertIsNone(data["photo_url"])

    def test_real_ids_are_kept(self):
        data = normalize({"city_id": "city-1", "cell_id": "cell-1", "birth_date": date(2000, 1, 2)})
        self.assertEqual(data["city_id"], "city-1")
        self.assertEqual(data["cell_id"], "cell-1")
        self.assertEqual(data["birth_date"], "2000-01-02")

    def test_change_city_clears_neighborhood(self):
        data = change_city({"city_id": "city-1", "neighborhood": "Centro"}, "city-2")
        self.assertEqual(data, {"city_id": "city-2", "neighborhood": ""})


@override_settings(ELEVATED_ROLES=("admin",))
class BuildPayloadTests(SimpleTestCase):
    def setUp(self):
        self.original = sample_data()["contacts"][0]

    def test_payload_has_full_field_set(self):
        payload = build_payload(populate(self.original), self.original, "admin")
        self.assertEqual(
            set(payload),
            {
                "name", "whatsapp", "neighborhood", "city_id", "cell_id", "ministry_id",
                "status", "encounter_with_god", "baptized", "pipeline_stage_id", "age",
                "birth_date", "referred_by", "photo_url", "founder", "leader_id",
            },
        )

    def test_non_elevated_user_keeps_original_cell_and_leader(self):
        form_data = {**populate(self.original), "cell_id": "cell-Y", "leader_id": "no-leader"}
        payload = build_payload(form_data, self.original, "leader")
        self.assertEqual(payload["cell_id"], "cell-1")
        self.assertEqual(payload["leader_id"], "prof-2")

    def test_elevated_user_may_clear_cell(self):
        form_data = {**populate(self.original), "cell_id": "no-cell"}
        payload = build_payload(form_data, self.original, "admin")
        self.assertIsNone(payload["cell_id"])


@override_settings(ELEVATED_ROLES=("admin",))
class ContactEditorTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())
        self.notify = mock.Mock()
        self.updates = []
        self.closed = mock.Mock()

    def editor(self, role="admin", record=None):
        editor = ContactEditor(
            self.store, role, self.notify, on_update=self.updates.append, on_close=self.closed
        )
        editor.open(record or self.store.get("contacts", "contact-1"))
        return editor

    def test_open_seeds_form(self):
        editor = self.editor()
        self.assertEqual(editor.state, EDITING)
        self.assertEqual(editor.form_data["name"], "Ana")

    def test_blank_required_field_blocks_write(self):
        for field in ("name", "whatsapp", "neighborhood"):
            editor = self.editor()
            editor.set_field(field, "   ")
            with mock.patch.object(self.store, "update") as update:
                self.assertFalse(editor.submit())
            update.assert_not_called()
            self.assertEqual(editor.error.field, field)
            self.assertEqual(editor.state, EDITING)

    def test_missing_whatsapp_scenario(self):
        record = {**self.store.get("contacts", "contact-1"), "name": "Ana", "whatsapp": "", "neighborhood": "Centro"}
        editor = self.editor(record=record)
        with mock.patch.object(self.store, "update") as update:
            self.assertFalse(editor.submit())
        update.assert_not_called()
        self.notify.assert_called_once_with("Error", "WhatsApp is required!", "destructive")

    def test_selecting_city_clears_neighborhood(self):
        editor = self.editor()
        editor.set_field("city_id", "city-2")
        self.assertEqual(editor.form_data["city_id"], "city-2")
        self.assertEqual(editor.form_data["neighborhood"], "")

    def test_explicit_sentinels_are_sent_as_null(self):
        editor = self.editor()
        editor.select_city("no-city")
        editor.set_field("neighborhood", "Centro")
        editor.set_field("cell_id", "no-cell")
        with mock.patch.object(self.store, "update", wraps=self.store.update) as update:
            self.assertTrue(editor.submit())
        payload = update.call_args.args[2]
        self.assertIsNone(payload["city_id"])
        self.assertIsNone(payload["cell_id"])
        self.assertEqual(payload["neighborhood"], "Centro")

    def test_non_admin_cannot_move_contact_to_another_cell(self):
        editor = self.editor(role="leader")
        self.assertFalse(editor.can_edit("cell_id"))
        editor.set_field("cell_id", "cell-Y")
        with mock.patch.object(self.store, "update", wraps=self.store.update) as update:
            self.assertTrue(editor.submit())
        self.assertEqual(update.call_args.args[2]["cell_id"], "cell-1")
        self.assertEqual(self.store.get("contacts", "contact-1")["cell_id"], "cell-1")

    def test_success_hands_back_returned_record_and_closes(self):
        editor = self.editor()
        editor.set_field("name", "Ana Maria")
        returned = {"id": "contact-1", "name": "Ana Maria (server)"}
        with mock.patch.object(self.store, "update", return_value=returned):
            self.assertTrue(editor.submit())
        self.assertEqual(self.updates, [returned])
        self.assertEqual(editor.state, CLOSED)
        self.closed.assert_called_once_with()
        self.notify.assert_called_once_with("Success", "Contact updated successfully!")

    def test_update_failure_keeps_form_data(self):
        editor = self.editor()
        editor.set_field("name", "Ana Maria")
        with mock.patch.object(self.store, "update", side_effect=QueryError("offline")):
            self.assertFalse(editor.submit())
        self.assertEqual(editor.state, EDITING)
        self.assertEqual(editor.form_data["name"], "Ana Maria")
        self.assertEqual(self.updates, [])
        self.closed.assert_not_called()
        self.notify.assert_called_once_with("Error", "Error updating contact!", "destructive")

    def test_unknown_field_rejected(self):
        with self.assertRaises(KeyError):
            self.editor().set_field("email", "x")

    def test_submit_requires_open_editor(self):
        editor = ContactEditor(self.store, "admin", self.notify)
        with self.assertRaises(RuntimeError):
            editor.submit()


class ReferenceDataTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())

    def test_profiles_active_by_name(self):
        self.assertEqual([p["name"] for p in services.active_profiles(self.store)], ["Alice", "Bruno"])

    def test_stages_active_by_position(self):
        self.assertEqual(
            [s["id"] for s in services.active_pipeline_stages(self.store)], ["stage-1", "stage-2"]
        )

    def test_neighborhoods_follow_city(self):
        self.assertEqual(
            [n["name"] for n in services.neighborhoods_for_city(self.store, "city-1")],
            ["Centro", "Savassi"],
        )
        self.assertEqual(services.neighborhoods_for_city(self.store, ""), [])

    def test_failing_list_is_empty(self):
        with mock.patch.object(self.store, "select", side_effect=QueryError("down")):
            self.assertEqual(services.cities(self.store), [])


class MonthlyBirthdaysTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())

    def test_members_of_current_month_sorted_by_day(self):
        rows = services.monthly_birthdays(self.store, today=date(2024, 5, 1))
        self.assertEqual([r["name"] for r in rows], ["Joao", "Ana"])
        self.assertEqual(rows[0]["day"], 3)
        self.assertEqual(rows[0]["age"], 34)
        self.assertEqual(rows[1]["age"], 30)

    def test_other_month_is_empty(self):
        self.assertEqual(services.monthly_birthdays(self.store, today=date(2024, 6, 1)), [])

    def test_query_failure_yields_empty_list(self):
        with mock.patch.object(self.store, "select", side_effect=QueryError("down")):
            self.assertEqual(services.monthly_birthdays(self.store, today=date(2024, 5, 1)), [])


@override_settings(ELEVATED_ROLES=("admin",))
class ContactEditFormTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())

    def editor(self, role):
        editor = ContactEditor(self.store, role, mock.Mock())
        editor.open(self.store.get("contacts", "contact-1"))
        return editor

    def test_restricted_fields_disabled_for_non_admin(self):
        form = ContactEditForm(editor=self.editor("leader"), store=self.store)
        self.assertTrue(form.fields["cell_id"].disabled)
        self.assertTrue(form.fields["leader_id"].disabled)
        self.assertIn("Only admins", form.fields["cell_id"].help_text)
        self.assertFalse(form.fields["name"].disabled)

    def test_admin_controls_enabled(self):
        form = ContactEditForm(editor=self.editor("admin"), store=self.store)
        self.assertFalse(form.fields["cell_id"].disabled)

    def test_initial_uses_sentinels_for_empty_selections(self):
        form = ContactEditForm(editor=self.editor("admin"), store=self.store)
        self.assertEqual(form.initial["ministry_id"], "no-ministry")
        self.assertEqual(form.initial["cell_id"], "cell-1")
        self.assertEqual(form.initial["loaded_city_id"], "city-1")
        self.assertEqual(
            [c[0] for c in form.fields["neighborhood"].choices],
            ["no-neighborhood", "Centro", "Savassi"],
        )

    def test_posted_city_change_clears_neighborhood(self):
        form = ContactEditForm(
            {
                "name": "Ana",
                "whatsapp": "319",
                "city_id": "city-2",
                "loaded_city_id": "city-1",
                "neighborhood": "Centro",
                "status": "member",
            },
            editor=self.editor("admin"),
            store=self.store,
        )
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["neighborhood"], "")
        self.assertEqual(form.cleaned_data["city_id"], "city-2")
        self.assertEqual(
            [c[0] for c in form.fields["neighborhood"].choices], ["no-neighborhood", "Eldorado"]
        )


@override_settings(
    DATASTORE_BACKEND=MEMORY_BACKEND,
    DATASTORE_OPTIONS={"data": sample_data()},
    ELEVATED_ROLES=("admin",),
)
class ContactViewTests(TestCase):
    def setUp(self):
        reset_store()
        self.admin = User.objects.create_user(email="admin@example.com", role=User.ROLE_ADMIN)
        self.leader = User.objects.create_user(email="leader@example.com", role=User.ROLE_LEADER)
        self.url = reverse("contacts:edit", args=["contact-1"])

    def post_data(self, **overrides):
        data = {
            "name": "Ana",
            "whatsapp": "31999990000",
            "city_id": "city-1",
            "loaded_city_id": "city-1",
            "neighborhood": "Centro",
            "birth_date": "1994-05-12",
            "age": "30",
            "status": "member",
            "encounter_with_god": "on",
            "leader_id": "prof-2",
            "cell_id": "cell-1",
            "referred_by": "no-referral",
            "pipeline_stage_id": "stage-1",
            "ministry_id": "no-ministry",
            "photo_url": "",
        }
        data.update(overrides)
        return data

    def test_edit_requires_login(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 302)

    def test_edit_form_renders_populated(self):
        self.client.force_login(self.leader)
        response = self.client.get(self.url)
        self.assertContains(response, 'value="Ana"')
        self.assertContains(response, "(Only admins can edit)")

    def test_successful_edit_persists_and_redirects(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            self.url, self.post_data(name="Ana Maria", cell_id="cell-2", ministry_id="min-1")
        )
        self.assertRedirects(
            response, reverse("contacts:detail", args=["contact-1"]), fetch_redirect_response=False
        )
        row = get_store().get("contacts", "contact-1")
        self.assertEqual(row["name"], "Ana Maria")
        self.assertEqual(row["cell_id"], "cell-2")
        self.assertEqual(row["ministry_id"], "min-1")
        self.assertIsNone(row["referred_by"])

    def test_unlisted_status_survives_edit(self):
        get_store().update("contacts", "contact-1", {"status": "visitor"})
        self.client.force_login(self.admin)
        page = self.client.get(self.url)
        self.assertContains(page, '<option value="visitor" selected>')
        response = self.client.post(self.url, self.post_data(status="visitor", name="Ana Maria"))
        self.assertEqual(response.status_code, 302)
        row = get_store().get("contacts", "contact-1")
        self.assertEqual(row["status"], "visitor")
        self.assertEqual(row["name"], "Ana Maria")

    def test_leader_post_cannot_change_cell(self):
        self.client.force_login(self.leader)
        self.client.post(self.url, self.post_data(cell_id="cell-2", leader_id="prof-1"))
        row = get_store().get("contacts", "contact-1")
        self.assertEqual(row["cell_id"], "cell-1")
        self.assertEqual(row["leader_id"], "prof-2")

    def test_validation_failure_rerenders_without_write(self):
        self.client.force_login(self.admin)
        with mock.patch.object(get_store(), "update") as update:
            response = self.client.post(self.url, self.post_data(whatsapp="  "))
        update.assert_not_called()
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "WhatsApp is required!")

    def test_update_failure_keeps_entered_data(self):
        self.client.force_login(self.admin)
        with mock.patch.object(get_store(), "update", side_effect=QueryError("offline")):
            response = self.client.post(self.url, self.post_data(name="Ana Typed"))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Error updating contact!")
        self.assertContains(response, 'value="Ana Typed"')

    def test_missing_contact_redirects_to_list(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse("contacts:edit", args=["nope"]))
        self.assertRedirects(response, reverse("contacts:list"), fetch_redirect_response=False)

    def test_detail_lists_referrals(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse("contacts:detail", args=["contact-1"]))
        self.assertContains(response, "Referred contacts (1)")
        self.assertContains(response, "Joao")

    def test_detail_not_found(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse("contacts:detail", args=["nope"]))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Contact not found.")

    def test_neighborhood_options(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse("contacts:neighborhoods"), {"city": "city-2"})
        self.assertEqual(response.json(), {"city": "city-2", "neighborhoods": ["Eldorado"]})

    def test_list_filters_by_status(self):
        self.client.force_login(self.leader)
        response = self.client.get(reverse("contacts:list"), {"status": "pending"})
        self.assertContains(response, "Pedro")
        self.assertNotContains(response, "Joao")


@override_settings(DATASTORE_BACKEND=MEMORY_BACKEND, DATASTORE_OPTIONS={"data": sample_data()})
class MonthlyBirthdaysCommandTests(SimpleTestCase):
    def test_lists_birthdays(self):
        out = StringIO()
        call_command("monthly_birthdays", "--date", "2024-05-10", stdout=out)
        output = out.getvalue()
        self.assertIn("Joao turns 34", output)
        self.assertIn("2 birthday(s).", output)

    def test_empty_month(self):
        out = StringIO()
        call_command("monthly_birthdays", "--date", "2024-01-10", stdout=out)
        self.assertIn("No birthdays this month.", out.getvalue())
