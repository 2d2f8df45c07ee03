import asyncio
from unittest import mock

from django.test import SimpleTestCase, override_settings
from postgrest.exceptions import APIError

from .backends.memory import MemoryStore
from .backends.supabase import SupabaseStore
from .client import get_store
from .errors import NotFound, QueryError
from .loaders import LOADED, LOADING, NOT_FOUND, DetailLoader, FetchHandle, load_detail
from .testing import MEMORY_BACKEND, sample_data


class CellLoader(DetailLoader):
    parent_table = "cells"
    child_table = "contacts"
    child_fk = "cell_id"
    entity_label = "Cell"
    child_label = "cell members"


class MemoryStoreTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())

    def test_select_filters_and_orders(self):
        rows = self.store.select("pipeline_stages", eq={"active": True}, order="position")
        self.assertEqual([r["id"] for r in rows], ["stage-1", "stage-2"])

    def test_select_not_null_and_columns(self):
        rows = self.store.select(
            "contacts", columns="id, name", eq={"status": "member"}, not_null=("birth_date",)
        )
        self.assertEqual(rows, [{"id": "contact-1", "name": "Ana"}, {"id": "contact-2", "name": "Joao"}])

    def test_get_missing_row_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.store.get("cells", "nope")

    def test_update_returns_stored_row(self):
        row = self.store.update("cells", "cell-2", {"name": "Renamed"})
        self.assertEqual(row["name"], "Renamed")
        self.assertEqual(self.store.get("cells", "cell-2")["name"], "Renamed")
        self.assertNotEqual(row["updated_at"], "2024-01-01T00:00:00+00:00")

    def test_returned_rows_are_copies(self):
        row = self.store.get("cells", "cell-1")
        row["name"] = "Changed locally"
        self.assertEqual(self.store.get("cells", "cell-1")["name"], "Cell Hope")

    def test_insert_assigns_id(self):
        row = self.store.insert("cities", {"name": "Betim"})
        self.assertTrue(row["id"])
        self.assertEqual(self.store.get("cities", row["id"])["name"], "Betim")

    def test_unknown_table(self):
        with self.assertRaises(QueryError):
            self.store.select("attendance")


class GetStoreTests(SimpleTestCase):
    def test_store_is_rebuilt_when_settings_change(self):
        with override_settings(DATASTORE_BACKEND=MEMORY_BACKEND, DATASTORE_OPTIONS={"data": sample_data()}):
            first = get_store()
            self.assertIs(first, get_store())
            self.assertEqual(first.get("cells", "cell-1")["name"], "Cell Hope")
        with override_settings(DATASTORE_BACKEND=MEMORY_BACKEND, DATASTORE_OPTIONS={}):
            second = get_store()
            self.assertIsNot(first, second)
            self.assertEqual(second.select("cells"), [])


class SupabaseStoreTests(SimpleTestCase):
    def setUp(self):
        self.client = mock.MagicMock()
        self.query = self.client.table.return_value.select.return_value
        self.store = SupabaseStore(client=self.client)

    def test_select_builds_query(self):
        self.query.eq.return_value.order.return_value.execute.return_value = mock.Mock(
            data=[{"id": "stage-1"}]
        )
        rows = self.store.select("pipeline_stages", eq={"active": True}, order="position")
        self.assertEqual(rows, [{"id": "stage-1"}])
        self.client.table.assert_called_with("pipeline_stages")
        self.query.eq.assert_called_with("active", True)
        self.query.eq.return_value.order.assert_called_with("position", desc=False)

    def test_get_without_row_raises_not_found(self):
        self.query.eq.return_value.maybe_single.return_value.execute.return_value = None
        with self.assertRaises(NotFound):
            self.store.get("cells", "X")

    def test_api_error_becomes_query_error(self):
        self.query.eq.return_value.maybe_single.return_value.execute.side_effect = APIError(
            {"message": "permission denied", "code": "42501", "hint": None, "details": None}
        )
        with self.assertRaises(QueryError) as ctx:
            self.store.get("cells", "X")
        self.assertEqual(ctx.exception.message, "permission denied")

    def test_update_returns_first_row(self):
        update = self.client.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = mock.Mock(
            data=[{"id": "c1", "name": "New"}]
        )
        row = self.store.update("contacts", "c1", {"name": "New"})
        self.assertEqual(row, {"id": "c1", "name": "New"})
        update.assert_called_with({"name": "New"})

    def test_missing_configuration(self):
        with self.assertRaises(QueryError):
            SupabaseStore(url="", key="")


class FetchHandleTests(SimpleTestCase):
    def test_apply_after_cancel_is_dropped(self):
        handle = FetchHandle("x")
        calls = []
        self.assertTrue(handle.apply(calls.append, 1))
        handle.cancel()
        self.assertFalse(handle.apply(calls.append, 2))
        self.assertEqual(calls, [1])


class DetailLoaderTests(SimpleTestCase):
    def setUp(self):
        self.store = MemoryStore(sample_data())
        self.notify = mock.Mock()
        self.loader = CellLoader(self.store, self.notify)

    def test_loads_parent_and_children(self):
        self.loader.load("cell-1")
        state = self.loader.state
        self.assertEqual(state.status, LOADED)
        self.assertEqual(state.parent["name"], "Cell Hope")
        self.assertEqual([c["id"] for c in state.children], ["contact-1", "contact-2"])
        self.notify.assert_not_called()

    def test_not_found_notifies_and_leaves_state_empty(self):
        self.loader.load("X")
        self.assertEqual(self.loader.state.status, NOT_FOUND)
        self.assertIsNone(self.loader.state.parent)
        title, description, variant = self.notify.call_args.args
        self.assertIn("not found", description)
        self.assertEqual(variant, "destructive")

    def test_query_failure_reports_message(self):
        with mock.patch.object(self.store, "get", side_effect=QueryError("timeout")):
            self.loader.load("cell-1")
        self.assertEqual(self.loader.state.status, NOT_FOUND)
        self.assertIn("timeout", self.notify.call_args.args[1])

    def test_child_failure_keeps_parent(self):
        with mock.patch.object(self.store, "select", side_effect=QueryError("boom")):
            self.loader.load("cell-1")
        self.assertEqual(self.loader.state.status, LOADED)
        self.assertEqual(self.loader.state.parent["id"], "cell-1")
        self.assertEqual(self.loader.state.children, [])
        self.assertIn("boom", self.notify.call_args.args[1])

    def test_missing_identifier_fails_fast(self):
        with mock.patch.object(self.store, "get") as get:
            self.loader.load("")
        get.assert_not_called()
        self.assertEqual(self.loader.state.status, NOT_FOUND)
        self.assertEqual(self.notify.call_args.args[1], "Cell not found.")

    def test_teardown_during_fetch_drops_results(self):
        handle = self.loader.start("cell-1")
        real_get = self.store.get

        def get_then_unmount(*args, **kwargs):
            row = real_get(*args, **kwargs)
            self.loader.teardown()
            return row

        with mock.patch.object(self.store, "get", side_effect=get_then_unmount), \
                mock.patch.object(self.store, "select") as select:
            self.loader.run("cell-1", handle)
        self.assertTrue(handle.cancelled)
        self.assertEqual(self.loader.state.status, LOADING)
        self.assertIsNone(self.loader.state.parent)
        select.assert_not_called()
        self.notify.assert_not_called()

    def test_teardown_suppresses_error_notification(self):
        handle = self.loader.start("X")
        self.loader.teardown()
        self.loader.run("X", handle)
        self.notify.assert_not_called()

    def test_new_identifier_cancels_previous_cycle(self):
        first = self.loader.start("cell-1")
        second = self.loader.start("cell-2")
        self.assertTrue(first.cancelled)
        self.loader.run("cell-1", first)
        self.assertEqual(self.loader.state.status, LOADING)
        self.loader.run("cell-2", second)
        self.assertEqual(self.loader.state.parent["id"], "cell-2")

    def test_replace_parent_does_not_refetch(self):
        self.loader.load("cell-1")
        updated = {**self.loader.state.parent, "name": "Cell Renewed"}
        with mock.patch.object(self.store, "get") as get:
            self.loader.replace_parent(updated)
        get.assert_not_called()
        self.assertEqual(self.loader.state.parent, updated)


class LoadDetailTests(SimpleTestCase):
    async def test_load_detail_runs_cycle(self):
        loader = CellLoader(MemoryStore(sample_data()), mock.Mock())
        state = await load_detail(loader, "cell-2")
        self.assertEqual(state.parent["name"], "Cell Faith")

    async def test_client_disconnect_cancels_cycle(self):
        notify = mock.Mock()
        loader = CellLoader(MemoryStore(sample_data()), notify)

        def disconnected(fn):
            async def runner(*args, **kwargs):
                raise asyncio.CancelledError
            return runner

        with mock.patch("datastore.loaders.sync_to_async", disconnected):
            with self.assertRaises(asyncio.CancelledError):
                await load_detail(loader, "cell-1")
        self.assertEqual(loader.state.status, LOADING)
        self.assertIsNone(loader._handle)
        notify.assert_not_called()
