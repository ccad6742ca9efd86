"""
tests.test_reconciler
~~~~~~~~~~~~~~~~~~~~~
State-machine tests for DepartmentLayoutReconciler backed by an in-memory
store.  No database access required.
"""
from __future__ import annotations

import pytest

from apps.departments.exceptions import (
    AssignmentPermissionError,
    AssignmentStoreError,
    AssignmentTableMissingError,
)
from apps.departments.services.merger import merge_departments
from apps.departments.services.reconciler import DepartmentLayoutReconciler, LayoutState
from apps.departments.types import AssignmentRow
from apps.verticals.constants import SECTION_ORDER
from apps.verticals.registry import get_vertical_config

from .conftest import FakeAssignmentStore


def _layout(reconciler) -> dict[str, list[str]]:
    return {s: [item.department_id for item in reconciler.sections[s]] for s in SECTION_ORDER}


@pytest.fixture
def notices():
    return {"success": [], "error": []}


@pytest.fixture
def make(unsaved_org, clock, notices):
    def factory(store, session_id="session-1", **kwargs):
        reconciler = DepartmentLayoutReconciler(
            unsaved_org,
            "business",
            session_id=session_id,
            store=store,
            clock=clock,
            on_success=notices["success"].append,
            on_error=notices["error"].append,
            **kwargs,
        )
        reconciler.load()
        return reconciler

    return factory


class TestLoading:
    def test_load_merges_store_rows(self, make):
        store = FakeAssignmentStore([AssignmentRow("sales", "operations", 0)])
        reconciler = make(store)
        assert reconciler.state is LayoutState.IDLE
        assert _layout(reconciler)["operations"][0] == "sales"

    def test_transient_fetch_error_is_not_fallback(self, make, fake_store, notices):
        fake_store.fetch_error = AssignmentStoreError()
        reconciler = make(fake_store)
        assert reconciler.state is LayoutState.IDLE
        assert reconciler.error
        assert notices["error"]

    def test_recovers_after_transient_error(self, make, fake_store):
        fake_store.fetch_error = AssignmentStoreError()
        reconciler = make(fake_store)
        fake_store.fetch_error = None
        reconciler.load()
        assert reconciler.error is None


class TestDragAndDrop:
    def test_drop_on_section_moves_and_persists(self, make, fake_store, notices):
        reconciler = make(fake_store)
        assert reconciler.start_drag("sales")
        assert reconciler.state is LayoutState.DRAGGING

        assert reconciler.drop("operations", 0)
        layout = _layout(reconciler)
        assert layout["operations"][:2] == ["sales", "workflows"]
        assert "sales" not in layout["departments"]
        assert reconciler.state is LayoutState.IDLE
        assert notices["success"] == ["Moved Sales to Operations"]

        written = {p.department_id: p for p in fake_store.saved[-1]}
        assert written["sales"].section_id == "operations"
        assert written["sales"].display_order == 0
        assert written["workflows"].display_order == 1
        assert written["human-resources"].section_id == "departments"

    def test_drop_on_department_takes_its_position(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.start_drag("marketing")
        assert reconciler.drop("hr")
        assert _layout(reconciler)["operations"] == ["workflows", "marketing", "hr", "accounting", "legal"]

    def test_drop_without_position_appends(self, make, fake_store):
        reconciler = make(fake_store)
        assert reconciler.move_to_section("sales", "admin")
        assert _layout(reconciler)["admin"] == ["users", "oauth", "sales"]

    def test_reorder_within_section(self, make, fake_store):
        reconciler = make(fake_store)
        assert reconciler.move_department("workflows", "legal")
        assert _layout(reconciler)["operations"] == ["hr", "accounting", "legal", "workflows"]

    def test_drop_in_place_is_a_no_op(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.start_drag("hr")
        assert reconciler.drop("operations", 1) is False
        assert fake_store.saved == []
        assert reconciler.undo_stack == []
        assert reconciler.state is LayoutState.IDLE

    def test_cancel_restores_layout(self, make, fake_store):
        reconciler = make(fake_store)
        before = _layout(reconciler)
        reconciler.start_drag("sales")
        reconciler.drag_over("operations")
        assert reconciler.over_id == "operations"
        reconciler.cancel_drag()
        assert _layout(reconciler) == before
        assert reconciler.state is LayoutState.IDLE
        assert reconciler.active_id is None
        assert fake_store.saved == []

    def test_drop_outside_any_target_cancels(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.start_drag("sales")
        assert reconciler.drop(None) is False
        assert reconciler.state is LayoutState.IDLE
        assert fake_store.saved == []

    def test_drop_on_unknown_target_cancels(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.start_drag("sales")
        assert reconciler.drop("nowhere") is False
        assert fake_store.saved == []

    def test_drop_without_drag_is_ignored(self, make, fake_store):
        reconciler = make(fake_store)
        assert reconciler.drop("operations") is False
        assert reconciler.state is LayoutState.IDLE
        assert fake_store.saved == []

    def test_second_start_drag_is_ignored(self, make, fake_store):
        reconciler = make(fake_store)
        assert reconciler.start_drag("sales")
        assert reconciler.start_drag("marketing") is False
        assert reconciler.active_id == "sales"

    def test_unknown_department_cannot_be_dragged(self, make, fake_store):
        reconciler = make(fake_store)
        assert reconciler.start_drag("ghost") is False
        assert reconciler.state is LayoutState.IDLE

    def test_failed_save_reverts(self, make, fake_store, notices):
        reconciler = make(fake_store)
        before = _layout(reconciler)
        fake_store.save_error = AssignmentStoreError()

        assert reconciler.move_department("sales", "operations", 0) is False
        assert _layout(reconciler) == before
        assert reconciler.state is LayoutState.IDLE
        assert reconciler.undo_stack == []
        assert notices["error"][-1].startswith("Failed to save department layout")


class TestUndo:
    def test_undo_restores_previous_placement(self, make, fake_store):
        reconciler = make(fake_store)
        before = _layout(reconciler)
        assert before["departments"].index("sales") == 2

        reconciler.move_department("sales", "operations", 0)
        assert reconciler.undo()
        assert _layout(reconciler) == before
        assert fake_store.rows["sales"].section_id == "departments"
        assert fake_store.rows["sales"].display_order == 2

    def test_undo_is_most_recent_first(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        after_first = _layout(reconciler)
        reconciler.move_department("legal", "admin", 0)
        reconciler.undo()
        assert _layout(reconciler) == after_first

    def test_undo_with_empty_stack(self, make, fake_store, notices):
        reconciler = make(fake_store)
        assert reconciler.undo() is False
        assert notices["error"] == ["No recent moves to undo"]
        assert reconciler.message.text == "No recent moves to undo"

    def test_undo_entries_expire(self, make, fake_store, clock):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        clock.advance(301)
        assert reconciler.undo_stack == []
        assert reconciler.undo() is False

    def test_undo_stack_is_bounded(self, make, fake_store):
        reconciler = make(fake_store)
        for i in range(12):
            target = "operations" if i % 2 == 0 else "departments"
            assert reconciler.move_department("sales", target, 0)
        assert len(reconciler.undo_stack) == 10

    def test_failed_undo_keeps_entry(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        fake_store.save_error = AssignmentStoreError()
        assert reconciler.undo() is False
        assert len(reconciler.undo_stack) == 1

    def test_undo_keeps_later_visibility_change(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        reconciler.toggle_visibility("oauth")

        assert reconciler.undo()
        oauth = next(i for i in reconciler.sections["admin"] if i.department_id == "oauth")
        assert oauth.visible is False
        assert fake_store.rows["oauth"].is_visible is False
        assert _layout(reconciler)["departments"].index("sales") == 2

    def test_undo_keeps_remote_moves(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)

        fake_store.rows["legal"] = AssignmentRow("legal", "admin", 0)
        reconciler.handle_remote_change()
        assert reconciler.undo()

        layout = _layout(reconciler)
        assert layout["admin"][0] == "legal"
        assert "legal" not in layout["operations"]
        assert fake_store.rows["legal"].section_id == "admin"
        assert layout["departments"].index("sales") == 2

    def test_undo_writes_only_the_two_sections_involved(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        reconciler.undo()
        assert {p.section_id for p in fake_store.saved[-1]} == {"departments", "operations"}

    def test_undo_position_is_clamped(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("legal", "admin", 0)

        fake_store.rows["workflows"] = AssignmentRow("workflows", "documents", 0)
        fake_store.rows["hr"] = AssignmentRow("hr", "documents", 1)
        reconciler.handle_remote_change()
        assert _layout(reconciler)["operations"] == ["accounting"]

        assert reconciler.undo()
        assert _layout(reconciler)["operations"] == ["accounting", "legal"]
        assert fake_store.rows["legal"].display_order == 1

    def test_undo_history_is_shared_by_the_same_session(self, make, fake_store):
        make(fake_store).move_department("sales", "operations", 0)

        later = make(fake_store)
        assert len(later.undo_stack) == 1
        assert later.undo()
        assert _layout(later)["departments"].index("sales") == 2
        assert make(fake_store).undo_stack == []

    def test_undo_history_is_per_session(self, make, fake_store):
        make(fake_store).move_department("sales", "operations", 0)
        other = make(fake_store, session_id="session-2")
        assert other.undo_stack == []
        assert other.undo() is False


class TestFallback:
    @pytest.mark.parametrize("error", [AssignmentTableMissingError, AssignmentPermissionError])
    def test_missing_or_forbidden_table_enters_fallback(self, make, fake_store, error):
        fake_store.fetch_error = error()
        reconciler = make(fake_store)
        assert reconciler.is_fallback
        assert reconciler.migration_warning
        defaults = merge_departments(get_vertical_config("business"), [])
        assert reconciler.sections == defaults

    def test_fallback_rejects_every_edit(self, make, fake_store):
        fake_store.fetch_error = AssignmentTableMissingError()
        reconciler = make(fake_store)
        assert reconciler.start_drag("sales") is False
        assert reconciler.move_department("sales", "operations") is False
        assert reconciler.toggle_visibility("sales") is False
        assert reconciler.reset_to_defaults() is False
        assert reconciler.undo() is False
        assert fake_store.saved == []
        assert reconciler.is_fallback

    def test_fallback_flag_survives_reload_for_same_session(self, make, fake_store):
        fake_store.fetch_error = AssignmentTableMissingError()
        make(fake_store)

        fresh_store = FakeAssignmentStore()
        reconciler = make(fresh_store)
        assert reconciler.is_fallback
        assert fresh_store.fetch_calls == 0

    def test_other_sessions_are_not_affected(self, make, fake_store):
        fake_store.fetch_error = AssignmentTableMissingError()
        make(fake_store)
        reconciler = make(FakeAssignmentStore(), session_id="session-2")
        assert reconciler.state is LayoutState.IDLE

    def test_check_again_leaves_fallback(self, make, fake_store):
        fake_store.fetch_error = AssignmentTableMissingError()
        reconciler = make(fake_store)
        fake_store.fetch_error = None
        reconciler.check_again()
        assert reconciler.state is LayoutState.IDLE
        assert reconciler.migration_warning is None
        assert reconciler.move_department("sales", "operations")

    def test_check_again_stays_in_fallback_while_table_is_missing(self, make, fake_store):
        fake_store.fetch_error = AssignmentTableMissingError()
        reconciler = make(fake_store)
        for _ in range(3):
            reconciler.check_again()
            assert reconciler.is_fallback
            assert reconciler.migration_warning
        assert fake_store.fetch_calls == 4

        fake_store.fetch_error = None
        reconciler.check_again()
        assert reconciler.state is LayoutState.IDLE
        assert reconciler.migration_warning is None

    def test_save_hitting_missing_table_enters_fallback(self, make, fake_store):
        reconciler = make(fake_store)
        fake_store.save_error = AssignmentTableMissingError()
        assert reconciler.move_department("sales", "operations") is False
        assert reconciler.is_fallback


class TestOtherEdits:
    def test_toggle_visibility(self, make, fake_store, notices):
        reconciler = make(fake_store)
        assert reconciler.toggle_visibility("marketing")
        item = next(i for i in reconciler.sections["departments"] if i.department_id == "marketing")
        assert item.visible is False
        assert fake_store.rows["marketing"].is_visible is False
        assert notices["success"][-1] == "Marketing is now hidden"
        assert reconciler.undo_stack == []

    def test_reset_to_defaults(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        assert reconciler.reset_to_defaults()
        assert fake_store.rows == {}
        assert reconciler.sections == merge_departments(get_vertical_config("business"), [])
        assert reconciler.undo_stack == []

    def test_messages_expire(self, make, fake_store, clock):
        reconciler = make(fake_store)
        reconciler.move_department("sales", "operations", 0)
        assert reconciler.message.level == "success"
        clock.advance(4.9)
        assert reconciler.message is not None
        clock.advance(0.2)
        assert reconciler.message is None

    def test_custom_names_used_in_layout(self, make, fake_store, notices):
        reconciler = make(fake_store, department_config={"departments": [{"id": "sales", "name": "Revenue"}]})
        reconciler.move_department("sales", "admin", 0)
        assert notices["success"][-1] == "Moved Revenue to Admin"


class TestRemoteChanges:
    def test_remote_change_when_idle_reloads(self, make, fake_store):
        reconciler = make(fake_store)
        fake_store.rows["legal"] = AssignmentRow("legal", "admin", 0)
        reconciler.handle_remote_change()
        assert _layout(reconciler)["admin"][0] == "legal"

    def test_remote_change_mid_drag_is_deferred(self, make, fake_store):
        reconciler = make(fake_store)
        calls = fake_store.fetch_calls
        reconciler.start_drag("sales")

        fake_store.rows["legal"] = AssignmentRow("legal", "admin", 0)
        reconciler.handle_remote_change()
        assert fake_store.fetch_calls == calls
        assert reconciler.state is LayoutState.DRAGGING

        reconciler.cancel_drag()
        assert fake_store.fetch_calls == calls + 1
        assert _layout(reconciler)["admin"][0] == "legal"

    def test_deferred_change_applied_after_drop(self, make, fake_store):
        reconciler = make(fake_store)
        reconciler.start_drag("sales")
        fake_store.rows["oauth"] = AssignmentRow("oauth", "admin", 0)
        reconciler.handle_remote_change()
        reconciler.drop("operations", 0)
        layout = _layout(reconciler)
        assert layout["operations"][0] == "sales"
        assert layout["admin"] == ["oauth", "users"]

    def test_remote_change_ignored_in_fallback(self, make, fake_store):
        fake_store.fetch_error = AssignmentTableMissingError()
        reconciler = make(fake_store)
        calls = fake_store.fetch_calls
        reconciler.handle_remote_change()
        assert fake_store.fetch_calls == calls
