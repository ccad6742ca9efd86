"""
apps.departments.services.reconciler
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
State machine behind the department layout editor.

States::

    idle ──load──▶ loading ──ok──▶ idle
                          └─table missing / denied──▶ fallback
    idle ──start_drag──▶ dragging ──drop──▶ saving ──ok──▶ idle (+undo entry)
                                  │                └─err──▶ idle (reverted)
                                  └─cancel / drop outside──▶ idle (unchanged)
    fallback ──check_again──▶ loading

Moves are applied optimistically and reverted if the store rejects them.
Every successful move records where the department came from on a bounded,
time-limited undo stack (most recent first).  Undo moves only that department
back, so later edits and remote changes survive.  The stack lives in the
cache per organisation, vertical and session, next to the fallback flag, so
it outlives a single request.  Remote changes that arrive mid-gesture are
deferred until the gesture ends.

Fallback mode renders the registry defaults read-only.  The flag is cached
per organisation, vertical and session so a reload does not re-probe the
database; ``check_again`` clears it.
"""
from __future__ import annotations

import enum
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

import structlog
from django.conf import settings
from django.core.cache import cache as default_cache

from apps.organizations.models import Organization
from apps.verticals.constants import SectionId
from apps.verticals.registry import get_vertical_config

from ..exceptions import AssignmentStoreError
from ..realtime import AssignmentChange, ChangeFeed, RealtimeSyncListener
from ..types import AssignmentRow, Placement, SectionedDepartments
from .assignment_store import AssignmentStore
from .merger import flatten_sections, merge_departments

logger = structlog.get_logger(__name__)

FALLBACK_WARNINGS = {
    "table_missing": (
        "Department customization is unavailable because the assignment table "
        "has not been created yet. Default placements are shown read-only."
    ),
    "permission_denied": (
        "Department customization is unavailable because access to the "
        "assignment table was denied. Default placements are shown read-only."
    ),
}


class LayoutState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    DRAGGING = "dragging"
    SAVING = "saving"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FlashMessage:
    text: str
    level: str  # success | error
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class UndoEntry:
    department_id: str
    department_name: str
    from_section: str
    from_position: int
    to_section: str
    to_position: int
    expires_at: float


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def _copy_sections(sections: SectionedDepartments) -> SectionedDepartments:
    return {section: list(items) for section, items in sections.items()}


def _renumbered(sections: SectionedDepartments, section_ids: Iterable[str]) -> SectionedDepartments:
    result = _copy_sections(sections)
    for section in section_ids:
        result[section] = [
            replace(item, section_id=section, display_order=position, has_assignment=True)
            for position, item in enumerate(result[section])
        ]
    return result


def _placements(sections: SectionedDepartments, section_ids: Iterable[str]) -> list[Placement]:
    return [
        Placement(
            department_id=item.department_id,
            section_id=section,
            display_order=position,
            is_visible=item.visible,
        )
        for section in section_ids
        for position, item in enumerate(sections[section])
    ]


def _rows(sections: SectionedDepartments) -> list[AssignmentRow]:
    return [
        AssignmentRow(
            department_id=item.department_id,
            section_id=section,
            display_order=item.display_order,
            is_visible=item.visible,
        )
        for section, items in sections.items()
        for item in items
        if item.has_assignment
    ]


def _section_label(section_id: str) -> str:
    try:
        return SectionId(section_id).label
    except ValueError:
        return section_id


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------

class DepartmentLayoutReconciler:
    def __init__(
        self,
        organization: Organization,
        vertical_id: str,
        *,
        session_id: str | None = None,
        store: AssignmentStore | None = None,
        department_config: dict | None = None,
        on_success: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        cache=None,
        clock: Callable[[], float] = time.time,
        actor=None,
    ) -> None:
        self.organization = organization
        self.vertical_id = str(vertical_id)
        self.base_config = get_vertical_config(self.vertical_id)
        self.session_id = session_id or uuid.uuid4().hex
        self.store = store or AssignmentStore(
            organization, self.vertical_id, origin=self.session_id, actor=actor
        )
        self.department_config = department_config
        self.on_success = on_success
        self.on_error = on_error
        self.cache = cache or default_cache
        self._clock = clock

        self.undo_limit: int = settings.DEPARTMENT_UNDO_STACK_SIZE
        self.undo_ttl: float = settings.DEPARTMENT_UNDO_TTL_SECONDS
        self.message_ttl: float = settings.SETTINGS_MESSAGE_TTL_SECONDS
        self.fallback_ttl: int = settings.DEPARTMENT_FALLBACK_CACHE_SECONDS

        self.state = LayoutState.IDLE
        self.assignments: list[AssignmentRow] = []
        self.sections: SectionedDepartments = merge_departments(self.base_config, [], department_config)
        self.active_id: str | None = None
        self.over_id: str | None = None
        self.error: str | None = None
        self.migration_warning: str | None = None

        self._drag_snapshot: SectionedDepartments | None = None
        self._message: FlashMessage | None = None
        self._stale = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def fallback_cache_key(self) -> str:
        return f"departments:fallback:{self.organization.pk}:{self.vertical_id}:{self.session_id}"

    @property
    def undo_cache_key(self) -> str:
        return f"departments:undo:{self.organization.pk}:{self.vertical_id}:{self.session_id}"

    @property
    def is_fallback(self) -> bool:
        return self.state is LayoutState.FALLBACK

    @property
    def undo_stack(self) -> list[UndoEntry]:
        return self._load_undo()

    @property
    def message(self) -> FlashMessage | None:
        if self._message is not None and self._message.is_expired(self._clock()):
            self._message = None
        return self._message

    def listen(self, change_feed: ChangeFeed | None = None) -> RealtimeSyncListener:
        """Start a realtime listener that feeds remote changes into this editor."""
        return RealtimeSyncListener(
            self.organization.pk,
            self.vertical_id,
            session_id=self.session_id,
            on_change=self.handle_remote_change,
            change_feed=change_feed,
            enabled=not self.is_fallback,
        ).start()

    # ------------------------------------------------------------------
    # Loading & fallback
    # ------------------------------------------------------------------

    def load(self) -> SectionedDepartments:
        if self.state in (LayoutState.DRAGGING, LayoutState.SAVING):
            self._stale = True
            return self.sections

        cached_reason = self.cache.get(self.fallback_cache_key)
        if cached_reason:
            self._enter_fallback(cached_reason)
            return self.sections
        return self._fetch()

    def check_again(self) -> SectionedDepartments:
        """Forget the fallback flag and probe the assignment table again."""
        self.cache.delete(self.fallback_cache_key)
        self.state = LayoutState.IDLE
        return self._fetch()

    def _fetch(self) -> SectionedDepartments:
        self.state = LayoutState.LOADING
        try:
            rows = self.store.fetch()
        except AssignmentStoreError as exc:
            if exc.enters_fallback:
                self._enter_fallback(exc.code)
                return self.sections
            self.state = LayoutState.IDLE
            self.error = exc.detail
            self._flash(exc.detail, "error")
            return self.sections

        self.assignments = rows
        self.sections = merge_departments(self.base_config, rows, self.department_config)
        self.state = LayoutState.IDLE
        self.error = None
        self.migration_warning = None
        logger.debug(
            "department_layout_loaded",
            organization_id=self.organization.pk,
            vertical_id=self.vertical_id,
            assignments=len(rows),
        )
        return self.sections

    def _enter_fallback(self, reason: str) -> None:
        self.cache.set(self.fallback_cache_key, reason, self.fallback_ttl)
        self.assignments = []
        self.sections = merge_departments(self.base_config, [], self.department_config)
        self.state = LayoutState.FALLBACK
        self.active_id = None
        self.over_id = None
        self._drag_snapshot = None
        self.cache.delete(self.undo_cache_key)
        self.migration_warning = FALLBACK_WARNINGS.get(reason, FALLBACK_WARNINGS["table_missing"])
        logger.warning(
            "department_fallback_entered",
            organization_id=self.organization.pk,
            vertical_id=self.vertical_id,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Drag gesture
    # ------------------------------------------------------------------

    def start_drag(self, department_id: str) -> bool:
        if self.state is not LayoutState.IDLE:
            logger.debug("department_drag_ignored", state=self.state.value, department_id=department_id)
            return False
        if department_id not in flatten_sections(self.sections):
            return False

        self._drag_snapshot = _copy_sections(self.sections)
        self.active_id = department_id
        self.state = LayoutState.DRAGGING
        return True

    def drag_over(self, target: str | None) -> None:
        if self.state is LayoutState.DRAGGING:
            self.over_id = target

    def cancel_drag(self) -> None:
        if self.state is not LayoutState.DRAGGING:
            return
        if self._drag_snapshot is not None:
            self.sections = self._drag_snapshot
        self._end_gesture()
        self._settle()

    def drop(self, target: str | None = None, position: int | None = None) -> bool:
        """
        Finish the current drag on *target*, a section id or another
        department's id.  Dropping outside any target cancels the drag.
        """
        if self.state is not LayoutState.DRAGGING or self.active_id is None:
            logger.debug("department_drop_ignored", state=self.state.value)
            return False

        department_id = self.active_id
        resolved = self._resolve_target(target, position)
        self._end_gesture()

        if resolved is None:
            self._settle()
            return False

        moved = self._move(department_id, *resolved)
        self._settle()
        return moved

    def move_department(self, department_id: str, target: str, position: int | None = None) -> bool:
        """A complete drag of *department_id* onto *target* in one call."""
        if not self.start_drag(department_id):
            return False
        return self.drop(target, position)

    def move_to_section(self, department_id: str, section_id: str) -> bool:
        return self.move_department(department_id, section_id)

    def _end_gesture(self) -> None:
        self.active_id = None
        self.over_id = None
        self._drag_snapshot = None
        if self.state is LayoutState.DRAGGING:
            self.state = LayoutState.IDLE

    def _resolve_target(self, target: str | None, position: int | None) -> tuple[str, int] | None:
        if target is None:
            return None
        target = str(target)

        if target in self.sections:
            remaining = [i for i in self.sections[target] if i.department_id != self.active_id]
            if position is None:
                return target, len(remaining)
            return target, max(0, min(int(position), len(remaining)))

        return flatten_sections(self.sections).get(target)

    def _move(self, department_id: str, section: str, index: int) -> bool:
        located = flatten_sections(self.sections)
        from_section, from_index = located[department_id]

        moved = _copy_sections(self.sections)
        item = moved[from_section].pop(from_index)
        index = max(0, min(index, len(moved[section])))
        moved[section].insert(index, replace(item, section_id=section))

        if (section, index) == (from_section, from_index):
            return False

        affected = [from_section] if from_section == section else [from_section, section]
        entry = UndoEntry(
            department_id=department_id,
            department_name=item.name,
            from_section=from_section,
            from_position=from_index,
            to_section=section,
            to_position=index,
            expires_at=self._clock() + self.undo_ttl,
        )
        saved = self._commit(
            _renumbered(moved, affected),
            affected,
            f"Moved {item.name} to {_section_label(section)}",
        )
        if saved:
            self._save_undo([entry, *self._load_undo()])
            logger.info(
                "department_moved",
                organization_id=self.organization.pk,
                vertical_id=self.vertical_id,
                department_id=department_id,
                from_section=from_section,
                to_section=section,
                position=index,
            )
        return saved

    # ------------------------------------------------------------------
    # Other edits
    # ------------------------------------------------------------------

    def toggle_visibility(self, department_id: str) -> bool:
        if self.state is not LayoutState.IDLE:
            return False
        located = flatten_sections(self.sections).get(department_id)
        if located is None:
            return False

        section, index = located
        toggled = _copy_sections(self.sections)
        item = toggled[section][index]
        toggled[section][index] = replace(item, visible=not item.visible)
        shown = "visible" if not item.visible else "hidden"

        saved = self._commit(_renumbered(toggled, [section]), [section], f"{item.name} is now {shown}")
        self._settle()
        return saved

    def undo(self) -> bool:
        """Put the most recently moved department back where it came from."""
        if self.state is not LayoutState.IDLE:
            return False

        stack = self._load_undo()
        if not stack:
            self._flash("No recent moves to undo", "error")
            return False

        entry, remaining = stack[0], stack[1:]
        located = flatten_sections(self.sections).get(entry.department_id)
        if located is None:
            self._save_undo(remaining)
            self._flash(f"{entry.department_name} is no longer in the layout", "error")
            return False

        current_section, current_index = located
        restored = _copy_sections(self.sections)
        item = restored[current_section].pop(current_index)
        index = max(0, min(entry.from_position, len(restored[entry.from_section])))
        restored[entry.from_section].insert(index, replace(item, section_id=entry.from_section))
        affected = list(dict.fromkeys([current_section, entry.from_section]))

        saved = self._commit(_renumbered(restored, affected), affected, f"Undid move of {entry.department_name}")
        if saved:
            self._save_undo(remaining)
            logger.info(
                "department_move_undone",
                organization_id=self.organization.pk,
                vertical_id=self.vertical_id,
                department_id=entry.department_id,
                section_id=entry.from_section,
                position=index,
            )
        self._settle()
        return saved

    def reset_to_defaults(self) -> bool:
        if self.state is not LayoutState.IDLE:
            return False

        self.state = LayoutState.SAVING
        try:
            deleted = self.store.delete_all()
        except AssignmentStoreError as exc:
            self._fail(exc)
            return False

        self.cache.delete(self.undo_cache_key)
        self.state = LayoutState.IDLE
        self._stale = False
        self._fetch()
        if self.error is None:
            self._flash("Department layout reset to defaults", "success")
        logger.info(
            "department_layout_reset",
            organization_id=self.organization.pk,
            vertical_id=self.vertical_id,
            deleted=deleted,
        )
        return True

    def handle_remote_change(self, change: AssignmentChange | None = None) -> None:
        if self.state in (LayoutState.DRAGGING, LayoutState.SAVING, LayoutState.LOADING):
            self._stale = True
            return
        if self.is_fallback:
            return
        self._fetch()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, sections: SectionedDepartments, affected: list[str], success: str) -> bool:
        previous = self.sections
        self.state = LayoutState.SAVING
        self.sections = sections
        try:
            self.store.save_placements(_placements(sections, affected))
        except AssignmentStoreError as exc:
            self.sections = previous
            self._fail(exc)
            return False

        self.assignments = _rows(sections)
        self.state = LayoutState.IDLE
        self.error = None
        self._flash(success, "success")
        return True

    def _fail(self, exc: AssignmentStoreError) -> None:
        self.state = LayoutState.IDLE
        self.error = exc.detail
        logger.warning(
            "department_layout_save_failed",
            organization_id=self.organization.pk,
            vertical_id=self.vertical_id,
            code=exc.code,
        )
        self._flash(f"Failed to save department layout: {exc.detail}", "error")
        if exc.enters_fallback:
            self._enter_fallback(exc.code)

    def _load_undo(self) -> list[UndoEntry]:
        now = self._clock()
        return [entry for entry in self.cache.get(self.undo_cache_key, []) if entry.expires_at > now]

    def _save_undo(self, entries: list[UndoEntry]) -> None:
        entries = entries[: self.undo_limit]
        if entries:
            self.cache.set(self.undo_cache_key, entries, int(self.undo_ttl))
        else:
            self.cache.delete(self.undo_cache_key)

    def _settle(self) -> None:
        if self._stale and self.state is LayoutState.IDLE:
            self._stale = False
            self._fetch()

    def _flash(self, text: str, level: str) -> None:
        self._message = FlashMessage(text=text, level=level, expires_at=self._clock() + self.message_ttl)
        callback = self.on_success if level == "success" else self.on_error
        if callback is not None:
            callback(text)
