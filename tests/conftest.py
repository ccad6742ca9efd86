"""
Shared fixtures for the org_settings test suite.
"""
from __future__ import annotations

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.departments.types import AssignmentRow, Placement
from apps.organizations.models import Organization


class FakeClock:
    """Clock the tests can move forward by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAssignmentStore:
    """In-memory stand-in for AssignmentStore with injectable failures."""

    def __init__(self, rows: list[AssignmentRow] | None = None) -> None:
        self.rows = {row.department_id: row for row in rows or []}
        self.fetch_error: Exception | None = None
        self.save_error: Exception | None = None
        self.fetch_calls = 0
        self.saved: list[list[Placement]] = []

    def fetch(self) -> list[AssignmentRow]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.rows.values())

    def save_placements(self, placements) -> int:
        placements = list(placements)
        if self.save_error is not None:
            raise self.save_error
        self.saved.append(placements)
        for p in placements:
            self.rows[p.department_id] = AssignmentRow(p.department_id, p.section_id, p.display_order, p.is_visible)
        return len(placements)

    def delete_all(self) -> int:
        count = len(self.rows)
        self.rows.clear()
        return count


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_store() -> FakeAssignmentStore:
    return FakeAssignmentStore()


@pytest.fixture
def org(db) -> Organization:
    return Organization.objects.create(name="Grace Community")


@pytest.fixture
def other_org(db) -> Organization:
    return Organization.objects.create(name="Acme Holdings")


@pytest.fixture
def unsaved_org() -> Organization:
    """An organisation that never touches the database."""
    return Organization(pk=42, name="Detached Org", slug="detached-org")


@pytest.fixture
def user(db, django_user_model):
    return django_user_model.objects.create_user(username="editor", password="pw", first_name="Eda")


@pytest.fixture
def api_client() -> APIClient:
    """Return an unauthenticated DRF APIClient."""
    return APIClient()
