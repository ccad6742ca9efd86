"""
tests.test_realtime
~~~~~~~~~~~~~~~~~~~
Change-feed publication on commit and the realtime listener.
"""
from __future__ import annotations

from unittest import mock

import pytest
from django.db import OperationalError

from apps.departments.exceptions import AssignmentStoreError
from apps.departments.models import DepartmentSectionAssignment
from apps.departments.realtime import AssignmentChange, ChangeFeed, RealtimeSyncListener, feed
from apps.departments.services.assignment_store import AssignmentStore
from apps.departments.services.reconciler import DepartmentLayoutReconciler
from apps.departments.types import Placement


@pytest.fixture
def received():
    return []


@pytest.fixture
def subscribed(org, received):
    feed.subscribe(org.pk, "business", received.append)
    yield received
    feed.unsubscribe(org.pk, "business", received.append)


@pytest.mark.django_db
class TestPublication:
    def test_store_writes_are_published_with_origin(self, org, subscribed, django_capture_on_commit_callbacks):
        store = AssignmentStore(org, "business", origin="tab-a")
        with django_capture_on_commit_callbacks(execute=True):
            store.save_placements([Placement("sales", "operations", 0)])
        with django_capture_on_commit_callbacks(execute=True):
            store.save_placements([Placement("sales", "operations", 1)])
        with django_capture_on_commit_callbacks(execute=True):
            store.delete_all()

        assert [c.event_type for c in subscribed] == ["INSERT", "UPDATE", "DELETE"]
        assert {c.origin for c in subscribed} == {"tab-a"}
        assert {c.department_ids for c in subscribed} == {("sales",)}

    def test_one_change_per_save_call(self, org, subscribed, django_capture_on_commit_callbacks):
        placements = [Placement(d, "operations", i) for i, d in enumerate(["marketing", "workflows", "hr"])]
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            AssignmentStore(org, "business", origin="tab-a").save_placements(placements)

        assert len(callbacks) == 1
        assert len(subscribed) == 1
        assert subscribed[0].department_ids == ("marketing", "workflows", "hr")

    def test_nothing_published_before_commit(self, org, subscribed, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            AssignmentStore(org, "business").save_placements([Placement("sales", "admin", 0)])
            assert subscribed == []
        assert len(callbacks) == 1
        assert subscribed == []

    def test_rolled_back_save_publishes_nothing(self, org, subscribed, django_capture_on_commit_callbacks):
        real = DepartmentSectionAssignment.objects.update_or_create
        calls = []

        def second_fails(*args, **kwargs):
            calls.append(kwargs["department_id"])
            if len(calls) == 2:
                raise OperationalError("connection lost")
            return real(*args, **kwargs)

        placements = [Placement("marketing", "operations", 0), Placement("workflows", "operations", 1)]
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with mock.patch.object(DepartmentSectionAssignment.objects, "update_or_create", side_effect=second_fails):
                with pytest.raises(AssignmentStoreError):
                    AssignmentStore(org, "business").save_placements(placements)

        assert callbacks == []
        assert subscribed == []
        assert not DepartmentSectionAssignment.objects.filter(organization=org).exists()

    def test_writes_outside_the_store_are_published_per_row(
        self, org, subscribed, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            row = DepartmentSectionAssignment.objects.create(
                organization=org, vertical_id="business", department_id="legal", section_id="admin", display_order=0
            )
        with django_capture_on_commit_callbacks(execute=True):
            row.delete()
        assert [(c.event_type, c.department_ids) for c in subscribed] == [
            ("INSERT", ("legal",)),
            ("DELETE", ("legal",)),
        ]

    def test_other_scopes_are_not_notified(self, org, other_org, received, django_capture_on_commit_callbacks):
        feed.subscribe(org.pk, "church", received.append)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                AssignmentStore(org, "business").save_placements([Placement("sales", "admin", 0)])
                AssignmentStore(other_org, "church").save_placements([Placement("sales", "admin", 0)])
        finally:
            feed.unsubscribe(org.pk, "church", received.append)
        assert received == []


@pytest.mark.django_db
class TestRealtimeSyncListener:
    def test_ignores_own_session(self, org, received, django_capture_on_commit_callbacks):
        with RealtimeSyncListener(org.pk, "business", session_id="tab-a", on_change=received.append):
            with django_capture_on_commit_callbacks(execute=True):
                AssignmentStore(org, "business", origin="tab-a").save_placements([Placement("hr", "admin", 0)])
            assert received == []
            with django_capture_on_commit_callbacks(execute=True):
                AssignmentStore(org, "business", origin="tab-b").save_placements([Placement("hr", "admin", 1)])
            assert len(received) == 1
            assert received[0].origin == "tab-b"

    def test_closed_listener_receives_nothing(self, org, received, django_capture_on_commit_callbacks):
        listener = RealtimeSyncListener(org.pk, "business", session_id="tab-a", on_change=received.append).start()
        listener.close()
        with django_capture_on_commit_callbacks(execute=True):
            AssignmentStore(org, "business", origin="tab-b").save_placements([Placement("hr", "admin", 0)])
        assert received == []
        assert not listener.is_active
        assert feed.subscriber_count(org.pk, "business") == 0

    def test_disabled_listener_never_subscribes(self, org, received):
        listener = RealtimeSyncListener(
            org.pk, "business", session_id="tab-a", on_change=received.append, enabled=False
        ).start()
        assert not listener.is_active

    def test_remote_move_reaches_other_editor(self, org, django_capture_on_commit_callbacks):
        first = DepartmentLayoutReconciler(org, "business", session_id="tab-a")
        second = DepartmentLayoutReconciler(org, "business", session_id="tab-b")
        first.load()
        second.load()

        listener = second.listen()
        try:
            with django_capture_on_commit_callbacks(execute=True):
                assert first.move_department("sales", "operations", 0)
        finally:
            listener.close()

        assert second.sections["operations"][0].department_id == "sales"

    def test_single_move_reloads_other_editor_once(self, org, django_capture_on_commit_callbacks):
        first = DepartmentLayoutReconciler(org, "business", session_id="tab-a")
        first.load()
        reloads = []

        with RealtimeSyncListener(org.pk, "business", session_id="tab-b", on_change=reloads.append):
            with django_capture_on_commit_callbacks(execute=True):
                assert first.move_department("marketing", "operations", 0)

        assert len(reloads) == 1
        assert "marketing" in reloads[0].department_ids


def test_failing_subscriber_does_not_break_others():
    change_feed = ChangeFeed()
    received = []

    def broken(change):
        raise RuntimeError("boom")

    change_feed.subscribe(1, "business", broken)
    change_feed.subscribe(1, "business", received.append)
    change = AssignmentChange("UPDATE", 1, "business", ("sales",))
    change_feed.publish(change)
    assert received == [change]
