"""
tests.test_customization_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Saving, validating, copying, exporting and importing customizations.
"""
from __future__ import annotations

import json
from unittest import mock

import pytest
from django.db.models import QuerySet

from apps.customizations.exceptions import CustomizationValidationError
from apps.customizations.models import CustomizationHistory, OrganizationCustomization
from apps.customizations.services import customization_service as svc
from apps.customizations.services.history import compare_versions, rollback_to_version
from apps.customizations.validators import CustomizationValidator
from common.exceptions import ConflictError, NotFoundError, ValidationError


def _save(org, vertical="business", **customization):
    return svc.save_customization(organization=org, vertical_id=vertical, customization=customization)


# ===========================================================================
# Validator (unit, no DB)
# ===========================================================================

class TestCustomizationValidator:
    def test_valid_customization_passes(self):
        CustomizationValidator.validate({
            "dashboard_config": {"title": "Ops", "subtitle": None},
            "navigation_config": {"items": [{"id": "documents", "visible": False, "order": 2}]},
            "branding_config": {"colors": {"primary": "#000"}, "organization_name": "Acme"},
            "stats_config": {"cards": [{"id": "members", "label": "People"}]},
            "department_config": {"departments": [{"id": "sales", "name": "Revenue"}]},
            "logo_url": "/media/1/logo.png",
            "logo_file_size": 1024,
        })

    def test_errors_are_accumulated(self):
        with pytest.raises(CustomizationValidationError) as exc_info:
            CustomizationValidator.validate({
                "dashboard_config": {"title": 5, "colour": "red"},
                "stats_config": "cards",
                "theme": {},
            })
        codes = {(e["field"], e["code"]) for e in exc_info.value.errors}
        assert ("dashboard_config.title", "type_mismatch") in codes
        assert ("dashboard_config.colour", "unknown_field") in codes
        assert ("stats_config", "not_an_object") in codes
        assert ("theme", "unknown_field") in codes

    def test_list_items_need_unique_ids(self):
        with pytest.raises(CustomizationValidationError) as exc_info:
            CustomizationValidator.validate({
                "department_config": {"departments": [{"name": "x"}, {"id": "a"}, {"id": "a"}]},
            })
        codes = [e["code"] for e in exc_info.value.errors]
        assert "missing_id" in codes
        assert "duplicate_id" in codes

    def test_boolean_is_not_an_integer(self):
        with pytest.raises(CustomizationValidationError):
            CustomizationValidator.validate({"logo_file_size": True})


# ===========================================================================
# Save & versioning
# ===========================================================================

@pytest.mark.django_db
class TestSaveCustomization:
    def test_first_save_creates_version_one(self, org):
        saved = _save(org, dashboard_config={"title": "Ops"})
        assert saved.version == 1
        assert saved.is_active
        entry = CustomizationHistory.objects.get(customization=saved)
        assert entry.version_number == 1
        assert entry.change_description == "Created initial customization"
        assert entry.config_snapshot["dashboard_config"] == {"title": "Ops"}

    def test_concurrent_first_save_is_a_conflict(self, org):
        _save(org, dashboard_config={"title": "First"})

        # The other request's row is invisible to this one's lookup, as it is
        # when both read before either commits.
        with mock.patch.object(QuerySet, "first", return_value=None):
            with pytest.raises(ConflictError) as exc_info:
                _save(org, dashboard_config={"title": "Second"})

        assert exc_info.value.code == "concurrent_update"
        assert OrganizationCustomization.objects.filter(organization=org).count() == 1
        assert CustomizationHistory.objects.filter(customization__organization=org).count() == 1

    def test_each_save_bumps_version_and_writes_one_history_entry(self, org):
        for n in range(1, 6):
            saved = _save(org, dashboard_config={"title": f"Title {n}"})
            assert saved.version == n
        versions = list(
            CustomizationHistory.objects.filter(organization=org).order_by("version_number")
            .values_list("version_number", flat=True)
        )
        assert versions == [1, 2, 3, 4, 5]
        assert OrganizationCustomization.objects.filter(organization=org).count() == 1

    def test_partial_save_keeps_other_blocks(self, org):
        _save(org, dashboard_config={"title": "Ops"}, stats_config={"cards": []})
        saved = _save(org, branding_config={"organization_name": "Acme"})
        assert saved.dashboard_config == {"title": "Ops"}
        assert saved.branding_config == {"organization_name": "Acme"}
        assert saved.history.get(version_number=2).change_description == "Updated customization"

    def test_invalid_customization_is_rejected_without_writes(self, org):
        with pytest.raises(CustomizationValidationError):
            _save(org, dashboard_config={"title": ["not", "a", "string"]})
        assert not OrganizationCustomization.objects.exists()
        assert not CustomizationHistory.objects.exists()

    def test_unknown_vertical(self, org):
        with pytest.raises(NotFoundError):
            _save(org, vertical="bakery", dashboard_config={})

    def test_verticals_are_independent(self, org):
        _save(org, "business", dashboard_config={"title": "Biz"})
        church = _save(org, "church", dashboard_config={"title": "Church"})
        assert church.version == 1

    def test_actor_is_recorded(self, org, user):
        saved = svc.save_customization(
            organization=org, vertical_id="business", customization={"dashboard_config": {}}, actor=user
        )
        assert saved.created_by == user
        assert saved.history.get().changed_by == user

    def test_logo_fields_are_persisted(self, org):
        saved = _save(
            org,
            logo_url="/media/1/logo.png",
            logo_format="image/png",
            logo_file_size=2048,
            logo_uploaded_at="2026-01-02T03:04:05+00:00",
        )
        assert saved.logo_url == "/media/1/logo.png"
        assert saved.logo_uploaded_at.year == 2026
        assert saved.snapshot()["logo_file_size"] == 2048


# ===========================================================================
# Rollback, comparison, copy, export/import
# ===========================================================================

@pytest.mark.django_db
class TestRollback:
    def test_rollback_creates_new_version_with_old_content(self, org):
        _save(org, dashboard_config={"title": "A"})
        _save(org, dashboard_config={"title": "B"})
        first = CustomizationHistory.objects.get(organization=org, version_number=1)

        restored = rollback_to_version(organization=org, vertical_id="business", history_id=first.pk)
        assert restored.version == 3
        assert restored.dashboard_config == {"title": "A"}
        latest = CustomizationHistory.objects.get(organization=org, version_number=3)
        assert latest.change_description == "Rolled back to version 1"
        assert CustomizationHistory.objects.filter(organization=org).count() == 3

    def test_rollback_rejects_foreign_entry(self, org, other_org):
        _save(other_org, dashboard_config={"title": "Theirs"})
        entry = CustomizationHistory.objects.get(organization=other_org)
        with pytest.raises(NotFoundError):
            rollback_to_version(organization=org, vertical_id="business", history_id=entry.pk)


class TestCompareVersions:
    def test_reports_changed_keys_per_category(self):
        old = {"dashboard_config": {"title": "A", "subtitle": "S"}, "stats_config": {"cards": []}}
        new = {"dashboard_config": {"title": "B", "subtitle": "S"}, "stats_config": {"cards": [{"id": "x"}]}}
        diffs = compare_versions(old, new)
        assert [(d.field, d.category) for d in diffs] == [
            ("dashboard.title", "dashboard"),
            ("stats.cards", "stats"),
        ]
        assert diffs[0].old_value == "A"
        assert diffs[0].new_value == "B"

    def test_added_and_removed_keys(self):
        diffs = compare_versions(
            {"branding_config": {"organization_name": "Acme"}},
            {"branding_config": {"colors": {"primary": "#000"}}},
        )
        assert {d.field for d in diffs} == {"branding.organization_name", "branding.colors"}

    def test_identical_snapshots(self):
        snapshot = {"dashboard_config": {"title": "A"}}
        assert compare_versions(snapshot, dict(snapshot)) == []


@pytest.mark.django_db
class TestCopyFromVertical:
    def test_copies_selected_categories(self, org):
        _save(
            org,
            "business",
            dashboard_config={"title": "Biz"},
            branding_config={"organization_name": "Acme"},
            logo_url="/media/1/logo.png",
        )
        copied = svc.copy_from_vertical(
            organization=org,
            source_vertical_id="business",
            target_vertical_id="church",
            include=["branding"],
        )
        assert copied.vertical_id == "church"
        assert copied.branding_config == {"organization_name": "Acme"}
        assert copied.logo_url == "/media/1/logo.png"
        assert copied.dashboard_config == {}
        entry = copied.history.get()
        assert entry.change_description == "Copied settings from business"
        assert entry.change_note == "Copied: branding"

    def test_missing_source(self, org):
        with pytest.raises(NotFoundError):
            svc.copy_from_vertical(
                organization=org, source_vertical_id="estate", target_vertical_id="church", include=["dashboard"]
            )

    def test_nothing_selected(self, org):
        _save(org, dashboard_config={"title": "Biz"})
        with pytest.raises(ValidationError):
            svc.copy_from_vertical(
                organization=org, source_vertical_id="business", target_vertical_id="church", include=[]
            )


@pytest.mark.django_db
class TestExportImport:
    def test_export_contains_blocks(self, org):
        _save(org, dashboard_config={"title": "Biz"})
        document = json.loads(svc.export_customization(organization=org, vertical_id="business"))
        assert document["dashboard_config"] == {"title": "Biz"}
        assert document["vertical_id"] == "business"
        assert document["version"] == 1

    def test_export_without_customization(self, org):
        with pytest.raises(NotFoundError):
            svc.export_customization(organization=org, vertical_id="business")

    def test_import_saves_blocks(self, org):
        _save(org, dashboard_config={"title": "Biz"}, stats_config={"cards": [{"id": "members"}]})
        exported = svc.export_customization(organization=org, vertical_id="business")

        imported = svc.import_customization(organization=org, vertical_id="estate", json_data=exported)
        assert imported.dashboard_config == {"title": "Biz"}
        assert imported.stats_config == {"cards": [{"id": "members"}]}
        assert imported.history.get().change_description == "Imported customization from JSON"

    @pytest.mark.parametrize("payload", ["{not json", "[1, 2]", ""])
    def test_import_rejects_bad_json(self, org, payload):
        with pytest.raises(ValidationError) as exc_info:
            svc.import_customization(organization=org, vertical_id="business", json_data=payload)
        assert exc_info.value.detail == "Invalid JSON data"


# ===========================================================================
# Effective settings
# ===========================================================================

@pytest.mark.django_db
class TestEffectiveSettings:
    def test_defaults_without_customization(self, org):
        settings = svc.get_effective_settings(organization=org, vertical_id="business")
        assert settings["dashboard"]["title"] == "Business Operations"
        assert settings["branding"]["organization_name"] == "Grace Community"
        assert settings["version"] is None
        assert [card["id"] for card in settings["stats"]["cards"]][0] == "active-projects"

    def test_customization_layers_over_defaults(self, org):
        _save(
            org,
            dashboard_config={"title": "Ops Hub", "subtitle": ""},
            branding_config={"colors": {"primary": "#111111"}},
            stats_config={"cards": [{"id": "team-members", "label": "Staff", "visible": False}]},
            department_config={"departments": [{"id": "sales", "name": "Revenue"}]},
        )
        settings = svc.get_effective_settings(organization=org, vertical_id="business")
        assert settings["dashboard"]["title"] == "Ops Hub"
        assert settings["dashboard"]["subtitle"] == "Manage your business departments and workflows"
        assert settings["branding"]["colors"]["primary"] == "#111111"
        assert settings["branding"]["colors"]["secondary"] == "#F5A623"
        staff = next(c for c in settings["stats"]["cards"] if c["id"] == "team-members")
        assert staff["label"] == "Staff"
        assert staff["visible"] is False
        sales = next(d for d in settings["departments"]["departments"] if d["id"] == "sales")
        assert sales["name"] == "Revenue"
        assert settings["version"] == 1
