"""
apps.customizations.views
~~~~~~~~~~~~~~~~~~~~~~~~~
Thin DRF views for organisation UI customization.
All business logic is delegated to :mod:`apps.customizations.services`.

Endpoints (under ``organizations/<org_id>/``)
---------------------------------------------
GET/PUT  verticals/<v>/customization/                    – Current customization
GET      verticals/<v>/customization/effective/          – Defaults + customization
GET      verticals/<v>/customization/export/             – JSON download
POST     verticals/<v>/customization/import/             – Import exported JSON
POST     verticals/<v>/customization/copy/               – Copy from another vertical
GET/PATCH/DELETE verticals/<v>/customization/draft/      – Working copy
POST     verticals/<v>/customization/draft/save/         – Save working copy
POST     verticals/<v>/customization/draft/reset/        – Clear working copy
GET      verticals/<v>/history/                          – Version history
GET      verticals/<v>/history/compare/                  – Diff two versions
POST     verticals/<v>/history/<id>/milestone/           – Mark milestone
POST     verticals/<v>/history/<id>/rollback/            – Roll back
GET      [verticals/<v>/]retention/                      – Retention summary
POST     [verticals/<v>/]retention/cleanup/              – Manual cleanup
POST/DELETE logo/                                        – Upload / remove logo
"""
from __future__ import annotations

from dataclasses import asdict

from django.http import HttpResponse
from django.utils import timezone
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.organizations.services import get_organization
from apps.verticals.registry import get_vertical_config
from common.exceptions import NotFoundError, ValidationError

from .models import CONFIG_SECTIONS
from .serializers import (
    CleanupRequestSerializer,
    CleanupResultSerializer,
    CompareQuerySerializer,
    CopySerializer,
    CustomizationHistorySerializer,
    CustomizationSaveSerializer,
    CustomizationSerializer,
    DiffSerializer,
    DraftSaveSerializer,
    DraftSerializer,
    DraftUpdateSerializer,
    HistoryQuerySerializer,
    ImportSerializer,
    LogoDeleteSerializer,
    LogoMetadataSerializer,
    LogoUploadSerializer,
    MilestoneSerializer,
    RetentionSummarySerializer,
)
from .services import customization_service, history, logo
from .services.draft import DraftManager


def _actor(request: Request):
    return request.user if request.user.is_authenticated else None


def _scope(org_id: str, vertical_id: str):
    get_vertical_config(vertical_id)
    return get_organization(org_id)


def _draft_owner(request: Request) -> str:
    """Signed-in users own one draft; anonymous clients must name their session."""
    if request.user.is_authenticated:
        return f"user-{request.user.pk}"
    session = getattr(request, "session", None)
    owner_key = request.headers.get("X-Client-Session") or getattr(session, "session_key", None)
    if not owner_key:
        raise ValidationError(
            "Anonymous draft requests need an X-Client-Session header.",
            code="client_session_required",
        )
    return owner_key


def _draft_manager(request: Request, org_id: str, vertical_id: str) -> DraftManager:
    organization = _scope(org_id, vertical_id)
    manager = DraftManager(organization, vertical_id, owner_key=_draft_owner(request), actor=_actor(request))
    manager.load()
    return manager


def _draft_payload(manager: DraftManager) -> dict:
    return {**manager.draft.to_dict(), "recovered": manager.recovered}


_NOT_FOUND = OpenApiResponse(description="Organisation, vertical or customization not found.")
_INVALID = OpenApiResponse(description="Customization failed validation.")


# ---------------------------------------------------------------------------
# Customization
# ---------------------------------------------------------------------------

class CustomizationView(APIView):
    @extend_schema(summary="Get Customization", responses={200: CustomizationSerializer, 404: _NOT_FOUND}, tags=["Customizations"])
    def get(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        customization = customization_service.get_active_customization(
            organization=organization, vertical_id=vertical_id
        )
        if customization is None:
            raise NotFoundError(f"No customization found for {vertical_id}.")
        return Response(CustomizationSerializer(customization).data)

    @extend_schema(
        summary="Save Customization",
        request=CustomizationSaveSerializer,
        responses={200: CustomizationSerializer, 404: _NOT_FOUND, 422: _INVALID},
        tags=["Customizations"],
    )
    def put(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        serializer = CustomizationSaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        saved = customization_service.save_customization(
            organization=organization,
            vertical_id=vertical_id,
            customization=serializer.customization(),
            change_description=serializer.validated_data.get("change_description") or None,
            change_note=serializer.validated_data.get("change_note") or None,
            actor=_actor(request),
        )
        return Response(CustomizationSerializer(saved).data)


class EffectiveSettingsView(APIView):
    @extend_schema(summary="Get Effective Settings", responses={200: OpenApiResponse(description="Merged settings."), 404: _NOT_FOUND}, tags=["Customizations"])
    def get(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        return Response(customization_service.get_effective_settings(organization=organization, vertical_id=vertical_id))


class CustomizationExportView(APIView):
    @extend_schema(summary="Export Customization", responses={200: OpenApiResponse(description="JSON document."), 404: _NOT_FOUND}, tags=["Customizations"])
    def get(self, request: Request, org_id: str, vertical_id: str) -> HttpResponse:
        organization = _scope(org_id, vertical_id)
        document = customization_service.export_customization(organization=organization, vertical_id=vertical_id)
        filename = f"customization-{vertical_id}-{timezone.now():%Y-%m-%d}.json"
        response = HttpResponse(document, content_type="application/json")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response


class CustomizationImportView(APIView):
    @extend_schema(
        summary="Import Customization",
        request=ImportSerializer,
        responses={200: CustomizationSerializer, 422: _INVALID},
        tags=["Customizations"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        serializer = ImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        saved = customization_service.import_customization(
            organization=organization,
            vertical_id=vertical_id,
            json_data=serializer.validated_data["json_data"],
            actor=_actor(request),
        )
        return Response(CustomizationSerializer(saved).data)


class CustomizationCopyView(APIView):
    @extend_schema(
        summary="Copy From Vertical",
        request=CopySerializer,
        responses={200: CustomizationSerializer, 404: _NOT_FOUND},
        tags=["Customizations"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        serializer = CopySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        saved = customization_service.copy_from_vertical(
            organization=organization,
            source_vertical_id=serializer.validated_data["source_vertical_id"],
            target_vertical_id=vertical_id,
            include=serializer.validated_data["include"],
            actor=_actor(request),
        )
        return Response(CustomizationSerializer(saved).data)


# ---------------------------------------------------------------------------
# Draft
# ---------------------------------------------------------------------------

class DraftView(APIView):
    @extend_schema(summary="Load Draft", responses={200: DraftSerializer}, tags=["Drafts"])
    def get(self, request: Request, org_id: str, vertical_id: str) -> Response:
        manager = _draft_manager(request, org_id, vertical_id)
        return Response(_draft_payload(manager))

    @extend_schema(summary="Update Draft", request=DraftUpdateSerializer, responses={200: DraftSerializer}, tags=["Drafts"])
    def patch(self, request: Request, org_id: str, vertical_id: str) -> Response:
        serializer = DraftUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        manager = _draft_manager(request, org_id, vertical_id)
        for section in CONFIG_SECTIONS:
            if section in serializer.validated_data:
                manager.update(section, serializer.validated_data[section])
        return Response(_draft_payload(manager))

    @extend_schema(summary="Discard Draft", responses={200: DraftSerializer}, tags=["Drafts"])
    def delete(self, request: Request, org_id: str, vertical_id: str) -> Response:
        manager = _draft_manager(request, org_id, vertical_id)
        manager.discard()
        return Response(_draft_payload(manager))


class DraftSaveView(APIView):
    @extend_schema(
        summary="Save Draft",
        request=DraftSaveSerializer,
        responses={200: CustomizationSerializer, 422: _INVALID},
        tags=["Drafts"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        serializer = DraftSaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        manager = _draft_manager(request, org_id, vertical_id)
        saved = manager.save(
            change_description=serializer.validated_data.get("change_description") or None,
            change_note=serializer.validated_data.get("change_note") or None,
        )
        return Response(CustomizationSerializer(saved).data)


class DraftResetView(APIView):
    @extend_schema(summary="Reset Draft To Defaults", request=None, responses={200: DraftSerializer}, tags=["Drafts"])
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        manager = _draft_manager(request, org_id, vertical_id)
        manager.reset_to_defaults()
        return Response(_draft_payload(manager))


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class HistoryListView(APIView):
    @extend_schema(
        summary="List History",
        parameters=[HistoryQuerySerializer],
        responses={200: CustomizationHistorySerializer(many=True)},
        tags=["History"],
    )
    def get(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        entries = history.list_history(
            organization=organization,
            vertical_id=vertical_id,
            limit=query.validated_data.get("limit"),
            offset=query.validated_data["offset"],
            milestones_only=query.validated_data["milestones_only"],
        )
        return Response(CustomizationHistorySerializer(entries, many=True).data)


class HistoryCompareView(APIView):
    @extend_schema(
        summary="Compare Versions",
        parameters=[CompareQuerySerializer],
        responses={200: DiffSerializer(many=True), 404: _NOT_FOUND},
        tags=["History"],
    )
    def get(self, request: Request, org_id: str, vertical_id: str) -> Response:
        organization = _scope(org_id, vertical_id)
        query = CompareQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        old = history.get_history_entry(
            query.validated_data["from_id"], organization=organization, vertical_id=vertical_id
        )
        to_id = query.validated_data.get("to_id")
        if to_id is not None:
            new = history.get_history_entry(to_id, organization=organization, vertical_id=vertical_id)
        else:
            new = customization_service.get_active_customization(organization=organization, vertical_id=vertical_id)
            if new is None:
                raise NotFoundError(f"No customization found for {vertical_id}.")

        diffs = history.compare_versions(old, new)
        return Response(DiffSerializer([asdict(diff) for diff in diffs], many=True).data)


class HistoryMilestoneView(APIView):
    @extend_schema(
        summary="Mark Milestone",
        request=MilestoneSerializer,
        responses={200: CustomizationHistorySerializer, 404: _NOT_FOUND},
        tags=["History"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str, history_id: int) -> Response:
        organization = _scope(org_id, vertical_id)
        serializer = MilestoneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = history.mark_milestone(
            history_id=history_id,
            name=serializer.validated_data["name"],
            notes=serializer.validated_data.get("notes"),
            organization=organization,
            vertical_id=vertical_id,
        )
        return Response(CustomizationHistorySerializer(entry).data)


class HistoryRollbackView(APIView):
    @extend_schema(
        summary="Roll Back To Version",
        request=None,
        responses={200: CustomizationSerializer, 404: _NOT_FOUND},
        tags=["History"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str, history_id: int) -> Response:
        organization = _scope(org_id, vertical_id)
        saved = history.rollback_to_version(
            organization=organization,
            vertical_id=vertical_id,
            history_id=history_id,
            actor=_actor(request),
        )
        return Response(CustomizationSerializer(saved).data)


class RetentionSummaryView(APIView):
    @extend_schema(summary="Retention Summary", responses={200: RetentionSummarySerializer(many=True)}, tags=["History"])
    def get(self, request: Request, org_id: str, vertical_id: str | None = None) -> Response:
        organization = _scope(org_id, vertical_id) if vertical_id else get_organization(org_id)
        summaries = history.get_retention_summary(organization=organization, vertical_id=vertical_id)
        return Response(RetentionSummarySerializer([asdict(s) for s in summaries], many=True).data)


class RetentionCleanupView(APIView):
    @extend_schema(
        summary="Clean Up History",
        request=CleanupRequestSerializer,
        responses={200: CleanupResultSerializer(many=True)},
        tags=["History"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str | None = None) -> Response:
        organization = _scope(org_id, vertical_id) if vertical_id else get_organization(org_id)
        serializer = CleanupRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        results = history.cleanup_history(
            organization=organization,
            vertical_id=vertical_id,
            dry_run=serializer.validated_data["dry_run"],
        )
        return Response(CleanupResultSerializer([asdict(r) for r in results], many=True).data)


# ---------------------------------------------------------------------------
# Logo
# ---------------------------------------------------------------------------

class LogoView(APIView):
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    @extend_schema(
        summary="Upload Logo",
        request={"multipart/form-data": LogoUploadSerializer},
        responses={201: LogoMetadataSerializer, 422: OpenApiResponse(description="Logo rejected.")},
        tags=["Branding"],
    )
    def post(self, request: Request, org_id: str) -> Response:
        organization = get_organization(org_id)
        serializer = LogoUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        metadata = logo.upload_organization_logo(serializer.validated_data["file"], organization.pk)
        return Response(LogoMetadataSerializer(metadata).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Delete Logo", request=LogoDeleteSerializer, responses={204: None}, tags=["Branding"])
    def delete(self, request: Request, org_id: str) -> Response:
        get_organization(org_id)
        serializer = LogoDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        logo.delete_organization_logo(serializer.validated_data["logo_url"])
        return Response(status=status.HTTP_204_NO_CONTENT)
