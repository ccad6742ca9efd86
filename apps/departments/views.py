"""
apps.departments.views
~~~~~~~~~~~~~~~~~~~~~~
Thin DRF views over the department layout reconciler.

Endpoints
---------
GET    .../departments/                         – Current layout
POST   .../departments/move/                    – Move one department
POST   .../departments/<department_id>/visibility/ – Toggle visibility
POST   .../departments/undo/                    – Undo the latest move
POST   .../departments/reset/                   – Reset to defaults
POST   .../departments/check-again/             – Leave fallback mode

Every endpoint is scoped by ``organizations/<org_id>/verticals/<vertical_id>/``.
Requests may carry an ``X-Client-Session`` header; changes are attributed to
that session so its own realtime listener ignores them, and undo history is
kept per session, so undo needs the same header as the move it reverts.
"""
from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.customizations.services.customization_service import get_active_customization
from apps.organizations.services import get_organization
from common.exceptions import ConflictError, NotFoundError, ServiceUnavailableError, ValidationError

from .serializers import DepartmentLayoutSerializer, DepartmentMoveSerializer
from .services.merger import flatten_sections
from .services.reconciler import DepartmentLayoutReconciler


def _session_id(request: Request) -> str | None:
    session_id = request.headers.get("X-Client-Session")
    if session_id:
        return session_id
    session = getattr(request, "session", None)
    return getattr(session, "session_key", None)


def _reconciler(request: Request, org_id: str, vertical_id: str) -> DepartmentLayoutReconciler:
    organization = get_organization(org_id)
    customization = get_active_customization(organization=organization, vertical_id=vertical_id)
    user = request.user if request.user.is_authenticated else None
    reconciler = DepartmentLayoutReconciler(
        organization,
        vertical_id,
        session_id=_session_id(request),
        department_config=customization.department_config if customization else None,
        actor=user,
    )
    reconciler.load()
    if reconciler.error:
        raise ServiceUnavailableError(reconciler.error)
    return reconciler


def _editable(reconciler: DepartmentLayoutReconciler) -> None:
    if reconciler.is_fallback:
        raise ConflictError(reconciler.migration_warning, code="fallback_mode")


def _known_department(reconciler: DepartmentLayoutReconciler, department_id: str) -> None:
    if department_id not in flatten_sections(reconciler.sections):
        raise NotFoundError(f"Unknown department '{department_id}'.", code="unknown_department")


def _known_target(reconciler: DepartmentLayoutReconciler, target: str) -> None:
    if target not in reconciler.sections and target not in flatten_sections(reconciler.sections):
        raise ValidationError(f"Unknown drop target '{target}'.", code="unknown_target")


def _result(reconciler: DepartmentLayoutReconciler, changed: bool) -> Response:
    if not changed and reconciler.error:
        raise ServiceUnavailableError(reconciler.error)
    return Response(DepartmentLayoutSerializer.from_reconciler(reconciler))


_LAYOUT_RESPONSES = {
    200: DepartmentLayoutSerializer,
    404: OpenApiResponse(description="Organisation or vertical not found."),
    503: OpenApiResponse(description="Assignment store temporarily unavailable."),
}


class DepartmentLayoutView(APIView):
    @extend_schema(summary="Get Department Layout", responses=_LAYOUT_RESPONSES, tags=["Departments"])
    def get(self, request: Request, org_id: str, vertical_id: str) -> Response:
        reconciler = _reconciler(request, org_id, vertical_id)
        return Response(DepartmentLayoutSerializer.from_reconciler(reconciler))


class DepartmentMoveView(APIView):
    @extend_schema(
        summary="Move Department",
        request=DepartmentMoveSerializer,
        responses={
            **_LAYOUT_RESPONSES,
            409: OpenApiResponse(description="Layout is in fallback mode."),
            422: OpenApiResponse(description="Unknown drop target."),
        },
        tags=["Departments"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        serializer = DepartmentMoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vd = serializer.validated_data

        reconciler = _reconciler(request, org_id, vertical_id)
        _editable(reconciler)
        _known_department(reconciler, vd["department_id"])
        _known_target(reconciler, vd["target"])
        changed = reconciler.move_department(vd["department_id"], vd["target"], vd.get("position"))
        return _result(reconciler, changed)


class DepartmentVisibilityView(APIView):
    @extend_schema(
        summary="Toggle Department Visibility",
        request=None,
        responses={**_LAYOUT_RESPONSES, 409: OpenApiResponse(description="Layout is in fallback mode.")},
        tags=["Departments"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str, department_id: str) -> Response:
        reconciler = _reconciler(request, org_id, vertical_id)
        _editable(reconciler)
        _known_department(reconciler, department_id)
        changed = reconciler.toggle_visibility(department_id)
        return _result(reconciler, changed)


class DepartmentUndoView(APIView):
    @extend_schema(
        summary="Undo Last Department Move",
        request=None,
        responses={
            **_LAYOUT_RESPONSES,
            409: OpenApiResponse(description="Fallback mode, or nothing to undo for this session."),
        },
        tags=["Departments"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        reconciler = _reconciler(request, org_id, vertical_id)
        _editable(reconciler)
        if not reconciler.undo_stack:
            raise ConflictError("No recent moves to undo", code="nothing_to_undo")
        changed = reconciler.undo()
        return _result(reconciler, changed)


class DepartmentResetView(APIView):
    @extend_schema(
        summary="Reset Department Layout",
        request=None,
        responses={**_LAYOUT_RESPONSES, 409: OpenApiResponse(description="Layout is in fallback mode.")},
        tags=["Departments"],
    )
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        reconciler = _reconciler(request, org_id, vertical_id)
        _editable(reconciler)
        changed = reconciler.reset_to_defaults()
        return _result(reconciler, changed)


class DepartmentCheckAgainView(APIView):
    @extend_schema(summary="Re-check Assignment Table", request=None, responses=_LAYOUT_RESPONSES, tags=["Departments"])
    def post(self, request: Request, org_id: str, vertical_id: str) -> Response:
        reconciler = _reconciler(request, org_id, vertical_id)
        reconciler.check_again()
        if reconciler.error:
            raise ServiceUnavailableError(reconciler.error)
        return Response(DepartmentLayoutSerializer.from_reconciler(reconciler))
