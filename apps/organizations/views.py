"""
apps.organizations.views
~~~~~~~~~~~~~~~~~~~~~~~~~
Thin DRF API views for tenant organisations.

Endpoints
---------
GET    /organizations/                    – List (optional ``?search=``)
POST   /organizations/                    – Create organisation
GET    /organizations/{id}/               – Fetch by id or slug
PATCH  /organizations/{id}/               – Rename / change default vertical
GET    /organizations/{id}/verticals/     – Customization state per vertical
"""
from __future__ import annotations

from dataclasses import asdict

from django.db import IntegrityError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.organizations.services import org_service
from common.exceptions import ConflictError

from .serializers import (
    OrganizationCreateSerializer,
    OrganizationSearchSerializer,
    OrganizationSerializer,
    OrganizationUpdateSerializer,
    VerticalOverviewSerializer,
)

_NOT_FOUND = OpenApiResponse(description="Organisation not found.")
_DUPLICATE = OpenApiResponse(description="An organisation with that name already exists.")


class OrganizationListCreateView(APIView):
    @extend_schema(
        summary="List Organisations",
        parameters=[OrganizationSearchSerializer],
        responses={200: OrganizationSerializer(many=True)},
        tags=["Organizations"],
    )
    def get(self, request: Request) -> Response:
        query = OrganizationSearchSerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        orgs = org_service.list_organizations(search=query.validated_data.get("search"))
        return Response(OrganizationSerializer(orgs, many=True).data)

    @extend_schema(
        summary="Create Organisation",
        request=OrganizationCreateSerializer,
        responses={201: OrganizationSerializer, 409: _DUPLICATE},
        tags=["Organizations"],
    )
    def post(self, request: Request) -> Response:
        serializer = OrganizationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            org = org_service.create_organization(**serializer.validated_data)
        except IntegrityError:
            raise ConflictError("An organisation with that name already exists.", code="duplicate_name") from None
        return Response(OrganizationSerializer(org).data, status=status.HTTP_201_CREATED)


class OrganizationDetailView(APIView):
    @extend_schema(summary="Get Organisation", responses={200: OrganizationSerializer, 404: _NOT_FOUND}, tags=["Organizations"])
    def get(self, request: Request, org_id: str) -> Response:
        org = org_service.get_organization(org_id)
        return Response(OrganizationSerializer(org).data)

    @extend_schema(
        summary="Update Organisation",
        request=OrganizationUpdateSerializer,
        responses={200: OrganizationSerializer, 404: _NOT_FOUND, 409: _DUPLICATE},
        tags=["Organizations"],
    )
    def patch(self, request: Request, org_id: str) -> Response:
        org = org_service.get_organization(org_id)
        serializer = OrganizationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            org = org_service.update_organization(org, **serializer.validated_data)
        except IntegrityError:
            raise ConflictError("An organisation with that name already exists.", code="duplicate_name") from None
        return Response(OrganizationSerializer(org).data)


class OrganizationVerticalsView(APIView):
    @extend_schema(
        summary="Vertical Overview",
        responses={200: VerticalOverviewSerializer(many=True), 404: _NOT_FOUND},
        tags=["Organizations"],
    )
    def get(self, request: Request, org_id: str) -> Response:
        org = org_service.get_organization(org_id)
        overview = org_service.get_vertical_overview(org)
        return Response(VerticalOverviewSerializer([asdict(v) for v in overview], many=True).data)
