"""
apps.organizations.urls
~~~~~~~~~~~~~~~~~~~~~~~
Mounted at /api/v1/ by the root URLconf.
"""
from django.urls import path

from .views import OrganizationDetailView, OrganizationListCreateView, OrganizationVerticalsView

urlpatterns = [
    path("organizations/", OrganizationListCreateView.as_view(), name="organization-list"),
    path("organizations/<str:org_id>/", OrganizationDetailView.as_view(), name="organization-detail"),
    path(
        "organizations/<str:org_id>/verticals/",
        OrganizationVerticalsView.as_view(),
        name="organization-verticals",
    ),
]
