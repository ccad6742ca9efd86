"""
apps.customizations.urls
~~~~~~~~~~~~~~~~~~~~~~~~
Mounted at /api/v1/ by the root URLconf.
"""
from django.urls import path

from . import views

_ORG = "organizations/<str:org_id>/"
_VERTICAL = _ORG + "verticals/<str:vertical_id>/"

urlpatterns = [
    # Customization
    path(f"{_VERTICAL}customization/", views.CustomizationView.as_view(), name="customization"),
    path(f"{_VERTICAL}customization/effective/", views.EffectiveSettingsView.as_view(), name="customization-effective"),
    path(f"{_VERTICAL}customization/export/", views.CustomizationExportView.as_view(), name="customization-export"),
    path(f"{_VERTICAL}customization/import/", views.CustomizationImportView.as_view(), name="customization-import"),
    path(f"{_VERTICAL}customization/copy/", views.CustomizationCopyView.as_view(), name="customization-copy"),

    # Draft
    path(f"{_VERTICAL}customization/draft/", views.DraftView.as_view(), name="customization-draft"),
    path(f"{_VERTICAL}customization/draft/save/", views.DraftSaveView.as_view(), name="customization-draft-save"),
    path(f"{_VERTICAL}customization/draft/reset/", views.DraftResetView.as_view(), name="customization-draft-reset"),

    # History
    path(f"{_VERTICAL}history/", views.HistoryListView.as_view(), name="history-list"),
    path(f"{_VERTICAL}history/compare/", views.HistoryCompareView.as_view(), name="history-compare"),
    path(
        f"{_VERTICAL}history/<int:history_id>/milestone/",
        views.HistoryMilestoneView.as_view(),
        name="history-milestone",
    ),
    path(
        f"{_VERTICAL}history/<int:history_id>/rollback/",
        views.HistoryRollbackView.as_view(),
        name="history-rollback",
    ),

    # Retention
    path(f"{_VERTICAL}retention/", views.RetentionSummaryView.as_view(), name="retention-summary"),
    path(f"{_VERTICAL}retention/cleanup/", views.RetentionCleanupView.as_view(), name="retention-cleanup"),
    path(f"{_ORG}retention/", views.RetentionSummaryView.as_view(), name="org-retention-summary"),
    path(f"{_ORG}retention/cleanup/", views.RetentionCleanupView.as_view(), name="org-retention-cleanup"),

    # Logo
    path(f"{_ORG}logo/", views.LogoView.as_view(), name="organization-logo"),
]
