"""
apps.departments.urls
"""
from django.urls import path

from .views import (
    DepartmentCheckAgainView,
    DepartmentLayoutView,
    DepartmentMoveView,
    DepartmentResetView,
    DepartmentUndoView,
    DepartmentVisibilityView,
)

_PREFIX = "organizations/<str:org_id>/verticals/<str:vertical_id>/departments/"

urlpatterns = [
    path(_PREFIX, DepartmentLayoutView.as_view(), name="department-layout"),
    path(f"{_PREFIX}move/", DepartmentMoveView.as_view(), name="department-move"),
    path(f"{_PREFIX}undo/", DepartmentUndoView.as_view(), name="department-undo"),
    path(f"{_PREFIX}reset/", DepartmentResetView.as_view(), name="department-reset"),
    path(f"{_PREFIX}check-again/", DepartmentCheckAgainView.as_view(), name="department-check-again"),
    path(
        f"{_PREFIX}<str:department_id>/visibility/",
        DepartmentVisibilityView.as_view(),
        name="department-visibility",
    ),
]
