"""
apps.organizations.services package.
"""
from .org_service import (  # noqa: F401
    VerticalOverview,
    create_organization,
    get_organization,
    get_vertical_overview,
    list_organizations,
    update_organization,
)
