"""
apps.verticals.registry
~~~~~~~~~~~~~~~~~~~~~~~
Default Department Registry.

Each vertical declares its departments in navigation order together with the
section each one lives in when an organisation has not moved it.  The
registry is immutable and defined at deploy time; organisation-specific
placement lives in ``apps.departments`` and label overrides live in
``apps.customizations``.

Public API
----------
get_vertical_config(vertical_id) -> VerticalConfig
list_verticals() -> list[VerticalConfig]
"""
from __future__ import annotations

from dataclasses import dataclass, field

from common.exceptions import NotFoundError

from .constants import SectionId, VerticalId


@dataclass(frozen=True)
class Department:
    """A department entry as shipped with the vertical."""

    id: str
    default_name: str
    default_description: str = ""
    is_core: bool = False
    home_section: str = SectionId.DEPARTMENTS
    route: str = ""


@dataclass(frozen=True)
class StatCard:
    id: str
    label: str
    metric_type: str = "custom"


@dataclass(frozen=True)
class VerticalConfig:
    """
    Everything the settings editor needs to know about one vertical.

    ``departments`` keeps the declared navigation order; the merger relies on
    it to place departments that have no assignment row.
    """

    id: str
    display_name: str
    departments: tuple[Department, ...]
    dashboard: dict = field(default_factory=dict)
    stat_cards: tuple[StatCard, ...] = ()
    branding_colors: dict = field(default_factory=dict)

    def department_ids(self) -> list[str]:
        return [d.id for d in self.departments]

    def get_department(self, department_id: str) -> Department | None:
        for department in self.departments:
            if department.id == department_id:
                return department
        return None

    @property
    def core_departments(self) -> tuple[Department, ...]:
        return tuple(d for d in self.departments if d.is_core)

    @property
    def additional_departments(self) -> tuple[Department, ...]:
        return tuple(
            d for d in self.departments
            if not d.is_core and d.home_section == SectionId.DEPARTMENTS
        )


# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------

def _core(dept_id: str, name: str, description: str) -> Department:
    return Department(
        id=dept_id,
        default_name=name,
        default_description=description,
        is_core=True,
        route=f"/department/{dept_id}",
    )


def _additional(dept_id: str, name: str, description: str) -> Department:
    return Department(
        id=dept_id,
        default_name=name,
        default_description=description,
        route=f"/department/{dept_id}",
    )


def _nav(dept_id: str, name: str, section: str, route: str, description: str = "") -> Department:
    return Department(
        id=dept_id,
        default_name=name,
        default_description=description,
        home_section=section,
        route=route,
    )


_DEFAULT_COLORS: dict = {
    "primary": "#4A90E2",
    "secondary": "#F5A623",
    "accent": "#7B68EE",
    "background": "#FAFAF8",
    "surface": "#FFFFFF",
    "text": {"primary": "#4A4A4A", "secondary": "#757575", "disabled": "#BDBDBD"},
    "status": {
        "success": "#66BB6A",
        "warning": "#FFA726",
        "error": "#EF5350",
        "info": "#42A5F5",
    },
    "borders": "#E8E8E8",
}


# ---------------------------------------------------------------------------
# Vertical definitions
# ---------------------------------------------------------------------------

_BUSINESS = VerticalConfig(
    id=VerticalId.BUSINESS,
    display_name="Business",
    departments=(
        _nav("documents", "Document Center", SectionId.DOCUMENTS, "/documents",
             "Upload, organize, and manage documents"),
        _core("human-resources", "Human Resources", "Team management, hiring, performance"),
        _core("finance-accounting", "Finance & Accounting", "Financial planning, invoicing, reporting"),
        _core("sales", "Sales", "AI-powered sales analytics and insights"),
        _core("operations", "Operations", "Workflows, inventory, process management"),
        _core("customer-support", "Customer Support", "Tickets, cases, customer communications"),
        _additional("marketing", "Marketing", "Campaigns, content, lead generation"),
        _additional("it-technology", "IT & Technology", "Asset management, helpdesk, security"),
        _additional("legal-compliance", "Legal & Compliance", "Contracts, policies, risk management"),
        _additional("procurement", "Procurement", "Vendors, purchase orders, suppliers"),
        _additional("project-management", "Project Management", "Projects, tasks, timelines, resources"),
        _additional("research-development", "Research & Development", "Innovation, product development, testing"),
        _additional("quality-assurance", "Quality Assurance", "Quality control, audits, standards"),
        _nav("workflows", "Employee Onboarding", SectionId.OPERATIONS, "/workflows"),
        _nav("hr", "HR", SectionId.OPERATIONS, "/operations/hr"),
        _nav("accounting", "Accounting", SectionId.OPERATIONS, "/operations/accounting"),
        _nav("legal", "Legal", SectionId.OPERATIONS, "/operations/legal"),
        _nav("users", "Users", SectionId.ADMIN, "/users"),
        _nav("oauth", "OAuth", SectionId.ADMIN, "/oauth"),
    ),
    dashboard={
        "title": "Business Operations",
        "subtitle": "Manage your business departments and workflows",
        "core_section_title": "Core Departments",
        "additional_section_title": "Additional Departments",
    },
    stat_cards=(
        StatCard("active-projects", "Active Projects", "documents"),
        StatCard("client-contracts", "Client Contracts", "categories"),
        StatCard("pending-tasks", "Pending Tasks", "expiring"),
        StatCard("team-members", "Team Members", "custom"),
    ),
    branding_colors=_DEFAULT_COLORS,
)

_CHURCH = VerticalConfig(
    id=VerticalId.CHURCH,
    display_name="Church",
    departments=(
        _nav("documents", "Document Center", SectionId.DOCUMENTS, "/documents",
             "Upload, organize, and manage documents"),
        _core("human-resources", "Human Resources", "Staff, volunteers and pastoral team"),
        _core("finance-accounting", "Finance & Accounting", "Budgets, tithes and financial reporting"),
        _core("sales", "Donor Relations", "Giving patterns and donor engagement"),
        _core("operations", "Operations", "Facilities, events and ministry logistics"),
        _core("customer-support", "Member Care", "Pastoral care and member communications"),
        _additional("marketing", "Communications & Marketing", "Outreach, media and announcements"),
        _additional("it-technology", "IT & Technology", "Systems, streaming equipment and security"),
        _additional("legal-compliance", "Legal & Compliance", "Policies, safeguarding and governance"),
        _additional("procurement", "Procurement", "Vendors and purchasing"),
        _additional("project-management", "Project Management", "Building projects and initiatives"),
        _additional("research-development", "Research & Development", "New ministries and programmes"),
        _additional("quality-assurance", "Quality Assurance", "Reviews, audits and standards"),
        _nav("workflows", "Staff Onboarding", SectionId.OPERATIONS, "/workflows"),
        _nav("hr", "HR", SectionId.OPERATIONS, "/operations/hr"),
        _nav("accounting", "Accounting", SectionId.OPERATIONS, "/operations/accounting"),
        _nav("legal", "Legal", SectionId.OPERATIONS, "/operations/legal"),
        _nav("branding", "Branding", SectionId.OPERATIONS, "/operations/branding"),
        _nav("social-media", "Social Media", SectionId.OPERATIONS, "/operations/social-media"),
        _nav("communications", "Communications", SectionId.OPERATIONS, "/operations/communications"),
        _nav("volunteer-management", "People Management", SectionId.OPERATIONS,
             "/operations/volunteer-management"),
        _nav("streaming", "Media & Content", SectionId.OPERATIONS, "/operations/streaming"),
        _nav("it", "IT & Technology", SectionId.OPERATIONS, "/operations/it"),
        _nav("users", "Users", SectionId.ADMIN, "/users"),
        _nav("oauth", "OAuth", SectionId.ADMIN, "/oauth"),
    ),
    dashboard={
        "title": "Church Ministries",
        "subtitle": "Manage your ministries and church operations",
        "core_section_title": "Core Ministries",
        "additional_section_title": "Additional Ministries",
    },
    stat_cards=(
        StatCard("documents", "Documents", "documents"),
        StatCard("ministries", "Active Ministries", "categories"),
        StatCard("expiring", "Expiring Soon", "expiring"),
        StatCard("members", "Members", "custom"),
    ),
    branding_colors=_DEFAULT_COLORS,
)

_ESTATE = VerticalConfig(
    id=VerticalId.ESTATE,
    display_name="Estate",
    departments=(
        _nav("vault", "Document Vault", SectionId.DOCUMENTS, "/documents",
             "Encrypted storage for sensitive documents"),
        _core("human-resources", "Financial Accounts", "Bank, investment and retirement accounts"),
        _core("finance-accounting", "Legal Documents", "Wills, trusts and powers of attorney"),
        _core("sales", "Digital Assets", "Online accounts, crypto and digital property"),
        _core("operations", "Real Property", "Homes, land and property records"),
        _core("customer-support", "Insurance Policies", "Life, health and property coverage"),
        _additional("marketing", "Subscriptions & Memberships", "Recurring services and memberships"),
        _additional("it-technology", "Legacy Planning", "Letters, wishes and legacy documents"),
        _additional("legal-compliance", "Beneficiary Management", "Beneficiaries and their access"),
        _nav("workflows", "Access Onboarding", SectionId.OPERATIONS, "/workflows"),
        _nav("executor-access", "Executor Access", SectionId.OPERATIONS, "/operations/hr"),
        _nav("access-controls", "Access Controls", SectionId.OPERATIONS, "/operations/accounting"),
        _nav("vault-security", "Vault Security", SectionId.OPERATIONS, "/operations/legal"),
        _nav("beneficiaries", "Beneficiaries", SectionId.ADMIN, "/users"),
    ),
    dashboard={
        "title": "Estate Overview",
        "subtitle": "Organize your estate and digital legacy",
        "core_section_title": "Core Categories",
        "additional_section_title": "Additional Categories",
    },
    stat_cards=(
        StatCard("documents", "Stored Documents", "documents"),
        StatCard("categories", "Asset Categories", "categories"),
        StatCard("expiring", "Expiring Documents", "expiring"),
        StatCard("beneficiaries", "Beneficiaries", "custom"),
    ),
    branding_colors=_DEFAULT_COLORS,
)

_REGISTRY: dict[str, VerticalConfig] = {
    cfg.id: cfg for cfg in (_CHURCH, _BUSINESS, _ESTATE)
}


def get_vertical_config(vertical_id: str) -> VerticalConfig:
    """
    Return the deploy-time configuration for *vertical_id*.

    Raises:
        NotFoundError: If the vertical is not registered.
    """
    try:
        return _REGISTRY[str(vertical_id)]
    except KeyError:
        raise NotFoundError(f"Vertical '{vertical_id}' is not configured.") from None


def list_verticals() -> list[VerticalConfig]:
    return list(_REGISTRY.values())
