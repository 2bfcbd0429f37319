# backend/garagehub/core/permissions.py
"""
Role -> permission mapping and the route table used by the front end.

Permissions are flat names ("job_management", "invoicing", ...). A role's
effective set is the union of the permissions stored on its DB row
(comma-separated) and the built-in defaults for its name. "all" grants
everything.
"""
from typing import Dict, Iterable, List, Optional, Set

# System
ALL = "all"

# Tenant management
TENANT_MANAGEMENT = "tenant_management"
USER_MANAGEMENT = "user_management"
SETTINGS = "settings"

# Jobs
JOB_MANAGEMENT = "job_management"
JOB_VIEW = "job_view"
JOB_UPDATE = "job_update"
JOB_APPROVAL = "job_approval"

# Financial
FINANCIAL_MANAGEMENT = "financial_management"
FINANCIAL_VIEW = "financial_view"
INVOICING = "invoicing"
QUOTES = "quotes"

# Clients
CLIENT_MANAGEMENT = "client_management"
CLIENT_PORTAL = "client_portal"
JOB_VIEW_OWN = "job_view_own"
QUOTE_APPROVAL = "quote_approval"

# Inventory
INVENTORY_MANAGEMENT = "inventory_management"
PARTS_USAGE = "parts_usage"

# Reporting
REPORTING = "reporting"
BASIC_REPORTING = "basic_reporting"
ADVANCED_REPORTING = "advanced_reporting"

TIME_TRACKING = "time_tracking"
USER_VIEW = "user_view"

SUPER_ADMIN_ROLE = "super_admin"
ADMIN_ROLE = "admin"

ROLE_PERMISSIONS: Dict[str, Set[str]] = {
    SUPER_ADMIN_ROLE: {ALL},
    ADMIN_ROLE: {
        TENANT_MANAGEMENT,
        USER_MANAGEMENT,
        JOB_MANAGEMENT,
        FINANCIAL_MANAGEMENT,
        CLIENT_MANAGEMENT,
        INVENTORY_MANAGEMENT,
        REPORTING,
        SETTINGS,
    },
    "manager": {
        JOB_MANAGEMENT,
        JOB_APPROVAL,
        FINANCIAL_VIEW,
        CLIENT_MANAGEMENT,
        REPORTING,
        USER_VIEW,
    },
    "accounts": {
        FINANCIAL_MANAGEMENT,
        INVOICING,
        QUOTES,
        CLIENT_MANAGEMENT,
        REPORTING,
    },
    "technician": {
        JOB_VIEW,
        JOB_UPDATE,
        TIME_TRACKING,
        PARTS_USAGE,
    },
    "client": {
        CLIENT_PORTAL,
        JOB_VIEW_OWN,
        QUOTE_APPROVAL,
    },
}

# Roles seeded for every new tenant (super_admin is platform-only)
TENANT_DEFAULT_ROLES = [name for name in ROLE_PERMISSIONS if name != SUPER_ADMIN_ROLE]

ROUTE_PERMISSIONS: Dict[str, List[str]] = {
    "/dashboard": [JOB_VIEW, CLIENT_PORTAL],
    "/jobs": [JOB_MANAGEMENT, JOB_VIEW],
    "/quotes": [QUOTES, FINANCIAL_VIEW],
    "/invoices": [INVOICING, FINANCIAL_VIEW],
    "/clients": [CLIENT_MANAGEMENT],
    "/inventory": [INVENTORY_MANAGEMENT],
    "/reports": [REPORTING, BASIC_REPORTING],
    "/admin": [TENANT_MANAGEMENT, USER_MANAGEMENT],
    "/super-admin": [ALL],
}


def parse_permissions(raw: Optional[str]) -> Set[str]:
    if not raw:
        return set()
    return {p.strip() for p in raw.split(",") if p.strip()}


def format_permissions(perms: Iterable[str]) -> str:
    return ",".join(sorted({p.strip() for p in perms if p and p.strip()}))


def resolve_permissions(db_perms_raw: Optional[str], role_name: Optional[str]) -> Set[str]:
    """Union of the DB row's permissions and the built-in defaults for the role name."""
    perms = parse_permissions(db_perms_raw)
    perms |= ROLE_PERMISSIONS.get(role_name or "", set())
    return perms


def has_permission(perms: Set[str], permission: str) -> bool:
    if not perms:
        return False
    return ALL in perms or permission in perms


def has_any_permission(perms: Set[str], permissions: Iterable[str]) -> bool:
    return any(has_permission(perms, p) for p in permissions)


def can_access_route(perms: Set[str], route: str) -> bool:
    required = ROUTE_PERMISSIONS.get(route)
    if not required:
        return True  # public route
    return has_any_permission(perms, required)


def accessible_routes(perms: Set[str]) -> List[str]:
    return [route for route in ROUTE_PERMISSIONS if can_access_route(perms, route)]
