"""Static role → permission-code map.

Roles mirror the production floor: admins see everything, office staff lose user
management and analytics, stage operators only see their own stage.
"""

from __future__ import annotations

from bagline.app.models.user import UserRole

ALL_PERMISSIONS: dict[str, str] = {
    "inventory:read": "View materials and stock",
    "inventory:write": "Create/update materials and adjust stock",
    "inventory:delete": "Hard-delete materials",
    "inventory:history": "Clear transaction history",
    "purchase:read": "View purchases",
    "purchase:write": "Create, complete, reverse and delete purchases",
    "order:read": "View orders",
    "order:write": "Create/update orders",
    "order:delete": "Delete orders",
    "jobcard:read": "View job cards",
    "jobcard:write": "Create job cards",
    "jobcard:delete": "Delete job cards",
    "cutting:write": "Manage cutting jobs",
    "printing:write": "Manage printing jobs",
    "stitching:write": "Manage stitching jobs",
    "dispatch:read": "View dispatches",
    "dispatch:write": "Record dispatches",
    "billing:read": "View vendor bills and sales invoices",
    "billing:write": "Raise vendor bills and sales invoices",
    "analytics:read": "View wastage, consumption and stock-value reports",
    "user:manage": "Change user roles",
}

_STAFF = [
    code for code in ALL_PERMISSIONS
    if code not in {"user:manage", "inventory:delete", "inventory:history", "analytics:read"}
]

ROLE_PERMISSIONS: dict[UserRole, frozenset[str]] = {
    UserRole.ADMIN: frozenset(ALL_PERMISSIONS),
    UserRole.STAFF: frozenset(_STAFF),
    UserRole.PRINTER: frozenset({"jobcard:read", "printing:write"}),
    UserRole.CUTTING: frozenset({"jobcard:read", "cutting:write"}),
    UserRole.STITCHING: frozenset({"jobcard:read", "stitching:write"}),
}


def permissions_for(role: UserRole) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())
