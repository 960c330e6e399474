# backend/crm/core/permissions.py

from enum import Enum
from typing import Iterable, List


class Role(str, Enum):
    ADMIN = "admin"
    CSR = "csr"


class Permission(str, Enum):
    VIEW_LEADS = "view_leads"
    CREATE_LEADS = "create_leads"
    EDIT_LEADS = "edit_leads"
    DELETE_LEADS = "delete_leads"
    VIEW_SALES = "view_sales"
    CREATE_SALES = "create_sales"


PERMISSION_LABELS = {
    Permission.VIEW_LEADS: "View Leads",
    Permission.CREATE_LEADS: "Create Leads",
    Permission.EDIT_LEADS: "Edit Leads",
    Permission.DELETE_LEADS: "Delete Leads",
    Permission.VIEW_SALES: "View Sales",
    Permission.CREATE_SALES: "Create Sales",
}

# catalog order is the order admins see and the order /me reports
ALL_PERMISSIONS: List[str] = [p.value for p in Permission]


def unknown_permissions(values: Iterable[str]) -> List[str]:
    return [v for v in values if v not in ALL_PERMISSIONS]


def normalize_permissions(values: Iterable[str]) -> List[str]:
    """Dedupe and sort into catalog order. Caller validates first."""
    wanted = set(values)
    return [p for p in ALL_PERMISSIONS if p in wanted]
