from dataclasses import dataclass

from rest_framework.permissions import BasePermission

from apps.accounts.models import Department, UserRole

WILDCARD = "*"

_PRODUCTION_FLOOR = {
    "view_dashboard",
    "view_jobs",
    "scan_qr",
    "start_end_jobs",
    "view_delivery_tracking",
}

ROLE_PERMISSIONS = {
    UserRole.SUPERADMIN.value: {WILDCARD},
    UserRole.ADMIN.value: {
        "view_dashboard",
        "view_orders",
        "delete_orders",
        "view_clients",
        "view_payments",
        "approve_payments",
        "view_jobs",
        "edit_jobs",
        "scan_qr",
        "start_end_jobs",
        "skip_phases",
        "view_products",
        "manage_products",
        "view_due_dates",
        "view_tracking",
        "view_delivery_tracking",
        "update_delivery",
    },
    UserRole.SALES_MANAGER.value: {
        "view_dashboard",
        "view_orders",
        "create_orders",
        "edit_orders",
        "view_clients",
        "create_clients",
        "edit_clients",
        "view_payments",
        "view_jobs",
        "create_jobs",
        "edit_jobs",
        "scan_qr",
        "start_end_jobs",
        "view_products",
        "view_due_dates",
        "view_tracking",
        "view_delivery_tracking",
        "update_delivery",
    },
    UserRole.DESIGNER.value: {
        "view_dashboard",
        "view_orders",
        "view_jobs",
        "edit_design_jobs",
        "upload_designs",
        "start_end_jobs",
        "view_due_dates",
    },
    UserRole.PRINT.value: set(_PRODUCTION_FLOOR),
    UserRole.PRESS.value: set(_PRODUCTION_FLOOR),
    UserRole.CUT.value: set(_PRODUCTION_FLOOR),
    UserRole.SEW.value: set(_PRODUCTION_FLOOR),
    UserRole.QC.value: set(_PRODUCTION_FLOOR),
    UserRole.IRON_PACKING.value: set(_PRODUCTION_FLOOR),
}


def permissions_for(user):
    if not user or not getattr(user, "is_authenticated", False):
        return set()
    return ROLE_PERMISSIONS.get(str(getattr(user, "role", "")), set())


def has_permission(user, permission):
    granted = permissions_for(user)
    return WILDCARD in granted or permission in granted


def can_access(user, departments, roles=None):
    """Coarse navigation gate: department must be allowed, and role too when roles are given."""
    if not user or not getattr(user, "is_authenticated", False):
        return False
    if user.department not in departments:
        return False
    return roles is None or user.role in roles


@dataclass(frozen=True)
class NavigationItem:
    name: str
    href: str
    departments: tuple
    permission: str = ""
    roles: tuple = None


_ALL_DEPARTMENTS = tuple(Department.values)

NAVIGATION = (
    NavigationItem("Dashboard", "/dashboard", _ALL_DEPARTMENTS, "view_dashboard"),
    NavigationItem(
        "Clients", "/clients", (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER), "view_clients"
    ),
    NavigationItem(
        "Orders",
        "/orders",
        (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER, Department.DESIGNER),
        "view_orders",
    ),
    NavigationItem(
        "Delivery Tracking",
        "/delivery-tracking",
        (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER, Department.PRODUCTION_STAFF),
        "view_delivery_tracking",
    ),
    NavigationItem(
        "Payments", "/payments", (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER), "view_payments"
    ),
    NavigationItem("Jobs", "/jobs", _ALL_DEPARTMENTS, "view_jobs"),
    NavigationItem(
        "Design",
        "/design",
        (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER, Department.DESIGNER),
        "edit_design_jobs",
    ),
    NavigationItem("Designer Section", "/designer-section", (Department.SUPERADMIN, Department.DESIGNER), "upload_designs"),
    NavigationItem(
        "Products", "/products", (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER), "view_products"
    ),
    NavigationItem(
        "QR Scanner",
        "/scanner",
        (Department.PRODUCTION_STAFF, Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER),
        "scan_qr",
    ),
    NavigationItem(
        "Due Dates",
        "/due-dates",
        (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER, Department.DESIGNER),
        "view_due_dates",
    ),
    NavigationItem("Department Management", "/department-management", (Department.SUPERADMIN,), "manage_departments"),
)


def navigation_for(user):
    return [
        {"name": item.name, "href": item.href}
        for item in NAVIGATION
        if can_access(user, item.departments, item.roles)
        and (not item.permission or has_permission(user, item.permission))
    ]


class RolePermission(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability_map = getattr(view, "capability_map", {})
        action = getattr(view, "action", None) or request.method.lower()
        required = capability_map.get(action) or capability_map.get(request.method.lower()) or set()
        if not required:
            return True

        return all(has_permission(request.user, cap) for cap in required)
