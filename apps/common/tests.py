from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.accounts.models import PRODUCTION_ROLES, Department, UserRole
from apps.common.permissions import ROLE_PERMISSIONS, can_access, has_permission, navigation_for

User = get_user_model()


def make_user(username, department, role):
    return User.objects.create_user(username=username, password="secret123", department=department, role=role)


class PermissionTableTests(TestCase):
    def test_every_role_has_an_entry(self):
        self.assertEqual(set(ROLE_PERMISSIONS), set(UserRole.values))

    def test_superadmin_wildcard(self):
        boss = make_user("boss", Department.SUPERADMIN, UserRole.SUPERADMIN)
        self.assertTrue(has_permission(boss, "manage_departments"))
        self.assertTrue(has_permission(boss, "anything_at_all"))

    def test_admin_approves_but_does_not_create_orders(self):
        admin = make_user("admin", Department.ADMIN, UserRole.ADMIN)
        self.assertTrue(has_permission(admin, "approve_payments"))
        self.assertTrue(has_permission(admin, "skip_phases"))
        self.assertFalse(has_permission(admin, "create_orders"))

    def test_production_roles_share_floor_permissions(self):
        for role in PRODUCTION_ROLES:
            user = make_user(f"user-{role.value}", Department.PRODUCTION_STAFF, role)
            self.assertTrue(has_permission(user, "start_end_jobs"))
            self.assertTrue(has_permission(user, "scan_qr"))
            self.assertFalse(has_permission(user, "skip_phases"))

    def test_anonymous_has_nothing(self):
        self.assertFalse(has_permission(AnonymousUser(), "view_dashboard"))
        self.assertFalse(can_access(AnonymousUser(), tuple(Department.values)))
        self.assertEqual(navigation_for(AnonymousUser()), [])

    def test_can_access_checks_department_then_role(self):
        sewer = make_user("sew", Department.PRODUCTION_STAFF, UserRole.SEW)
        self.assertTrue(can_access(sewer, (Department.PRODUCTION_STAFF,)))
        self.assertFalse(can_access(sewer, (Department.ADMIN,)))
        self.assertFalse(can_access(sewer, (Department.PRODUCTION_STAFF,), (UserRole.QC,)))

    def test_navigation_follows_department(self):
        designer = make_user("designer", Department.DESIGNER, UserRole.DESIGNER)
        names = [item["name"] for item in navigation_for(designer)]
        self.assertEqual(names, ["Dashboard", "Orders", "Jobs", "Design", "Designer Section", "Due Dates"])

        boss = make_user("boss", Department.SUPERADMIN, UserRole.SUPERADMIN)
        self.assertIn("Department Management", [item["name"] for item in navigation_for(boss)])


class RolePermissionTests(APITestCase):
    def test_missing_capability_returns_forbidden_envelope(self):
        make_user("press", Department.PRODUCTION_STAFF, UserRole.PRESS)
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": "press", "password": "secret123"},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

        denied = self.client.get("/api/v1/payments/")
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.data["code"], "permission_denied")

    def test_anonymous_requests_are_rejected(self):
        response = self.client.get("/api/v1/orders/")
        self.assertEqual(response.status_code, 401)
