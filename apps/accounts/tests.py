from io import StringIO

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.accounts.models import Department, UserRole
from apps.accounts.session import SESSION_USER_KEY, IdentitySession
from apps.audit.models import AuditLog

User = get_user_model()


class ConsoleLoginTests(APITestCase):
    def setUp(self):
        call_command("seed_users", stdout=StringIO())

    def login(self, email, password=None):
        return self.client.post(
            "/api/v1/auth/login/",
            {"email": email, "password": settings.CONSOLE_SHARED_PASSWORD if password is None else password},
            format="json",
        )

    def test_seeded_identities_can_log_in(self):
        response = self.login("Sales@FazzTrack.com")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["user"]["username"], "sales")
        self.assertEqual(response.data["user"]["department"], Department.SALES_MANAGER)
        self.assertIn("create_orders", response.data["permissions"])
        self.assertIn("access", response.data)
        self.assertTrue(AuditLog.objects.filter(action="auth.login", entity_id=str(response.data["user"]["id"])).exists())

    def test_wrong_password_and_unknown_email_are_rejected(self):
        wrong = self.login("admin@fazztrack.com", "not-the-password")
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.data["detail"], "Invalid email or password")

        outsider = User.objects.create_user(
            username="outsider", email="outsider@example.com", password=settings.CONSOLE_SHARED_PASSWORD
        )
        unknown = self.login(outsider.email)
        self.assertEqual(unknown.status_code, 401)

    def test_inactive_identity_is_rejected(self):
        User.objects.filter(username="cut").update(is_active=False)
        response = self.login("cut@fazztrack.com")
        self.assertEqual(response.status_code, 401)

    def test_session_survives_until_logout(self):
        self.login("qc@fazztrack.com")

        me = self.client.get("/api/v1/auth/me/")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data["user"]["role"], UserRole.QC)
        self.assertEqual(
            [item["name"] for item in me.data["navigation"]],
            ["Dashboard", "Delivery Tracking", "Jobs", "QR Scanner"],
        )
        self.assertNotIn("view_orders", me.data["permissions"])

        logout = self.client.post("/api/v1/auth/logout/")
        self.assertEqual(logout.status_code, 204)
        self.assertEqual(self.client.get("/api/v1/auth/me/").status_code, 401)

    def test_session_identity_grants_api_access(self):
        self.login("designer@fazztrack.com")
        self.assertEqual(self.client.get("/api/v1/orders/").status_code, 200)
        self.assertEqual(self.client.get("/api/v1/clients/").status_code, 403)


class IdentitySessionTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="print",
            email="print@fazztrack.com",
            password="unused",
            department=Department.PRODUCTION_STAFF,
            role=UserRole.PRINT,
        )

    def test_authenticate_stores_identity(self):
        store = {}
        session = IdentitySession(store)
        user = session.authenticate(" PRINT@fazztrack.com ", settings.CONSOLE_SHARED_PASSWORD)

        self.assertEqual(user.pk, self.user.pk)
        self.assertTrue(session.is_authenticated)
        self.assertEqual(store[SESSION_USER_KEY]["email"], "print@fazztrack.com")
        self.assertEqual(store[SESSION_USER_KEY]["role"], "print")
        self.assertTrue(session.has_permission("scan_qr"))
        self.assertFalse(session.has_permission("approve_payments"))
        self.assertTrue(session.can_access((Department.PRODUCTION_STAFF,), (UserRole.PRINT,)))
        self.assertFalse(session.can_access((Department.PRODUCTION_STAFF,), (UserRole.QC,)))

    def test_init_restores_identity(self):
        store = {}
        IdentitySession(store).authenticate("print@fazztrack.com", settings.CONSOLE_SHARED_PASSWORD)

        restored = IdentitySession(store)
        self.assertEqual(restored.init().pk, self.user.pk)

    def test_init_drops_stale_identity(self):
        store = {SESSION_USER_KEY: {"id": self.user.pk + 1000}}
        session = IdentitySession(store)
        self.assertIsNone(session.init())
        self.assertNotIn(SESSION_USER_KEY, store)

        store = {SESSION_USER_KEY: "garbage"}
        self.assertIsNone(IdentitySession(store).init())
        self.assertNotIn(SESSION_USER_KEY, store)

    def test_clear_forgets_identity(self):
        store = {}
        session = IdentitySession(store)
        session.authenticate("print@fazztrack.com", settings.CONSOLE_SHARED_PASSWORD)
        session.clear()

        self.assertFalse(session.is_authenticated)
        self.assertEqual(store, {})
        self.assertFalse(session.has_permission("view_jobs"))


class UserManagementTests(APITestCase):
    def setUp(self):
        self.boss = User.objects.create_user(
            username="superadmin", password="super123", department=Department.SUPERADMIN, role=UserRole.SUPERADMIN
        )
        self.admin = User.objects.create_user(
            username="admin", password="admin123", department=Department.ADMIN, role=UserRole.ADMIN
        )
        self.sewer = User.objects.create_user(
            username="sew",
            email="sew@fazztrack.com",
            password="sew123",
            department=Department.PRODUCTION_STAFF,
            role=UserRole.SEW,
        )

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_superadmin_adds_production_staff(self):
        self.auth_as("superadmin", "super123")
        response = self.client.post(
            "/api/v1/users/",
            {
                "email": "Press2@FazzTrack.com",
                "first_name": "Second",
                "last_name": "Presser",
                "department": Department.PRODUCTION_STAFF,
                "role": UserRole.PRESS,
                "password": "press456",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["username"], "press2")
        self.assertEqual(response.data["email"], "press2@fazztrack.com")
        self.assertEqual(response.data["name"], "Second Presser")
        self.assertNotIn("password", response.data)
        self.assertTrue(User.objects.get(username="press2").check_password("press456"))
        self.assertTrue(AuditLog.objects.filter(action="accounts.user.create", entity_id=response.data["id"]).exists())

    def test_department_and_role_must_agree(self):
        self.auth_as("superadmin", "super123")
        wrong_floor = self.client.post(
            "/api/v1/users/",
            {"email": "x@fazztrack.com", "department": Department.PRODUCTION_STAFF, "role": UserRole.DESIGNER},
            format="json",
        )
        self.assertEqual(wrong_floor.status_code, 400)
        self.assertIn("role", wrong_floor.data["fields"])

        wrong_office = self.client.patch(
            f"/api/v1/users/{self.sewer.id}/", {"department": Department.SALES_MANAGER}, format="json"
        )
        self.assertEqual(wrong_office.status_code, 400)

    def test_move_and_deactivate_user(self):
        self.auth_as("superadmin", "super123")
        moved = self.client.patch(
            f"/api/v1/users/{self.sewer.id}/",
            {"department": Department.DESIGNER, "role": UserRole.DESIGNER, "is_active": False},
            format="json",
        )

        self.assertEqual(moved.status_code, 200)
        self.assertEqual(moved.data["department"], Department.DESIGNER)
        self.assertFalse(moved.data["is_active"])
        self.assertTrue(AuditLog.objects.filter(action="accounts.user.update", entity_id=str(self.sewer.id)).exists())

        inactive = self.client.get("/api/v1/users/?is_active=false")
        self.assertEqual([user["username"] for user in inactive.data["results"]], ["sew"])

    def test_duplicate_email_and_self_deactivation_are_rejected(self):
        self.auth_as("superadmin", "super123")
        duplicate = self.client.post(
            "/api/v1/users/",
            {"email": "SEW@fazztrack.com", "username": "sew2", "department": Department.ADMIN, "role": UserRole.ADMIN},
            format="json",
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertIn("email", duplicate.data["fields"])

        own = self.client.patch(f"/api/v1/users/{self.boss.id}/", {"is_active": False}, format="json")
        self.assertEqual(own.status_code, 400)
        self.boss.refresh_from_db()
        self.assertTrue(self.boss.is_active)

    def test_only_department_managers_reach_users(self):
        self.auth_as("admin", "admin123")
        self.assertEqual(self.client.get("/api/v1/users/").status_code, 403)

        self.auth_as("sew", "sew123")
        response = self.client.post(
            "/api/v1/users/",
            {"email": "y@fazztrack.com", "department": Department.ADMIN, "role": UserRole.ADMIN},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
