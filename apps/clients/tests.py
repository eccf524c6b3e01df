from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.accounts.models import Department, UserRole
from apps.audit.models import AuditLog
from apps.clients.models import Client
from apps.orders.models import Order

User = get_user_model()


class ClientApiTests(APITestCase):
    def setUp(self):
        self.superadmin = User.objects.create_user(
            username="superadmin", password="super123", department=Department.SUPERADMIN, role=UserRole.SUPERADMIN
        )
        self.sales = User.objects.create_user(
            username="sales", password="sales123", department=Department.SALES_MANAGER, role=UserRole.SALES_MANAGER
        )
        User.objects.create_user(
            username="designer", password="design123", department=Department.DESIGNER, role=UserRole.DESIGNER
        )

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_create_requires_name_and_phone(self):
        self.auth_as("sales", "sales123")
        response = self.client.post("/api/v1/clients/", {"name": " ", "phone": ""}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("name", response.data["fields"])
        self.assertIn("phone", response.data["fields"])

        created = self.client.post(
            "/api/v1/clients/",
            {"name": "ABC Corporation", "phone": "+60 12-345 6789", "email": "contact@abc-corp.com"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.data["total_orders"], 0)
        self.assertEqual(created.data["total_spent"], "0.00")
        self.assertTrue(AuditLog.objects.filter(action="clients.create", entity_id=created.data["id"]).exists())

    def test_search_matches_phone_digits(self):
        Client.objects.create(name="ABC Corporation", phone="+60 12-345 6789")
        Client.objects.create(name="XYZ Solutions", phone="+60198765432")
        self.auth_as("sales", "sales123")

        response = self.client.get("/api/v1/clients/?q=123456789")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["name"], "ABC Corporation")

        by_name = self.client.get("/api/v1/clients/?q=xyz")
        self.assertEqual(by_name.data["count"], 1)

    def test_totals_reflect_orders(self):
        client = Client.objects.create(name="Tech Startup Inc", phone="+60187654321")
        Order.objects.create(client=client, job_name="Launch Jerseys", created_by=self.sales, total_paid=Decimal("150.00"))
        Order.objects.create(client=client, job_name="Reprint", created_by=self.sales, total_paid=Decimal("49.50"))
        self.auth_as("sales", "sales123")

        response = self.client.get(f"/api/v1/clients/{client.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_orders"], 2)
        self.assertEqual(response.data["total_spent"], "199.50")

    def test_update_is_audited(self):
        client = Client.objects.create(name="XYZ Solutions", phone="+60198765432")
        self.auth_as("sales", "sales123")
        response = self.client.patch(
            f"/api/v1/clients/{client.id}/", {"shipping_address": "Unit 45, Plaza Business"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["address"], "Unit 45, Plaza Business")
        self.assertTrue(AuditLog.objects.filter(action="clients.update", entity_id=str(client.id)).exists())

    def test_delete_is_blocked_while_client_has_orders(self):
        client = Client.objects.create(name="ABC Corporation", phone="+60123456789")
        order = Order.objects.create(client=client, job_name="Event Shirts", created_by=self.sales)
        self.auth_as("superadmin", "super123")

        blocked = self.client.delete(f"/api/v1/clients/{client.id}/")
        self.assertEqual(blocked.status_code, 400)
        self.assertEqual(blocked.data["code"], "client_has_orders")

        order.delete()
        deleted = self.client.delete(f"/api/v1/clients/{client.id}/")
        self.assertEqual(deleted.status_code, 204)
        self.assertTrue(AuditLog.objects.filter(action="clients.delete", entity_id=str(client.id)).exists())

    def test_sales_cannot_delete_and_designer_cannot_list(self):
        client = Client.objects.create(name="ABC Corporation", phone="+60123456789")
        self.auth_as("sales", "sales123")
        self.assertEqual(self.client.delete(f"/api/v1/clients/{client.id}/").status_code, 403)

        self.auth_as("designer", "design123")
        self.assertEqual(self.client.get("/api/v1/clients/").status_code, 403)
