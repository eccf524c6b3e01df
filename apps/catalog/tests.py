from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.accounts.models import Department, UserRole
from apps.audit.models import AuditLog
from apps.catalog.models import Product

User = get_user_model()


class CatalogAuditTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="admin123", department=Department.ADMIN, role=UserRole.ADMIN
        )
        User.objects.create_user(
            username="sales", password="sales123", department=Department.SALES_MANAGER, role=UserRole.SALES_MANAGER
        )
        User.objects.create_user(
            username="print", password="print123", department=Department.PRODUCTION_STAFF, role=UserRole.PRINT
        )

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_product_create_update_delete_are_audited(self):
        self.auth_as("admin", "admin123")
        created = self.client.post(
            "/api/v1/products/",
            {"name": "Premium Cotton T-Shirt", "category": "t-shirts", "base_price": "25.99", "stock": 150},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        product_id = created.data["id"]
        self.assertEqual(created.data["category"], "T-Shirts")

        updated = self.client.patch(f"/api/v1/products/{product_id}/", {"base_price": "27.50"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["base_price"], "27.50")

        deleted = self.client.delete(f"/api/v1/products/{product_id}/")
        self.assertEqual(deleted.status_code, 204)

        self.assertTrue(AuditLog.objects.filter(action="catalog.product.create", entity_id=product_id).exists())
        update_log = AuditLog.objects.get(action="catalog.product.update", entity_id=product_id)
        self.assertEqual(update_log.payload["before"]["base_price"], "25.99")
        self.assertEqual(update_log.payload["after"]["base_price"], "27.50")
        self.assertTrue(AuditLog.objects.filter(action="catalog.product.delete", entity_id=product_id).exists())

    def test_negative_price_is_rejected(self):
        self.auth_as("admin", "admin123")
        response = self.client.post(
            "/api/v1/products/",
            {"name": "Canvas Tote Bag", "category": "Bags", "base_price": "-1.00"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("base_price", response.data["fields"])
        self.assertFalse(Product.objects.exists())

    def test_search_and_category_filters(self):
        Product.objects.create(name="Fleece Hoodie", category="Hoodies", base_price=Decimal("45.99"))
        Product.objects.create(name="Sports Jersey", category="Jerseys", base_price=Decimal("35.99"))
        Product.objects.create(
            name="Vintage Wash T-Shirt", category="T-Shirts", base_price=Decimal("28.99"), is_active=False
        )
        self.auth_as("sales", "sales123")

        by_name = self.client.get("/api/v1/products/?q=hoodie")
        self.assertEqual(by_name.status_code, 200)
        self.assertEqual(by_name.data["count"], 1)

        by_category = self.client.get("/api/v1/products/?category=jerseys")
        self.assertEqual(by_category.data["count"], 1)
        self.assertEqual(by_category.data["results"][0]["name"], "Sports Jersey")

        active = self.client.get("/api/v1/products/?is_active=true")
        self.assertEqual(active.data["count"], 2)

    def test_sales_can_view_but_not_manage_products(self):
        self.auth_as("sales", "sales123")
        response = self.client.post(
            "/api/v1/products/",
            {"name": "Cap", "category": "Hats", "base_price": "9.99"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_production_staff_cannot_see_products(self):
        self.auth_as("print", "print123")
        response = self.client.get("/api/v1/products/")
        self.assertEqual(response.status_code, 403)
