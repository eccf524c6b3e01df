from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.accounts.models import Department, UserRole
from apps.audit.models import AuditLog
from apps.catalog.models import Product
from apps.clients.models import Client
from apps.orders.models import DeliveryMethod, Order, OrderStatus
from apps.orders.services import replace_lines

User = get_user_model()


class OrdersApiTestCase(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin", password="admin123", department=Department.ADMIN, role=UserRole.ADMIN
        )
        self.sales = User.objects.create_user(
            username="sales", password="sales123", department=Department.SALES_MANAGER, role=UserRole.SALES_MANAGER
        )
        self.printer = User.objects.create_user(
            username="print", password="print123", department=Department.PRODUCTION_STAFF, role=UserRole.PRINT
        )
        self.shirt = Product.objects.create(name="Premium Cotton T-Shirt", category="T-Shirts", base_price=Decimal("25.99"))
        self.hoodie = Product.objects.create(name="Fleece Hoodie", category="Hoodies", base_price=Decimal("45.99"))
        self.acme = Client.objects.create(
            name="ABC Corporation", phone="+60 12-345 6789", billing_address="Lot 123, Cyberjaya"
        )

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def make_order(self, job_name="Company Event Shirts", quantity=10, status=OrderStatus.PENDING, **fields):
        order = Order.objects.create(
            client=self.acme, job_name=job_name, created_by=self.sales, status=status, **fields
        )
        replace_lines(order, [{"product": self.shirt, "quantity": quantity}])
        return order


class OrderCreateTests(OrdersApiTestCase):
    def test_create_order_with_new_client_and_totals(self):
        self.auth_as("sales", "sales123")
        response = self.client.post(
            "/api/v1/orders/",
            {
                "job_name": "  Team Hoodies  ",
                "new_client": {"name": "XYZ Solutions", "phone": "+60198765432", "email": "info@xyz.com"},
                "design_deposit": "100.00",
                "payment_method": "deposit_design",
                "lines": [
                    {"product": str(self.shirt.id), "quantity": 10},
                    {"product": str(self.hoodie.id), "quantity": 2, "unit_price": "40.00"},
                    {"product_name": "Custom Patch", "quantity": 5, "unit_price": "3.50"},
                ],
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["job_name"], "Team Hoodies")
        self.assertEqual(response.data["client_name"], "XYZ Solutions")
        self.assertEqual(response.data["status"], OrderStatus.PENDING)
        self.assertEqual(response.data["subtotal"], "357.40")
        self.assertEqual(response.data["total_paid"], "100.00")
        self.assertEqual(response.data["balance_to_pay"], "257.40")
        self.assertEqual([line["product_name"] for line in response.data["lines"]], [
            "Premium Cotton T-Shirt",
            "Fleece Hoodie",
            "Custom Patch",
        ])
        self.assertTrue(response.data["reference"].startswith("ORD-"))
        self.assertTrue(response.data["tracking_id"].startswith("TRK-"))

        client = Client.objects.get(name="XYZ Solutions")
        self.assertTrue(AuditLog.objects.filter(action="clients.create", entity_id=str(client.id)).exists())
        self.assertTrue(AuditLog.objects.filter(action="orders.create", entity_id=response.data["id"]).exists())

    def test_create_order_reports_missing_fields(self):
        self.auth_as("sales", "sales123")
        response = self.client.post("/api/v1/orders/", {"job_name": " ", "lines": []}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("job_name", response.data["fields"])
        self.assertIn("client", response.data["fields"])
        self.assertIn("lines", response.data["fields"])
        self.assertFalse(Order.objects.exists())

    def test_create_order_rejects_zero_quantity(self):
        self.auth_as("sales", "sales123")
        response = self.client.post(
            "/api/v1/orders/",
            {
                "job_name": "Event Shirts",
                "client": str(self.acme.id),
                "lines": [{"product": str(self.shirt.id), "quantity": 0}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("lines", response.data["fields"])

    def test_new_client_needs_name_and_phone(self):
        self.auth_as("sales", "sales123")
        response = self.client.post(
            "/api/v1/orders/",
            {
                "job_name": "Event Shirts",
                "new_client": {"name": "", "phone": ""},
                "lines": [{"product": str(self.shirt.id), "quantity": 1}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("new_client", response.data["fields"])
        self.assertEqual(Client.objects.count(), 1)

    def test_production_staff_cannot_create_orders(self):
        self.auth_as("print", "print123")
        response = self.client.post("/api/v1/orders/", {"job_name": "Nope"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_update_lines_recalculates_totals(self):
        order = self.make_order(quantity=10)
        self.auth_as("sales", "sales123")
        response = self.client.patch(
            f"/api/v1/orders/{order.id}/",
            {"lines": [{"product": str(self.shirt.id), "quantity": 4}]},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["subtotal"], "103.96")
        self.assertTrue(AuditLog.objects.filter(action="orders.update", entity_id=str(order.id)).exists())


class OrderListTests(OrdersApiTestCase):
    def test_search_and_status_filters(self):
        self.make_order(job_name="Company Event Shirts")
        done = self.make_order(job_name="Launch Jerseys", status=OrderStatus.COMPLETED)
        self.auth_as("sales", "sales123")

        by_client = self.client.get("/api/v1/orders/", {"q": "abc corp"})
        self.assertEqual(by_client.status_code, 200)
        self.assertEqual(by_client.data["count"], 2)

        by_name = self.client.get("/api/v1/orders/?q=jerseys")
        self.assertEqual(by_name.data["count"], 1)

        delivered = self.client.get("/api/v1/orders/?status=delivered")
        self.assertEqual(delivered.data["count"], 1)
        self.assertEqual(delivered.data["results"][0]["id"], str(done.id))

        everything = self.client.get("/api/v1/orders/?status=all")
        self.assertEqual(everything.data["count"], 2)

        unknown = self.client.get("/api/v1/orders/?status=shipped-ish")
        self.assertEqual(unknown.data["count"], 0)

    def test_status_change_accepts_delivered_alias(self):
        order = self.make_order()
        self.auth_as("sales", "sales123")
        response = self.client.post(f"/api/v1/orders/{order.id}/status/", {"status": "Delivered"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], OrderStatus.COMPLETED)
        self.assertIsNotNone(response.data["delivered_at"])
        self.assertTrue(AuditLog.objects.filter(action="orders.status", entity_id=str(order.id)).exists())

    def test_status_change_rejects_unknown_status(self):
        order = self.make_order()
        self.auth_as("sales", "sales123")
        response = self.client.post(f"/api/v1/orders/{order.id}/status/", {"status": "shipped"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("status", response.data["fields"])

    def test_delete_is_limited_to_delete_permission(self):
        order = self.make_order()
        self.auth_as("sales", "sales123")
        self.assertEqual(self.client.delete(f"/api/v1/orders/{order.id}/").status_code, 403)

        self.auth_as("admin", "admin123")
        self.assertEqual(self.client.delete(f"/api/v1/orders/{order.id}/").status_code, 204)
        self.assertTrue(AuditLog.objects.filter(action="orders.delete", entity_id=str(order.id)).exists())

    def test_receipt_lists_lines_and_payments(self):
        order = self.make_order(quantity=4, design_deposit=Decimal("50.00"))
        self.auth_as("sales", "sales123")
        response = self.client.get(f"/api/v1/orders/{order.id}/receipt/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["client"]["name"], "ABC Corporation")
        self.assertEqual(response.data["client"]["address"], "Lot 123, Cyberjaya")
        self.assertEqual(response.data["subtotal"], "103.96")
        self.assertEqual([payment["stage"] for payment in response.data["payments"]], ["design", "production", "balance"])
        self.assertEqual(response.data["payments"][0]["amount"], "50.00")
        self.assertFalse(response.data["payments"][0]["approved"])


class PaymentApprovalTests(OrdersApiTestCase):
    def setUp(self):
        super().setUp()
        self.order = self.make_order(
            quantity=10, design_deposit=Decimal("100.00"), production_deposit=Decimal("120.00")
        )

    def test_approval_moves_status_and_leaves_totals_alone(self):
        self.auth_as("admin", "admin123")
        response = self.client.post(
            f"/api/v1/orders/{self.order.id}/approve-payment/", {"stage": "design"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["design_deposit_approved"])
        self.assertEqual(response.data["total_paid"], "220.00")
        self.assertEqual(response.data["balance_to_pay"], "39.90")
        self.assertEqual(response.data["status"], OrderStatus.APPROVED)
        self.assertTrue(AuditLog.objects.filter(action="orders.payment.approve", entity_id=str(self.order.id)).exists())

    def test_approving_twice_or_without_amount_fails(self):
        self.auth_as("admin", "admin123")
        url = f"/api/v1/orders/{self.order.id}/approve-payment/"
        self.client.post(url, {"stage": "design"}, format="json")

        again = self.client.post(url, {"stage": "design"}, format="json")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.data["code"], "invalid_payment")

        empty = self.client.post(url, {"stage": "balance"}, format="json")
        self.assertEqual(empty.status_code, 400)
        self.assertEqual(empty.data["code"], "invalid_payment")

    def test_rejecting_requires_reason_and_reverts_status(self):
        self.auth_as("admin", "admin123")
        self.client.post(f"/api/v1/orders/{self.order.id}/approve-payment/", {"stage": "design"}, format="json")
        url = f"/api/v1/orders/{self.order.id}/reject-payment/"

        missing = self.client.post(url, {"stage": "design"}, format="json")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.data["code"], "invalid_payment")

        rejected = self.client.post(url, {"stage": "design", "reason": "Transfer bounced"}, format="json")
        self.assertEqual(rejected.status_code, 200)
        self.assertFalse(rejected.data["design_deposit_approved"])
        self.assertEqual(rejected.data["total_paid"], "220.00")
        self.assertEqual(rejected.data["status"], OrderStatus.PAYMENT_PENDING)

    def test_sales_cannot_approve_payments(self):
        self.auth_as("sales", "sales123")
        response = self.client.post(
            f"/api/v1/orders/{self.order.id}/approve-payment/", {"stage": "design"}, format="json"
        )
        self.assertEqual(response.status_code, 403)
        self.order.refresh_from_db()
        self.assertFalse(self.order.design_deposit_approved)

    def test_payment_queue_lists_recorded_stages(self):
        self.auth_as("admin", "admin123")
        self.client.post(f"/api/v1/orders/{self.order.id}/approve-payment/", {"stage": "design"}, format="json")

        queue = self.client.get("/api/v1/payments/")
        self.assertEqual(queue.status_code, 200)
        self.assertEqual(queue.data["count"], 2)
        stages = {row["stage"]: row["status"] for row in queue.data["results"]}
        self.assertEqual(stages, {"design": "approved", "production": "pending"})

        pending = self.client.get("/api/v1/payments/?status=pending")
        self.assertEqual(pending.data["count"], 1)
        self.assertEqual(pending.data["results"][0]["amount"], "120.00")


class DeliveryTests(OrdersApiTestCase):
    def test_shipping_order_is_dispatched_then_delivered(self):
        order = self.make_order(
            status=OrderStatus.READY_FOR_DELIVERY,
            delivery_method=DeliveryMethod.SHIPPING,
            shipping_address="Unit 45, Plaza Business, Kuala Lumpur",
        )
        self.auth_as("admin", "admin123")

        early = self.client.post(f"/api/v1/orders/{order.id}/deliver/", {}, format="json")
        self.assertEqual(early.status_code, 400)
        self.assertEqual(early.data["code"], "invalid_state")

        dispatched = self.client.post(
            f"/api/v1/orders/{order.id}/dispatch/",
            {"courier": "J&T Express", "delivery_tracking_id": "JT123456789MY"},
            format="json",
        )
        self.assertEqual(dispatched.status_code, 200)
        self.assertEqual(dispatched.data["status"], OrderStatus.IN_DELIVERY)
        self.assertEqual(dispatched.data["courier"], "J&T Express")

        queue = self.client.get("/api/v1/deliveries/")
        self.assertEqual(queue.data["count"], 1)
        self.assertEqual(queue.data["results"][0]["delivery_address"], "Unit 45, Plaza Business, Kuala Lumpur")

        delivered = self.client.post(f"/api/v1/orders/{order.id}/deliver/", {}, format="json")
        self.assertEqual(delivered.status_code, 200)
        self.assertEqual(delivered.data["status"], OrderStatus.COMPLETED)
        self.assertIsNotNone(delivered.data["delivered_at"])

    def test_self_collect_orders_cannot_be_dispatched(self):
        order = self.make_order(status=OrderStatus.READY_FOR_DELIVERY)
        self.auth_as("sales", "sales123")

        response = self.client.post(
            f"/api/v1/orders/{order.id}/dispatch/",
            {"courier": "Pos Laju", "delivery_tracking_id": "PL1"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_state")

        collected = self.client.post(f"/api/v1/orders/{order.id}/deliver/", {}, format="json")
        self.assertEqual(collected.status_code, 200)
        self.assertEqual(collected.data["status"], OrderStatus.COMPLETED)

    def test_production_staff_can_view_but_not_update_deliveries(self):
        self.make_order(status=OrderStatus.READY_FOR_DELIVERY)
        order = self.make_order(status=OrderStatus.IN_PRODUCTION)
        self.auth_as("print", "print123")

        queue = self.client.get("/api/v1/deliveries/")
        self.assertEqual(queue.status_code, 200)
        self.assertEqual(queue.data["count"], 1)

        response = self.client.post(f"/api/v1/orders/{order.id}/deliver/", {}, format="json")
        self.assertEqual(response.status_code, 403)


class PublicTrackingTests(OrdersApiTestCase):
    def test_tracking_is_public_and_case_insensitive(self):
        order = self.make_order(status=OrderStatus.IN_PRODUCTION)
        response = self.client.get(f"/api/v1/public/tracking/{order.tracking_id.lower()}/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["reference"], order.reference)
        self.assertEqual(response.data["current_step"], "Production")
        self.assertEqual(
            [step["status"] for step in response.data["timeline"]],
            ["completed", "completed", "current", "pending", "pending", "pending"],
        )
        self.assertNotIn("subtotal", response.data)

    def test_tracking_by_order_reference(self):
        order = self.make_order(status=OrderStatus.COMPLETED)
        response = self.client.get(f"/api/v1/public/tracking/{order.reference}/")

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data["current_step"])
        self.assertTrue(all(step["status"] == "completed" for step in response.data["timeline"]))

    def test_cancelled_order_has_no_current_step(self):
        order = self.make_order(status=OrderStatus.CANCELLED)
        response = self.client.get(f"/api/v1/public/tracking/{order.tracking_id}/")
        self.assertTrue(all(step["status"] == "pending" for step in response.data["timeline"]))

    def test_unknown_tracking_id_is_not_found(self):
        response = self.client.get("/api/v1/public/tracking/TRK-1999-999/")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "not_found")
        self.assertEqual(response.data["detail"], "Order not found")


class DashboardTests(OrdersApiTestCase):
    def test_dashboard_summarises_orders_and_clients(self):
        self.make_order(design_deposit=Decimal("100.00"))
        self.make_order(status=OrderStatus.COMPLETED)
        self.auth_as("admin", "admin123")

        response = self.client.get("/api/v1/dashboard/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_orders"], 2)
        self.assertEqual(response.data["pending_orders"], 1)
        self.assertEqual(response.data["completed_orders"], 1)
        self.assertEqual(response.data["revenue"], Decimal("100.00"))
        self.assertEqual(response.data["pending_payments"], Decimal("159.90"))
        self.assertEqual(response.data["total_clients"], 1)
        statuses = {row["status"]: row["count"] for row in response.data["status_breakdown"]}
        self.assertEqual(statuses, {"completed": 1, "pending": 1})

    def test_dashboard_rejects_inverted_range(self):
        self.auth_as("admin", "admin123")
        response = self.client.get("/api/v1/dashboard/?date_from=2026-02-01&date_to=2026-01-01")
        self.assertEqual(response.status_code, 400)
        self.assertIn("date_from", response.data["fields"])


class DueDateTests(OrdersApiTestCase):
    def test_alerts_are_classified_by_urgency(self):
        today = timezone.localdate()
        self.make_order(
            job_name="Launch Jerseys",
            design_due_date=today - timedelta(days=1),
            production_due_date=today + timedelta(days=4),
        )
        self.make_order(job_name="Team Hoodies", production_due_date=today + timedelta(days=1))
        self.make_order(job_name="Tote Bags", production_due_date=today + timedelta(days=12))
        self.make_order(
            job_name="Shipped Already", production_due_date=today - timedelta(days=3), status=OrderStatus.COMPLETED
        )
        self.auth_as("admin", "admin123")

        response = self.client.get("/api/v1/due-dates/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 4)
        self.assertEqual(response.data["summary"], {"overdue": 1, "critical": 1, "warning": 1, "upcoming": 1})
        first = response.data["results"][0]
        self.assertEqual(first["type"], "design")
        self.assertTrue(first["is_overdue"])
        self.assertEqual(first["days_remaining"], -1)

        overdue = self.client.get("/api/v1/due-dates/?status=overdue")
        self.assertEqual(overdue.data["count"], 1)

        production = self.client.get("/api/v1/due-dates/?type=production&q=hoodies")
        self.assertEqual(production.data["count"], 1)
        self.assertEqual(production.data["results"][0]["status"], "critical")

    def test_design_alert_drops_once_design_is_done(self):
        today = timezone.localdate()
        self.make_order(status=OrderStatus.IN_PRODUCTION, design_due_date=today - timedelta(days=2))
        self.auth_as("admin", "admin123")

        response = self.client.get("/api/v1/due-dates/")
        self.assertEqual(response.data["count"], 0)

    def test_production_staff_cannot_see_due_dates(self):
        self.auth_as("print", "print123")
        response = self.client.get("/api/v1/due-dates/")
        self.assertEqual(response.status_code, 403)
