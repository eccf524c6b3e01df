import django.db.models.deletion
import uuid

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("clients", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reference", models.CharField(editable=False, max_length=20, unique=True)),
                ("tracking_id", models.CharField(editable=False, max_length=32, unique=True)),
                ("job_name", models.CharField(max_length=255)),
                (
                    "delivery_method",
                    models.CharField(
                        choices=[("self_collect", "Self Collect"), ("shipping", "Shipping")],
                        default="self_collect",
                        max_length=16,
                    ),
                ),
                ("shipping_address", models.TextField(blank=True)),
                ("download_link", models.URLField(blank=True, max_length=500)),
                ("remarks", models.TextField(blank=True)),
                ("design_deposit", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("design_payment_date", models.DateField(blank=True, null=True)),
                ("design_due_date", models.DateField(blank=True, null=True)),
                ("design_deposit_approved", models.BooleanField(default=False)),
                ("production_deposit", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("production_payment_date", models.DateField(blank=True, null=True)),
                ("production_due_date", models.DateField(blank=True, null=True)),
                ("production_deposit_approved", models.BooleanField(default=False)),
                ("balance_payment", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("balance_payment_date", models.DateField(blank=True, null=True)),
                ("balance_payment_approved", models.BooleanField(default=False)),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("skip_vip_agent", "Skip (VIP Agent)"),
                            ("skip_vip_end_user", "Skip (VIP End User)"),
                            ("deposit_design", "Deposit (Design)"),
                            ("deposit_production", "Deposit (Production)"),
                        ],
                        max_length=24,
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_paid", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("balance_to_pay", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("payment_pending", "Payment Pending"),
                            ("approved", "Approved"),
                            ("in_design", "In Design"),
                            ("design_completed", "Design Completed"),
                            ("in_production", "In Production"),
                            ("in_qc", "In QC"),
                            ("ready_for_delivery", "Ready for Delivery"),
                            ("in_delivery", "In Delivery"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=24,
                    ),
                ),
                ("courier", models.CharField(blank=True, max_length=80)),
                ("delivery_tracking_id", models.CharField(blank=True, max_length=80)),
                ("estimated_delivery", models.DateField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="clients.client",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
                    models.Index(fields=["client", "status"], name="order_client_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(design_deposit__gte=0), name="order_design_deposit_gte_zero"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(production_deposit__gte=0), name="order_production_deposit_gte_zero"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(balance_payment__gte=0), name="order_balance_payment_gte_zero"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLine",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("product_name", models.CharField(max_length=255)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("position", models.PositiveSmallIntegerField(default=0)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_lines",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name="orderline_quantity_gt_zero"),
                    models.CheckConstraint(
                        condition=models.Q(unit_price__gte=0), name="orderline_unit_price_gte_zero"
                    ),
                ],
            },
        ),
    ]
