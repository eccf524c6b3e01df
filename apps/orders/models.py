import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

CENT = Decimal("0.01")


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAYMENT_PENDING = "payment_pending", "Payment Pending"
    APPROVED = "approved", "Approved"
    IN_DESIGN = "in_design", "In Design"
    DESIGN_COMPLETED = "design_completed", "Design Completed"
    IN_PRODUCTION = "in_production", "In Production"
    IN_QC = "in_qc", "In QC"
    READY_FOR_DELIVERY = "ready_for_delivery", "Ready for Delivery"
    IN_DELIVERY = "in_delivery", "In Delivery"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


# "delivered" was used interchangeably with "completed" by the delivery screens.
STATUS_ALIASES = {"delivered": OrderStatus.COMPLETED}

STATUS_PIPELINE = (
    OrderStatus.PENDING,
    OrderStatus.PAYMENT_PENDING,
    OrderStatus.APPROVED,
    OrderStatus.IN_DESIGN,
    OrderStatus.DESIGN_COMPLETED,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.IN_QC,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.IN_DELIVERY,
    OrderStatus.COMPLETED,
)

CLOSED_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


def normalize_status(value):
    normalized = str(value or "").strip().lower()
    normalized = STATUS_ALIASES.get(normalized, normalized)
    if normalized not in OrderStatus.values:
        raise ValueError(f"Unknown order status: {value}")
    return OrderStatus(normalized)


def status_rank(status):
    if status == OrderStatus.CANCELLED:
        return len(STATUS_PIPELINE)
    return STATUS_PIPELINE.index(status)


class DeliveryMethod(models.TextChoices):
    SELF_COLLECT = "self_collect", "Self Collect"
    SHIPPING = "shipping", "Shipping"


class PaymentMethod(models.TextChoices):
    SKIP_VIP_AGENT = "skip_vip_agent", "Skip (VIP Agent)"
    SKIP_VIP_END_USER = "skip_vip_end_user", "Skip (VIP End User)"
    DEPOSIT_DESIGN = "deposit_design", "Deposit (Design)"
    DEPOSIT_PRODUCTION = "deposit_production", "Deposit (Production)"


class PaymentStage(models.TextChoices):
    DESIGN = "design", "Design Deposit"
    PRODUCTION = "production", "Production Deposit"
    BALANCE = "balance", "Balance Payment"


# stage -> (amount field, approved flag, payment date, due date)
STAGE_FIELDS = {
    PaymentStage.DESIGN.value: ("design_deposit", "design_deposit_approved", "design_payment_date", "design_due_date"),
    PaymentStage.PRODUCTION.value: (
        "production_deposit",
        "production_deposit_approved",
        "production_payment_date",
        "production_due_date",
    ),
    PaymentStage.BALANCE.value: ("balance_payment", "balance_payment_approved", "balance_payment_date", None),
}

# Deposits count toward total_paid once recorded; approval only drives the order status.
DEPOSIT_STAGES = (PaymentStage.DESIGN.value, PaymentStage.PRODUCTION.value)


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reference = models.CharField(max_length=20, unique=True, editable=False)
    tracking_id = models.CharField(max_length=32, unique=True, editable=False)
    job_name = models.CharField(max_length=255)
    client = models.ForeignKey("clients.Client", on_delete=models.PROTECT, related_name="orders")
    delivery_method = models.CharField(max_length=16, choices=DeliveryMethod.choices, default=DeliveryMethod.SELF_COLLECT)
    shipping_address = models.TextField(blank=True)
    download_link = models.URLField(max_length=500, blank=True)
    remarks = models.TextField(blank=True)

    design_deposit = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    design_payment_date = models.DateField(null=True, blank=True)
    design_due_date = models.DateField(null=True, blank=True)
    design_deposit_approved = models.BooleanField(default=False)

    production_deposit = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    production_payment_date = models.DateField(null=True, blank=True)
    production_due_date = models.DateField(null=True, blank=True)
    production_deposit_approved = models.BooleanField(default=False)

    balance_payment = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    balance_payment_date = models.DateField(null=True, blank=True)
    balance_payment_approved = models.BooleanField(default=False)

    payment_method = models.CharField(max_length=24, choices=PaymentMethod.choices, blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    balance_to_pay = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    status = models.CharField(max_length=24, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    courier = models.CharField(max_length=80, blank=True)
    delivery_tracking_id = models.CharField(max_length=80, blank=True)
    estimated_delivery = models.DateField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="orders_created")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["client", "status"], name="order_client_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(design_deposit__gte=0), name="order_design_deposit_gte_zero"),
            models.CheckConstraint(
                condition=models.Q(production_deposit__gte=0), name="order_production_deposit_gte_zero"
            ),
            models.CheckConstraint(condition=models.Q(balance_payment__gte=0), name="order_balance_payment_gte_zero"),
        ]

    def save(self, *args, **kwargs):
        if not self.reference:
            self.reference = self._next_code("reference", "ORD-{:03d}")
        if not self.tracking_id:
            self.tracking_id = self._next_code("tracking_id", f"TRK-{timezone.now().year}-" + "{:03d}")
        super().save(*args, **kwargs)

    @classmethod
    def _next_code(cls, field, pattern):
        number = cls.objects.count() + 1
        while cls.objects.filter(**{field: pattern.format(number)}).exists():
            number += 1
        return pattern.format(number)

    @property
    def is_closed(self):
        return self.status in CLOSED_STATUSES

    @property
    def delivery_address(self):
        if self.delivery_method != DeliveryMethod.SHIPPING:
            return ""
        return self.shipping_address or self.client.address

    def stage_amount(self, stage):
        return getattr(self, STAGE_FIELDS[str(stage)][0])

    def recalculate_totals(self, lines=None):
        """subtotal = sum(qty * unit price); total_paid = recorded design + production deposits."""
        if lines is None:
            lines = self.lines.all()
        subtotal = sum((line.quantity * line.unit_price for line in lines), Decimal("0"))
        paid = sum(
            (self.stage_amount(stage) for stage in DEPOSIT_STAGES),
            Decimal("0"),
        )
        self.subtotal = Decimal(subtotal).quantize(CENT)
        self.total_paid = Decimal(paid).quantize(CENT)
        self.balance_to_pay = (self.subtotal - self.total_paid).quantize(CENT)

    def __str__(self):
        return f"{self.reference} - {self.job_name}"


class OrderLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="lines")
    product = models.ForeignKey("catalog.Product", on_delete=models.SET_NULL, null=True, blank=True, related_name="order_lines")
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name="orderline_quantity_gt_zero"),
            models.CheckConstraint(condition=models.Q(unit_price__gte=0), name="orderline_unit_price_gte_zero"),
        ]

    @property
    def total_price(self):
        return (self.quantity * self.unit_price).quantize(CENT)
