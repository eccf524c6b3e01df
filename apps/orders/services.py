import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.orders.models import (
    CENT,
    STAGE_FIELDS,
    DeliveryMethod,
    OrderLine,
    OrderStatus,
    PaymentStage,
    normalize_status,
    status_rank,
)
from apps.production.models import JobStatus, JobType, PhaseKind, PhaseStatus

logger = logging.getLogger(__name__)


def _audit_status(order, previous, actor, reason=""):
    record_audit(
        actor=actor,
        action="orders.status",
        entity_type="order",
        entity_id=order.id,
        summary=f"Order {order.reference} moved to {order.get_status_display()}",
        payload={"from": previous, "to": order.status, "reason": reason},
    )


def change_status(order, status, *, actor):
    """Explicit status transition; any enum value is accepted, last writer wins."""
    status = normalize_status(status)
    previous = order.status
    if previous == status:
        return order
    order.status = status
    fields = ["status", "updated_at"]
    if status == OrderStatus.COMPLETED and order.delivered_at is None:
        order.delivered_at = timezone.now()
        fields.append("delivered_at")
    order.save(update_fields=fields)
    _audit_status(order, previous, actor)
    logger.info("order %s status %s -> %s", order.reference, previous, status)
    return order


def advance_status(order, target, *, actor=None, reason=""):
    """Move an order forward along the pipeline; returns True when the status changed."""
    target = normalize_status(target)
    if order.is_closed or target == OrderStatus.CANCELLED:
        return False
    if status_rank(target) <= status_rank(order.status):
        return False
    previous = order.status
    order.status = target
    order.save(update_fields=["status", "updated_at"])
    _audit_status(order, previous, actor, reason)
    logger.info("order %s advanced %s -> %s (%s)", order.reference, previous, target, reason or "manual")
    return True


def sync_production_status(order, *, job, phase=None, actor=None):
    """Reflect a job event on its order: design, production, QC and readiness."""
    if order.is_closed:
        return False

    if job.job_type == JobType.DESIGN:
        if job.status == JobStatus.COMPLETED:
            return advance_status(order, OrderStatus.DESIGN_COMPLETED, actor=actor, reason=f"{job.reference} completed")
        if job.status == JobStatus.IN_PROGRESS:
            return advance_status(order, OrderStatus.IN_DESIGN, actor=actor, reason=f"{job.reference} started")
        return False

    changed = False
    if job.status == JobStatus.IN_PROGRESS:
        changed = advance_status(order, OrderStatus.IN_PRODUCTION, actor=actor, reason=f"{job.reference} started")
        if phase is not None and phase.kind == PhaseKind.QC and phase.status == PhaseStatus.IN_PROGRESS:
            changed = advance_status(order, OrderStatus.IN_QC, actor=actor, reason=f"{job.reference} in QC") or changed

    production_jobs = order.jobs.exclude(job_type=JobType.DESIGN)
    if production_jobs.exists() and not production_jobs.exclude(status=JobStatus.COMPLETED).exists():
        changed = (
            advance_status(order, OrderStatus.READY_FOR_DELIVERY, actor=actor, reason="production completed") or changed
        )
    return changed


def replace_lines(order, lines):
    order.lines.all().delete()
    created = []
    for position, line in enumerate(lines):
        product = line.get("product")
        unit_price = line.get("unit_price")
        if unit_price is None:
            unit_price = product.base_price if product else Decimal("0.00")
        created.append(
            OrderLine.objects.create(
                order=order,
                product=product,
                product_name=line.get("product_name") or (product.name if product else ""),
                quantity=line["quantity"],
                unit_price=Decimal(unit_price).quantize(CENT),
                position=position,
            )
        )
    order.recalculate_totals(created)
    order.save(update_fields=["subtotal", "total_paid", "balance_to_pay", "updated_at"])
    return created


def _stage(stage):
    value = str(stage or "").strip().lower()
    if value not in PaymentStage.values:
        raise ValueError(f"Unknown payment stage: {stage}")
    return value


def approve_payment(order, stage, *, actor):
    stage = _stage(stage)
    amount_field, approved_field, _, _ = STAGE_FIELDS[stage]
    if getattr(order, amount_field) <= 0:
        raise ValueError("There is no payment recorded for this stage.")
    if getattr(order, approved_field):
        raise ValueError("Payment was already approved.")

    with transaction.atomic():
        setattr(order, approved_field, True)
        order.save(update_fields=[approved_field, "updated_at"])
        record_audit(
            actor=actor,
            action="orders.payment.approve",
            entity_type="order",
            entity_id=order.id,
            summary=f"{PaymentStage(stage).label} approved for {order.reference}",
            payload={"stage": stage, "amount": str(getattr(order, amount_field))},
        )
        if order.status in (OrderStatus.PENDING, OrderStatus.PAYMENT_PENDING):
            change_status(order, OrderStatus.APPROVED, actor=actor)
    return order


def reject_payment(order, stage, *, reason, actor):
    stage = _stage(stage)
    reason = str(reason or "").strip()
    if not reason:
        raise ValueError("A rejection reason is required.")
    _, approved_field, _, _ = STAGE_FIELDS[stage]

    with transaction.atomic():
        setattr(order, approved_field, False)
        order.save(update_fields=[approved_field, "updated_at"])
        record_audit(
            actor=actor,
            action="orders.payment.reject",
            entity_type="order",
            entity_id=order.id,
            summary=f"{PaymentStage(stage).label} rejected for {order.reference}",
            payload={"stage": stage, "reason": reason},
        )
        if order.status in (OrderStatus.PENDING, OrderStatus.APPROVED):
            change_status(order, OrderStatus.PAYMENT_PENDING, actor=actor)
    return order


def dispatch_order(order, *, courier, delivery_tracking_id, actor, estimated_delivery=None):
    if order.delivery_method != DeliveryMethod.SHIPPING:
        raise ValueError("Only shipping orders can be dispatched.")
    if order.status != OrderStatus.READY_FOR_DELIVERY:
        raise ValueError("Only orders ready for delivery can be dispatched.")
    courier = str(courier or "").strip()
    delivery_tracking_id = str(delivery_tracking_id or "").strip()
    if not courier or not delivery_tracking_id:
        raise ValueError("Courier and delivery tracking id are required.")

    with transaction.atomic():
        order.courier = courier
        order.delivery_tracking_id = delivery_tracking_id
        order.estimated_delivery = estimated_delivery
        order.save(update_fields=["courier", "delivery_tracking_id", "estimated_delivery", "updated_at"])
        change_status(order, OrderStatus.IN_DELIVERY, actor=actor)
    return order


def mark_delivered(order, *, actor):
    expected = (
        OrderStatus.IN_DELIVERY if order.delivery_method == DeliveryMethod.SHIPPING else OrderStatus.READY_FOR_DELIVERY
    )
    if order.status != expected:
        raise ValueError(f"Order must be {expected.label.lower()} to be marked as delivered.")
    with transaction.atomic():
        change_status(order, OrderStatus.COMPLETED, actor=actor)
    return order


def payment_queue(orders):
    """One row per order stage with a recorded amount."""
    rows = []
    for order in orders:
        for stage in PaymentStage:
            amount_field, approved_field, date_field, due_field = STAGE_FIELDS[stage.value]
            amount = getattr(order, amount_field)
            if not amount or amount <= 0:
                continue
            rows.append(
                {
                    "order_id": str(order.id),
                    "reference": order.reference,
                    "job_name": order.job_name,
                    "client_name": order.client.name,
                    "stage": stage.value,
                    "stage_label": stage.label,
                    "amount": f"{amount:.2f}",
                    "payment_date": getattr(order, date_field),
                    "due_date": getattr(order, due_field) if due_field else None,
                    "status": "approved" if getattr(order, approved_field) else "pending",
                    "order_status": order.status,
                }
            )
    return rows
