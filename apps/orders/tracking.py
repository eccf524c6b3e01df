from django.db.models import Q

from apps.orders.models import Order, OrderStatus

TIMELINE_STEPS = (
    ("order_received", "Order Received"),
    ("design_approval", "Design Approval"),
    ("production", "Production"),
    ("quality_check", "Quality Check"),
    ("ready_for_delivery", "Ready for Delivery"),
    ("delivery", "Delivery"),
)

# order status -> index of the step currently in progress
CURRENT_STEP = {
    OrderStatus.PENDING.value: 0,
    OrderStatus.PAYMENT_PENDING.value: 0,
    OrderStatus.APPROVED.value: 0,
    OrderStatus.IN_DESIGN.value: 1,
    OrderStatus.DESIGN_COMPLETED.value: 2,
    OrderStatus.IN_PRODUCTION.value: 2,
    OrderStatus.IN_QC.value: 3,
    OrderStatus.READY_FOR_DELIVERY.value: 4,
    OrderStatus.IN_DELIVERY.value: 5,
}


def find_tracked_order(tracking_id):
    tracking_id = str(tracking_id or "").strip()
    if not tracking_id:
        return None
    return (
        Order.objects.select_related("client")
        .filter(Q(tracking_id__iexact=tracking_id) | Q(reference__iexact=tracking_id))
        .first()
    )


def build_timeline(order):
    status = str(order.status)
    if status == OrderStatus.COMPLETED:
        current = len(TIMELINE_STEPS)
    elif status == OrderStatus.CANCELLED:
        current = None
    else:
        current = CURRENT_STEP.get(status, 0)

    timeline = []
    for index, (key, label) in enumerate(TIMELINE_STEPS):
        if current is None:
            step_status = "pending"
        elif index < current:
            step_status = "completed"
        elif index == current:
            step_status = "current"
        else:
            step_status = "pending"
        timeline.append({"key": key, "label": label, "status": step_status})
    return timeline, current


def tracking_payload(order):
    timeline, current = build_timeline(order)
    current_step = TIMELINE_STEPS[current][1] if current is not None and current < len(TIMELINE_STEPS) else None
    return {
        "tracking_id": order.tracking_id,
        "reference": order.reference,
        "job_name": order.job_name,
        "client_name": order.client.name,
        "status": order.status,
        "status_label": order.get_status_display(),
        "current_step": current_step,
        "estimated_delivery": order.estimated_delivery,
        "delivery_method": order.delivery_method,
        "delivery_tracking_id": order.delivery_tracking_id,
        "courier": order.courier,
        "delivery_address": order.delivery_address,
        "delivered_at": order.delivered_at,
        "timeline": timeline,
    }
