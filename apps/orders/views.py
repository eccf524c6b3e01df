from django.db.models import Q
from rest_framework import generics, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.audit.services import record_audit
from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.orders import services
from apps.orders.models import Order, OrderStatus, normalize_status
from apps.orders.serializers import (
    DeliverySerializer,
    DispatchSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    PaymentDecisionSerializer,
    ReceiptSerializer,
)
from apps.orders.throttles import PublicTrackingAnonThrottle
from apps.orders.tracking import find_tracked_order, tracking_payload

DELIVERY_STATUSES = (OrderStatus.READY_FOR_DELIVERY, OrderStatus.IN_DELIVERY)


def _search(queryset, query):
    query = (query or "").strip()
    if not query:
        return queryset
    return queryset.filter(
        Q(job_name__icontains=query) | Q(reference__icontains=query) | Q(client__name__icontains=query)
    )


class OrderViewSet(viewsets.ModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_orders"],
        "retrieve": ["view_orders"],
        "create": ["create_orders"],
        "update": ["edit_orders"],
        "partial_update": ["edit_orders"],
        "destroy": ["delete_orders"],
        "status": ["edit_orders"],
        "approve_payment": ["approve_payments"],
        "reject_payment": ["approve_payments"],
        "receipt": ["view_orders"],
        "dispatch_order": ["update_delivery"],
        "deliver": ["update_delivery"],
    }

    def get_queryset(self):
        queryset = Order.objects.select_related("client", "created_by").prefetch_related("lines")
        queryset = _search(queryset, self.request.query_params.get("q"))
        order_status = self.request.query_params.get("status")
        if order_status and order_status.strip().lower() != "all":
            try:
                queryset = queryset.filter(status=normalize_status(order_status))
            except ValueError:
                queryset = queryset.none()
        return queryset.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "list":
            return OrderListSerializer
        return OrderSerializer

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="orders.delete",
            entity_type="order",
            entity_id=instance.id,
            summary=f"Order {instance.reference} deleted",
            payload={"reference": instance.reference, "job_name": instance.job_name},
        )
        super().perform_destroy(instance)

    def _detail(self, order):
        return Response(OrderSerializer(order, context=self.get_serializer_context()).data, status=200)

    @action(detail=True, methods=["post"])
    def status(self, request, pk=None):
        order = self.get_object()
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.change_status(order, serializer.validated_data["status"], actor=request.user)
        return self._detail(order)

    @action(detail=True, methods=["post"], url_path="approve-payment")
    def approve_payment(self, request, pk=None):
        order = self.get_object()
        serializer = PaymentDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.approve_payment(order, serializer.validated_data["stage"], actor=request.user)
        except ValueError as exc:
            return error_response("invalid_payment", exc, 400)
        return self._detail(order)

    @action(detail=True, methods=["post"], url_path="reject-payment")
    def reject_payment(self, request, pk=None):
        order = self.get_object()
        serializer = PaymentDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.reject_payment(
                order,
                serializer.validated_data["stage"],
                reason=serializer.validated_data["reason"],
                actor=request.user,
            )
        except ValueError as exc:
            return error_response("invalid_payment", exc, 400)
        return self._detail(order)

    @action(detail=True, methods=["get"])
    def receipt(self, request, pk=None):
        return Response(ReceiptSerializer(self.get_object()).data)

    @action(detail=True, methods=["post"], url_path="dispatch")
    def dispatch_order(self, request, pk=None):
        order = self.get_object()
        serializer = DispatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.dispatch_order(order, actor=request.user, **serializer.validated_data)
        except ValueError as exc:
            return error_response("invalid_state", exc, 400)
        return self._detail(order)

    @action(detail=True, methods=["post"])
    def deliver(self, request, pk=None):
        order = self.get_object()
        try:
            services.mark_delivered(order, actor=request.user)
        except ValueError as exc:
            return error_response("invalid_state", exc, 400)
        return self._detail(order)


class PaymentQueueView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_payments"]}

    def get_queryset(self):
        queryset = Order.objects.select_related("client").order_by("-created_at")
        return _search(queryset, self.request.query_params.get("q"))

    def get(self, request, *args, **kwargs):
        rows = services.payment_queue(self.get_queryset())
        payment_status = (request.query_params.get("status") or "").strip().lower()
        if payment_status and payment_status != "all":
            rows = [row for row in rows if row["status"] == payment_status]
        page = self.paginate_queryset(rows)
        return self.get_paginated_response(page)


class DeliveryQueueView(generics.ListAPIView):
    serializer_class = DeliverySerializer
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_delivery_tracking"]}

    def get_queryset(self):
        queryset = Order.objects.select_related("client").filter(status__in=DELIVERY_STATUSES)
        delivery_status = self.request.query_params.get("status")
        if delivery_status and delivery_status.strip().lower() != "all":
            queryset = queryset.filter(status=delivery_status.strip().lower())
        return _search(queryset, self.request.query_params.get("q")).order_by("estimated_delivery", "-updated_at")


class PublicTrackingView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicTrackingAnonThrottle]

    def get(self, request, tracking_id):
        order = find_tracked_order(tracking_id)
        if order is None:
            return error_response("not_found", "Order not found", 404)
        return Response(tracking_payload(order))
