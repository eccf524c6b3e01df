from decimal import Decimal

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from rest_framework import viewsets

from apps.audit.services import record_audit
from apps.clients.models import Client, normalize_phone
from apps.clients.serializers import ClientSerializer
from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission


class ClientViewSet(viewsets.ModelViewSet):
    serializer_class = ClientSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_clients"],
        "retrieve": ["view_clients"],
        "create": ["create_clients"],
        "partial_update": ["edit_clients"],
        "update": ["edit_clients"],
        "destroy": ["delete_clients"],
    }

    def get_queryset(self):
        queryset = Client.objects.annotate(
            total_orders=Count("orders", distinct=True),
            total_spent=Coalesce(
                Sum("orders__total_paid"),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
        ).order_by("name")
        query = self.request.query_params.get("q")
        if query:
            query = query.strip()
            condition = Q(name__icontains=query) | Q(email__icontains=query) | Q(phone__icontains=query)
            normalized = normalize_phone(query)
            if normalized.isdigit():
                condition |= Q(phone_normalized__icontains=normalized)
            queryset = queryset.filter(condition)

        is_active = self.request.query_params.get("is_active")
        if is_active is not None:
            normalized_flag = is_active.strip().lower()
            if normalized_flag in {"1", "true", "yes"}:
                queryset = queryset.filter(is_active=True)
            elif normalized_flag in {"0", "false", "no"}:
                queryset = queryset.filter(is_active=False)
        return queryset

    def perform_create(self, serializer):
        client = serializer.save()
        record_audit(
            actor=self.request.user,
            action="clients.create",
            entity_type="client",
            entity_id=client.id,
            summary=f"New client {client.name} added",
            payload={"name": client.name, "phone": client.phone},
        )

    def perform_update(self, serializer):
        client = serializer.save()
        record_audit(
            actor=self.request.user,
            action="clients.update",
            entity_type="client",
            entity_id=client.id,
            summary=f"Client {client.name} updated",
            payload={"fields": sorted(serializer.validated_data.keys())},
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="clients.delete",
            entity_type="client",
            entity_id=instance.id,
            summary=f"Client {instance.name} removed",
            payload={"name": instance.name},
        )
        super().perform_destroy(instance)

    def destroy(self, request, *args, **kwargs):
        client = self.get_object()
        if client.orders.exists():
            return error_response("client_has_orders", "Client still has orders and cannot be deleted.", 400)
        return super().destroy(request, *args, **kwargs)
