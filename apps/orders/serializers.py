from django.db import transaction
from rest_framework import serializers

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.clients.models import Client
from apps.clients.serializers import NewClientSerializer
from apps.orders.models import STAGE_FIELDS, Order, OrderLine, PaymentStage, normalize_status
from apps.orders.services import replace_lines

ORDER_READ_ONLY_FIELDS = [
    "id",
    "reference",
    "tracking_id",
    "design_deposit_approved",
    "production_deposit_approved",
    "balance_payment_approved",
    "subtotal",
    "total_paid",
    "balance_to_pay",
    "status",
    "courier",
    "delivery_tracking_id",
    "estimated_delivery",
    "delivered_at",
    "created_by",
    "created_at",
    "updated_at",
]


class OrderLineSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False, allow_null=True)
    product_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    total_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderLine
        fields = ["id", "product", "product_name", "quantity", "unit_price", "total_price"]
        read_only_fields = ["id", "total_price"]

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0.")
        return value

    def validate(self, attrs):
        product = attrs.get("product")
        if product is None and not attrs.get("product_name", "").strip():
            raise serializers.ValidationError({"product": "Select a product or enter an item name."})
        if product is None and attrs.get("unit_price") is None:
            raise serializers.ValidationError({"unit_price": "Custom items need a unit price."})
        return attrs


class OrderSerializer(serializers.ModelSerializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), required=False, allow_null=True)
    client_name = serializers.CharField(source="client.name", read_only=True)
    new_client = NewClientSerializer(write_only=True, required=False)
    created_by_name = serializers.CharField(source="created_by.display_name", read_only=True)
    lines = OrderLineSerializer(many=True, required=False)

    class Meta:
        model = Order
        fields = [
            "id",
            "reference",
            "tracking_id",
            "job_name",
            "client",
            "client_name",
            "new_client",
            "delivery_method",
            "shipping_address",
            "download_link",
            "remarks",
            "design_deposit",
            "design_payment_date",
            "design_due_date",
            "design_deposit_approved",
            "production_deposit",
            "production_payment_date",
            "production_due_date",
            "production_deposit_approved",
            "balance_payment",
            "balance_payment_date",
            "balance_payment_approved",
            "payment_method",
            "subtotal",
            "total_paid",
            "balance_to_pay",
            "status",
            "courier",
            "delivery_tracking_id",
            "estimated_delivery",
            "delivered_at",
            "created_by",
            "created_by_name",
            "created_at",
            "updated_at",
            "lines",
        ]
        read_only_fields = ORDER_READ_ONLY_FIELDS
        extra_kwargs = {
            "job_name": {"required": False, "allow_blank": True},
            "design_deposit": {"min_value": 0},
            "production_deposit": {"min_value": 0},
            "balance_payment": {"min_value": 0},
        }

    def validate(self, attrs):
        creating = self.instance is None
        errors = {}

        if creating or "job_name" in attrs:
            job_name = attrs.get("job_name", "").strip()
            if not job_name:
                errors["job_name"] = "Job name is required."
            attrs["job_name"] = job_name

        if creating and not attrs.get("client") and not attrs.get("new_client"):
            errors["client"] = "Select an existing client or add a new one."

        if (creating or "lines" in attrs) and not attrs.get("lines"):
            errors["lines"] = "Add at least one product line."

        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def _resolve_client(self, validated_data):
        new_client = validated_data.pop("new_client", None)
        if new_client:
            return Client.objects.create(**new_client), True
        return validated_data.pop("client", None), False

    def create(self, validated_data):
        request = self.context["request"]
        lines = validated_data.pop("lines")
        with transaction.atomic():
            client, client_created = self._resolve_client(validated_data)
            if client_created:
                record_audit(
                    actor=request.user,
                    action="clients.create",
                    entity_type="client",
                    entity_id=client.id,
                    summary=f"New client {client.name} added",
                    payload={"name": client.name, "phone": client.phone},
                )
            order = Order.objects.create(client=client, created_by=request.user, **validated_data)
            replace_lines(order, lines)
            record_audit(
                actor=request.user,
                action="orders.create",
                entity_type="order",
                entity_id=order.id,
                summary=f"Order {order.reference} created for {client.name}",
                payload={"subtotal": str(order.subtotal), "lines": len(lines)},
            )
        return order

    def update(self, instance, validated_data):
        request = self.context["request"]
        lines = validated_data.pop("lines", None)
        with transaction.atomic():
            client, _ = self._resolve_client(validated_data)
            if client is not None:
                instance.client = client
            for field, value in validated_data.items():
                setattr(instance, field, value)
            instance.save()
            if lines is not None:
                replace_lines(instance, lines)
            else:
                instance.recalculate_totals()
                instance.save(update_fields=["subtotal", "total_paid", "balance_to_pay", "updated_at"])
            record_audit(
                actor=request.user,
                action="orders.update",
                entity_type="order",
                entity_id=instance.id,
                summary=f"Order {instance.reference} updated",
                payload={"fields": sorted(list(validated_data.keys()) + (["lines"] if lines is not None else []))},
            )
        return instance


class OrderListSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source="client.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "reference",
            "tracking_id",
            "job_name",
            "client",
            "client_name",
            "delivery_method",
            "status",
            "subtotal",
            "total_paid",
            "balance_to_pay",
            "design_due_date",
            "production_due_date",
            "created_at",
        ]
        read_only_fields = fields


class DeliverySerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source="client.name", read_only=True)
    client_phone = serializers.CharField(source="client.phone", read_only=True)
    delivery_address = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "reference",
            "tracking_id",
            "job_name",
            "client_name",
            "client_phone",
            "delivery_method",
            "delivery_address",
            "status",
            "courier",
            "delivery_tracking_id",
            "estimated_delivery",
            "delivered_at",
        ]
        read_only_fields = fields


class ReceiptSerializer(serializers.ModelSerializer):
    client = serializers.SerializerMethodField()
    lines = OrderLineSerializer(many=True, read_only=True)
    payments = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "reference",
            "job_name",
            "created_at",
            "client",
            "lines",
            "subtotal",
            "payments",
            "total_paid",
            "balance_to_pay",
            "payment_method",
            "status",
        ]
        read_only_fields = fields

    def get_client(self, obj):
        client = obj.client
        return {
            "name": client.name,
            "company": client.company,
            "phone": client.phone,
            "email": client.email,
            "address": client.address,
        }

    def get_payments(self, obj):
        payments = []
        for stage in PaymentStage:
            amount_field, approved_field, date_field, _ = STAGE_FIELDS[stage.value]
            payments.append(
                {
                    "stage": stage.value,
                    "label": stage.label,
                    "amount": f"{getattr(obj, amount_field):.2f}",
                    "payment_date": getattr(obj, date_field),
                    "approved": getattr(obj, approved_field),
                }
            )
        return payments


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField()

    def validate_status(self, value):
        try:
            return normalize_status(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc)) from exc


class PaymentDecisionSerializer(serializers.Serializer):
    stage = serializers.ChoiceField(choices=PaymentStage.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class DispatchSerializer(serializers.Serializer):
    courier = serializers.CharField(max_length=80)
    delivery_tracking_id = serializers.CharField(max_length=80)
    estimated_delivery = serializers.DateField(required=False, allow_null=True)
