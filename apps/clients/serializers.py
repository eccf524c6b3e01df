from decimal import Decimal

from rest_framework import serializers

from apps.clients.models import Client, normalize_phone


class ClientSerializer(serializers.ModelSerializer):
    address = serializers.CharField(read_only=True)
    total_orders = serializers.SerializerMethodField()
    total_spent = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            "id",
            "name",
            "phone",
            "email",
            "company",
            "billing_address",
            "shipping_address",
            "address",
            "is_active",
            "total_orders",
            "total_spent",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("name is required")
        return value

    def validate_phone(self, value):
        value = value.strip()
        if not value or not normalize_phone(value):
            raise serializers.ValidationError("phone is required")
        return value

    def get_total_orders(self, obj):
        annotated = getattr(obj, "total_orders", None)
        if annotated is not None:
            return annotated
        return obj.orders.count()

    def get_total_spent(self, obj):
        annotated = getattr(obj, "total_spent", None)
        if annotated is None:
            annotated = sum((order.total_paid for order in obj.orders.all()), Decimal("0.00"))
        return f"{annotated:.2f}"


class NewClientSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True)
    phone = serializers.CharField(allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    company = serializers.CharField(required=False, allow_blank=True)
    billing_address = serializers.CharField(required=False, allow_blank=True)
    shipping_address = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        errors = {}
        if not attrs.get("name", "").strip():
            errors["name"] = "New client name is required."
        if not normalize_phone(attrs.get("phone", "")):
            errors["phone"] = "New client phone is required."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs
