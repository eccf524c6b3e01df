from django.db.models import Q
from rest_framework import viewsets

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.catalog.serializers import ProductSerializer
from apps.common.permissions import RolePermission


def _product_snapshot(product):
    return {
        "name": product.name,
        "category": product.category,
        "base_price": str(product.base_price),
        "stock": product.stock,
        "is_active": product.is_active,
    }


class ProductViewSet(viewsets.ModelViewSet):
    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_products"],
        "retrieve": ["view_products"],
        "create": ["manage_products"],
        "partial_update": ["manage_products"],
        "update": ["manage_products"],
        "destroy": ["manage_products"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        query = self.request.query_params.get("q")
        if query:
            query = query.strip()
            queryset = queryset.filter(Q(name__icontains=query) | Q(description__icontains=query))

        category = self.request.query_params.get("category")
        if category:
            queryset = queryset.filter(category__iexact=category.strip())

        is_active = self.request.query_params.get("is_active")
        if is_active is not None:
            normalized = is_active.strip().lower()
            if normalized in {"1", "true", "yes"}:
                queryset = queryset.filter(is_active=True)
            elif normalized in {"0", "false", "no"}:
                queryset = queryset.filter(is_active=False)
        return queryset

    def perform_create(self, serializer):
        product = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.product.create",
            entity_type="product",
            entity_id=product.id,
            summary=f"Product {product.name} added",
            payload=_product_snapshot(product),
        )

    def perform_update(self, serializer):
        before = _product_snapshot(self.get_object())
        product = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.product.update",
            entity_type="product",
            entity_id=product.id,
            summary=f"Product {product.name} updated",
            payload={"before": before, "after": _product_snapshot(product)},
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="catalog.product.delete",
            entity_type="product",
            entity_id=instance.id,
            summary=f"Product {instance.name} removed",
            payload=_product_snapshot(instance),
        )
        super().perform_destroy(instance)
