import uuid

from django.db import models


def normalize_category(value: str) -> str:
    return " ".join((value or "").split()).title()


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=80, db_index=True)
    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(condition=models.Q(base_price__gte=0), name="product_base_price_gte_zero"),
        ]

    def save(self, *args, **kwargs):
        self.name = (self.name or "").strip()
        self.category = normalize_category(self.category)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.category})"
