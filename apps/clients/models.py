import re
import uuid

from django.core.exceptions import ValidationError
from django.db import models


def normalize_phone(value):
    raw = str(value or "").strip()
    normalized = re.sub(r"\D+", "", raw)
    return normalized or raw


class Client(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50)
    phone_normalized = models.CharField(max_length=50, db_index=True)
    email = models.EmailField(blank=True)
    company = models.CharField(max_length=255, blank=True)
    billing_address = models.TextField(blank=True)
    shipping_address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="client_name_idx"),
        ]

    def clean(self):
        if not self.name:
            raise ValidationError("name is required")
        if not self.phone:
            raise ValidationError("phone is required")

    def save(self, *args, **kwargs):
        self.name = str(self.name or "").strip()
        self.phone = str(self.phone or "").strip()
        self.phone_normalized = normalize_phone(self.phone)
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def address(self):
        return self.shipping_address or self.billing_address

    def __str__(self):
        return f"{self.name} ({self.phone})"
