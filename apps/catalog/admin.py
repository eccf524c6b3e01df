from django.contrib import admin

from apps.catalog.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "base_price", "stock", "is_active", "updated_at")
    list_filter = ("is_active", "category")
    search_fields = ("name", "description", "category")
