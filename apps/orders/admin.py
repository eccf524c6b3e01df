from django.contrib import admin

from apps.orders.models import Order, OrderLine


class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("reference", "job_name", "client", "status", "subtotal", "total_paid", "balance_to_pay", "created_at")
    list_filter = ("status", "delivery_method", "payment_method")
    search_fields = ("reference", "tracking_id", "job_name", "client__name")
    readonly_fields = ("reference", "tracking_id", "subtotal", "total_paid", "balance_to_pay")
    autocomplete_fields = ("client", "created_by")
    inlines = [OrderLineInline]


@admin.register(OrderLine)
class OrderLineAdmin(admin.ModelAdmin):
    list_display = ("order", "product_name", "quantity", "unit_price", "position")
    search_fields = ("order__reference", "product_name")
    autocomplete_fields = ("order", "product")
