from django.contrib import admin

from apps.clients.models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "phone", "email", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "company", "phone", "phone_normalized", "email")
