from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (("FazzTrack", {"fields": ("department", "role", "phone")}),)
    list_display = DjangoUserAdmin.list_display + ("department", "role")
    list_filter = DjangoUserAdmin.list_filter + ("department", "role")
