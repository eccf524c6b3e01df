from django.contrib import admin

from apps.production.models import Job, JobPhase


class JobPhaseInline(admin.TabularInline):
    model = JobPhase
    extra = 0
    fields = ("order", "name", "kind", "status", "assigned_to", "started_at", "ended_at", "duration_minutes")


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("reference", "order", "job_type", "status", "priority", "assigned_to", "due_date", "created_at")
    list_filter = ("status", "job_type", "priority", "design_status")
    search_fields = ("reference", "qr_code", "order__reference", "order__job_name")
    autocomplete_fields = ("order", "assigned_to")
    inlines = [JobPhaseInline]


@admin.register(JobPhase)
class JobPhaseAdmin(admin.ModelAdmin):
    list_display = ("job", "order", "name", "kind", "status", "assigned_to", "duration_minutes")
    list_filter = ("status", "kind")
    search_fields = ("job__reference", "name")
    autocomplete_fields = ("job", "assigned_to")
