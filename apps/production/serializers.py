from rest_framework import serializers

from apps.accounts.models import User
from apps.orders.models import Order
from apps.production.engine import can_work_on_phase, progress, resolve_current_phase
from apps.production.models import (
    TERMINAL_PHASE_STATUSES,
    DesignStatus,
    Job,
    JobPhase,
    JobPriority,
    JobStatus,
    JobType,
)


class JobPhaseSerializer(serializers.ModelSerializer):
    assigned_to_name = serializers.CharField(source="assigned_to.display_name", read_only=True, default=None)
    can_act = serializers.SerializerMethodField()

    class Meta:
        model = JobPhase
        fields = [
            "id",
            "name",
            "kind",
            "order",
            "status",
            "assigned_to",
            "assigned_to_name",
            "started_at",
            "ended_at",
            "duration_minutes",
            "notes",
            "can_act",
        ]
        read_only_fields = fields

    def get_can_act(self, obj):
        request = self.context.get("request")
        user = getattr(request, "user", None)
        return can_work_on_phase(user, obj)


class JobSerializer(serializers.ModelSerializer):
    order_reference = serializers.CharField(source="order.reference", read_only=True)
    job_name = serializers.CharField(source="order.job_name", read_only=True)
    client_name = serializers.CharField(source="order.client.name", read_only=True)
    assigned_to_name = serializers.CharField(source="assigned_to.display_name", read_only=True, default=None)
    phases = JobPhaseSerializer(many=True, read_only=True)
    current_phase = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            "id",
            "reference",
            "order",
            "order_reference",
            "job_name",
            "client_name",
            "job_type",
            "status",
            "priority",
            "assigned_to",
            "assigned_to_name",
            "qr_code",
            "due_date",
            "notes",
            "is_finalized",
            "design_status",
            "submitted_at",
            "approved_at",
            "feedback",
            "current_phase",
            "progress",
            "phases",
            "started_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_current_phase(self, obj):
        phase = resolve_current_phase(obj)
        return str(phase.id) if phase else None

    def get_progress(self, obj):
        return progress(obj)


class JobCreateSerializer(serializers.Serializer):
    order = serializers.PrimaryKeyRelatedField(queryset=Order.objects.all())
    job_type = serializers.ChoiceField(choices=JobType.choices, default=JobType.PRINT)
    priority = serializers.ChoiceField(choices=JobPriority.choices, default=JobPriority.MEDIUM)
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True), required=False, allow_null=True
    )
    qr_code = serializers.CharField(required=False, allow_blank=True, max_length=64)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    phase_names = serializers.ListField(
        child=serializers.CharField(max_length=80), required=False, allow_empty=False
    )

    def validate_qr_code(self, value):
        value = value.strip()
        if value and Job.objects.filter(qr_code=value).exists():
            raise serializers.ValidationError("QR code is already used by another job.")
        return value

    def validate_phase_names(self, value):
        names = [name.strip() for name in value if name.strip()]
        if not names:
            raise serializers.ValidationError("At least one phase name is required.")
        return names

    def validate_order(self, value):
        if value.is_closed:
            raise serializers.ValidationError("Jobs cannot be added to a closed order.")
        return value


class JobUpdateSerializer(serializers.ModelSerializer):
    """Edit Job: job-level corrections, not bound by the phase state machine."""

    class Meta:
        model = Job
        fields = ["status", "priority", "assigned_to", "qr_code", "due_date", "notes", "is_finalized"]

    def validate_qr_code(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("QR code cannot be empty.")
        taken = Job.objects.filter(qr_code=value)
        if self.instance is not None:
            taken = taken.exclude(pk=self.instance.pk)
        if taken.exists():
            raise serializers.ValidationError("QR code is already used by another job.")
        return value

    def validate_status(self, value):
        if (
            value == JobStatus.COMPLETED
            and self.instance
            and self.instance.phases.exclude(status__in=TERMINAL_PHASE_STATUSES).exists()
        ):
            raise serializers.ValidationError("A job with open phases cannot be marked completed.")
        return value


class ScanSerializer(serializers.Serializer):
    code = serializers.CharField(allow_blank=True)


class PhaseSkipSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class DesignSubmitSerializer(serializers.Serializer):
    download_link = serializers.URLField(max_length=500)
    note = serializers.CharField(required=False, allow_blank=True, default="")


class DesignStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DesignStatus.choices)
    feedback = serializers.CharField(required=False, allow_blank=True, default="")
