import uuid

from django.db import models


class JobType(models.TextChoices):
    DESIGN = "design", "Design"
    PRINT = "print", "Print"
    PRESS = "press", "Press"
    CUT = "cut", "Cut"
    SEW = "sew", "Sew"
    QC = "qc", "Quality Check"
    IRON_PACKING = "iron_packing", "Iron/Packing"


class JobStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    ON_HOLD = "on_hold", "On Hold"
    CANCELLED = "cancelled", "Cancelled"


class JobPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"


class DesignStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    REVIEW = "review", "Review"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class PhaseStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    SKIPPED = "skipped", "Skipped"


class PhaseKind(models.TextChoices):
    DESIGN = "design", "Design"
    PRINT = "print", "Print"
    PRESS = "press", "Press"
    CUT = "cut", "Cut"
    SEW = "sew", "Sew"
    QC = "qc", "Quality Check"
    IRON_PACKING = "iron_packing", "Iron/Packing"


TERMINAL_PHASE_STATUSES = (PhaseStatus.COMPLETED, PhaseStatus.SKIPPED)
BLOCKED_JOB_STATUSES = (JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.ON_HOLD)

DEFAULT_PHASES = (
    ("PRINT", PhaseKind.PRINT),
    ("PRESS", PhaseKind.PRESS),
    ("CUT", PhaseKind.CUT),
    ("SEW", PhaseKind.SEW),
    ("QUALITY CHECK (QC)", PhaseKind.QC),
    ("IRON/PACKING", PhaseKind.IRON_PACKING),
)

DESIGN_PHASES = (("DESIGN", PhaseKind.DESIGN),)


def default_phases_for(job_type):
    return DESIGN_PHASES if job_type == JobType.DESIGN else DEFAULT_PHASES


class Job(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reference = models.CharField(max_length=20, unique=True, editable=False)
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="jobs")
    job_type = models.CharField(max_length=16, choices=JobType.choices, default=JobType.PRINT)
    status = models.CharField(max_length=16, choices=JobStatus.choices, default=JobStatus.PENDING)
    priority = models.CharField(max_length=8, choices=JobPriority.choices, default=JobPriority.MEDIUM)
    assigned_to = models.ForeignKey(
        "accounts.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="assigned_jobs"
    )
    qr_code = models.CharField(max_length=64, unique=True)
    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    is_finalized = models.BooleanField(default=False)
    design_status = models.CharField(max_length=16, choices=DesignStatus.choices, default=DesignStatus.PENDING)
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    feedback = models.TextField(blank=True)
    current_phase = models.ForeignKey(
        "production.JobPhase", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="jobs_created")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "due_date"], name="job_status_due_idx"),
            models.Index(fields=["order", "job_type"], name="job_order_type_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self.reference:
            number = Job.objects.count() + 1
            while self._code_taken(number):
                number += 1
            self.reference = f"JOB-{number:03d}"
        if not self.qr_code:
            self.qr_code = f"QR-{self.reference}"
        super().save(*args, **kwargs)

    def _code_taken(self, number):
        reference = f"JOB-{number:03d}"
        if Job.objects.filter(reference=reference).exists():
            return True
        # the default QR code derives from the reference and must be free too
        return not self.qr_code and Job.objects.filter(qr_code=f"QR-{reference}").exists()

    def __str__(self):
        return f"{self.reference} ({self.get_job_type_display()})"


class JobPhase(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="phases")
    name = models.CharField(max_length=80)
    kind = models.CharField(max_length=16, choices=PhaseKind.choices, blank=True)
    order = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=16, choices=PhaseStatus.choices, default=PhaseStatus.PENDING)
    assigned_to = models.ForeignKey(
        "accounts.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="assigned_phases"
    )
    started_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["order"]
        constraints = [
            models.UniqueConstraint(fields=["job", "order"], name="jobphase_job_order_uniq"),
        ]

    @property
    def is_terminal(self):
        return self.status in TERMINAL_PHASE_STATUSES

    def __str__(self):
        return f"{self.job.reference} #{self.order} {self.name}"
