import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Department, UserRole
from apps.audit.services import record_audit
from apps.common.permissions import has_permission
from apps.orders.services import sync_production_status
from apps.production.models import (
    BLOCKED_JOB_STATUSES,
    Job,
    JobPhase,
    JobStatus,
    PhaseKind,
    PhaseStatus,
    default_phases_for,
)

logger = logging.getLogger(__name__)


class PhaseEngineError(Exception):
    code = "error"
    status_code = 400
    default_detail = "Phase action failed."

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class JobNotFound(PhaseEngineError):
    code = "not_found"
    status_code = 404
    default_detail = "Job not found."


class PhaseNotFound(PhaseEngineError):
    code = "not_found"
    status_code = 404
    default_detail = "Phase not found."


class PhaseActionDenied(PhaseEngineError):
    code = "forbidden"
    status_code = 403
    default_detail = "You are not allowed to work on this phase."


class IllegalPhaseTransition(PhaseEngineError):
    code = "invalid_state"
    status_code = 400
    default_detail = "This phase cannot change state right now."


OVERRIDE_DEPARTMENTS = (Department.SUPERADMIN, Department.ADMIN, Department.SALES_MANAGER)

PHASE_KIND_ROLES = {
    PhaseKind.DESIGN.value: (UserRole.DESIGNER,),
    PhaseKind.PRINT.value: (UserRole.PRINT,),
    PhaseKind.PRESS.value: (UserRole.PRESS,),
    PhaseKind.CUT.value: (UserRole.CUT,),
    PhaseKind.SEW.value: (UserRole.SEW,),
    PhaseKind.QC.value: (UserRole.QC,),
    PhaseKind.IRON_PACKING.value: (UserRole.IRON_PACKING,),
}

# (role marker, phase name marker) pairs for phases created without a kind.
LEGACY_PHASE_MARKERS = (
    ("print", "print"),
    ("press", "press"),
    ("cut", "cut"),
    ("sew", "sew"),
    ("qc", "quality"),
    ("iron", "iron"),
    ("pack", "pack"),
)

# phase name marker -> kind, first match wins
_NAME_KINDS = (
    ("design", PhaseKind.DESIGN),
    ("print", PhaseKind.PRINT),
    ("press", PhaseKind.PRESS),
    ("cut", PhaseKind.CUT),
    ("sew", PhaseKind.SEW),
    ("quality", PhaseKind.QC),
    ("qc", PhaseKind.QC),
    ("iron", PhaseKind.IRON_PACKING),
    ("pack", PhaseKind.IRON_PACKING),
)


def infer_phase_kind(name):
    lowered = str(name or "").lower()
    for marker, kind in _NAME_KINDS:
        if marker in lowered:
            return kind
    return ""


def _legacy_role_matches(role, phase_name):
    role = role.lower()
    phase_name = phase_name.lower()
    return any(
        role_marker in role and name_marker in phase_name for role_marker, name_marker in LEGACY_PHASE_MARKERS
    )


def can_work_on_phase(user, phase):
    if not user or not getattr(user, "is_authenticated", False):
        return False
    department = str(user.department)
    role = str(user.role)

    if department in OVERRIDE_DEPARTMENTS:
        return True
    if department == Department.PRODUCTION_STAFF:
        if phase.assigned_to_id is not None and phase.assigned_to_id == user.pk:
            return True
        if phase.kind:
            allowed = PHASE_KIND_ROLES.get(str(phase.kind), ())
            return any(role == allowed_role for allowed_role in allowed)
        return _legacy_role_matches(role, phase.name)
    if department == Department.DESIGNER:
        if phase.kind:
            return phase.kind == PhaseKind.DESIGN
        return "design" in phase.name.lower()
    return False


def resolve_current_phase(job):
    if job.current_phase_id:
        current = job.phases.filter(pk=job.current_phase_id).first()
        if current is not None and not current.is_terminal:
            return current
    return job.phases.filter(status=PhaseStatus.PENDING).order_by("order").first()


def progress(job):
    phases = list(job.phases.all())
    if not phases:
        return 0
    done = sum(1 for phase in phases if phase.is_terminal)
    return round(done / len(phases) * 100)


def find_job_by_code(code):
    code = str(code or "").strip()
    if not code:
        raise JobNotFound("A QR code or job reference is required.")
    job = Job.objects.filter(qr_code=code).first() or Job.objects.filter(reference__iexact=code).first()
    if job is None:
        raise JobNotFound(f"No job found for code {code}.")
    return job


def _lock_job(job):
    try:
        return Job.objects.select_for_update().select_related("order").get(pk=job.pk)
    except Job.DoesNotExist as exc:
        raise JobNotFound() from exc


def _get_phase(job, phase_id):
    try:
        return job.phases.get(pk=phase_id)
    except (JobPhase.DoesNotExist, ValidationError, ValueError) as exc:
        raise PhaseNotFound() from exc


def _deny(job, phase, user, action):
    logger.warning("phase %s denied: %s on %s by %s", action, phase.name, job.reference, user)
    raise PhaseActionDenied()


def _illegal(job, phase, action, detail):
    logger.warning("phase %s rejected: %s on %s (%s)", action, phase.name, job.reference, detail)
    raise IllegalPhaseTransition(detail)


def _finish_if_done(job, now):
    """Point the job at its next pending phase, completing it when none is left."""
    next_phase = job.phases.filter(status=PhaseStatus.PENDING).order_by("order").first()
    job.current_phase = next_phase
    fields = ["current_phase", "updated_at"]
    if next_phase is None and not job.phases.filter(status=PhaseStatus.IN_PROGRESS).exists():
        job.status = JobStatus.COMPLETED
        job.completed_at = now
        fields += ["status", "completed_at"]
    job.save(update_fields=fields)


def start_phase(job, phase_id, user):
    with transaction.atomic():
        job = _lock_job(job)
        phase = _get_phase(job, phase_id)

        if phase.status != PhaseStatus.PENDING:
            _illegal(job, phase, "start", "Only pending phases can be started.")
        if job.status in BLOCKED_JOB_STATUSES:
            _illegal(job, phase, "start", f"Job is {job.get_status_display().lower()}.")
        siblings = list(job.phases.exclude(pk=phase.pk))
        if any(other.status == PhaseStatus.IN_PROGRESS for other in siblings):
            _illegal(job, phase, "start", "Another phase is already in progress.")
        if any(other.order < phase.order and not other.is_terminal for other in siblings):
            _illegal(job, phase, "start", "Previous phases must be completed first.")
        if not can_work_on_phase(user, phase):
            _deny(job, phase, user, "start")

        now = timezone.now()
        phase.status = PhaseStatus.IN_PROGRESS
        phase.started_at = now
        if phase.assigned_to_id is None:
            phase.assigned_to = user
        phase.save(update_fields=["status", "started_at", "assigned_to"])

        job.current_phase = phase
        job.status = JobStatus.IN_PROGRESS
        if job.started_at is None:
            job.started_at = now
        job.save(update_fields=["current_phase", "status", "started_at", "updated_at"])

        record_audit(
            actor=user,
            action="production.phase.start",
            entity_type="job",
            entity_id=job.id,
            summary=f"{phase.name} started on {job.reference}",
            payload={"phase_id": str(phase.id), "phase": phase.name},
        )
        sync_production_status(job.order, job=job, phase=phase, actor=user)

    logger.info("phase started: %s on %s by %s", phase.name, job.reference, user)
    return phase


def end_phase(job, phase_id, user):
    with transaction.atomic():
        job = _lock_job(job)
        phase = _get_phase(job, phase_id)

        if phase.status != PhaseStatus.IN_PROGRESS:
            _illegal(job, phase, "end", "Only phases in progress can be ended.")
        if job.status in BLOCKED_JOB_STATUSES:
            _illegal(job, phase, "end", f"Job is {job.get_status_display().lower()}.")
        if not can_work_on_phase(user, phase):
            _deny(job, phase, user, "end")

        now = timezone.now()
        phase.status = PhaseStatus.COMPLETED
        phase.ended_at = now
        if phase.started_at:
            phase.duration_minutes = round((now - phase.started_at).total_seconds() / 60)
        else:
            phase.duration_minutes = 0
        phase.save(update_fields=["status", "ended_at", "duration_minutes"])

        _finish_if_done(job, now)

        record_audit(
            actor=user,
            action="production.phase.end",
            entity_type="job",
            entity_id=job.id,
            summary=f"{phase.name} completed on {job.reference}",
            payload={"phase_id": str(phase.id), "phase": phase.name, "duration_minutes": phase.duration_minutes},
        )
        if job.status == JobStatus.COMPLETED:
            record_audit(
                actor=user,
                action="production.job.complete",
                entity_type="job",
                entity_id=job.id,
                summary=f"Job {job.reference} completed",
            )
        sync_production_status(job.order, job=job, phase=phase, actor=user)

    logger.info("phase ended: %s on %s by %s (%s min)", phase.name, job.reference, user, phase.duration_minutes)
    return phase


def skip_phase(job, phase_id, user, reason=""):
    with transaction.atomic():
        job = _lock_job(job)
        phase = _get_phase(job, phase_id)

        if not has_permission(user, "skip_phases"):
            _deny(job, phase, user, "skip")
        if phase.status != PhaseStatus.PENDING:
            _illegal(job, phase, "skip", "Only pending phases can be skipped.")
        if job.status in BLOCKED_JOB_STATUSES:
            _illegal(job, phase, "skip", f"Job is {job.get_status_display().lower()}.")

        now = timezone.now()
        reason = str(reason or "").strip()
        phase.status = PhaseStatus.SKIPPED
        phase.ended_at = now
        if reason:
            phase.notes = reason
        phase.save(update_fields=["status", "ended_at", "notes"])

        if job.current_phase_id in (None, phase.pk):
            _finish_if_done(job, now)

        record_audit(
            actor=user,
            action="production.phase.skip",
            entity_type="job",
            entity_id=job.id,
            summary=f"{phase.name} skipped on {job.reference}",
            payload={"phase_id": str(phase.id), "phase": phase.name, "reason": reason},
        )
        sync_production_status(job.order, job=job, phase=phase, actor=user)

    logger.info("phase skipped: %s on %s by %s", phase.name, job.reference, user)
    return phase


def create_job_with_phases(*, order, created_by, job_type, phase_names=None, **fields):
    with transaction.atomic():
        job = Job.objects.create(order=order, created_by=created_by, job_type=job_type, **fields)
        if phase_names:
            phases = [(name, infer_phase_kind(name)) for name in phase_names]
        else:
            phases = default_phases_for(job_type)
        created = [
            JobPhase.objects.create(job=job, name=name, kind=kind, order=position)
            for position, (name, kind) in enumerate(phases, start=1)
        ]
        job.current_phase = created[0] if created else None
        job.save(update_fields=["current_phase", "updated_at"])
        record_audit(
            actor=created_by,
            action="production.job.create",
            entity_type="job",
            entity_id=job.id,
            summary=f"Job {job.reference} created for {order.reference}",
            payload={"job_type": job.job_type, "phases": [name for name, _ in phases]},
        )
    logger.info("job created: %s for %s", job.reference, order.reference)
    return job
