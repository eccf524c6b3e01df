import logging

from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.permissions import has_permission
from apps.production.engine import IllegalPhaseTransition, JobNotFound, PhaseActionDenied
from apps.production.models import DesignStatus, Job, JobType

logger = logging.getLogger(__name__)

DESIGN_TRANSITIONS = {
    DesignStatus.PENDING.value: (DesignStatus.IN_PROGRESS, DesignStatus.REVIEW),
    DesignStatus.IN_PROGRESS.value: (DesignStatus.REVIEW,),
    DesignStatus.REVIEW.value: (DesignStatus.APPROVED, DesignStatus.REJECTED, DesignStatus.IN_PROGRESS),
    DesignStatus.REJECTED.value: (DesignStatus.IN_PROGRESS, DesignStatus.REVIEW),
    DesignStatus.APPROVED.value: (),
}


def _lock_design_job(job):
    try:
        job = Job.objects.select_for_update().select_related("order").get(pk=job.pk)
    except Job.DoesNotExist as exc:
        raise JobNotFound() from exc
    if job.job_type != JobType.DESIGN:
        raise IllegalPhaseTransition("Only design jobs go through design review.")
    return job


def _move(job, target, now):
    current = str(job.design_status)
    if target not in DESIGN_TRANSITIONS.get(current, ()):
        logger.warning("design status rejected: %s %s -> %s", job.reference, current, target)
        raise IllegalPhaseTransition(f"Design cannot move from {current} to {target}.")
    job.design_status = target
    fields = ["design_status", "updated_at"]
    if target == DesignStatus.REVIEW:
        job.submitted_at = now
        fields.append("submitted_at")
    elif target == DesignStatus.APPROVED:
        job.approved_at = now
        job.is_finalized = True
        fields += ["approved_at", "is_finalized"]
    return current, fields


def submit_design(job, *, user, download_link, note=""):
    """Attach the artwork link to the order and hand the design over for review."""
    if not has_permission(user, "upload_designs"):
        raise PhaseActionDenied("You are not allowed to upload designs.")
    with transaction.atomic():
        job = _lock_design_job(job)
        now = timezone.now()
        previous, fields = _move(job, DesignStatus.REVIEW.value, now)
        note = str(note or "").strip()
        if note:
            job.notes = note
            fields.append("notes")
        job.save(update_fields=fields)

        order = job.order
        order.download_link = download_link
        order.save(update_fields=["download_link", "updated_at"])

        record_audit(
            actor=user,
            action="production.design.submit",
            entity_type="job",
            entity_id=job.id,
            summary=f"Design for {job.reference} submitted for review",
            payload={"from": previous, "download_link": download_link},
        )
    logger.info("design submitted: %s by %s", job.reference, user)
    return job


def set_design_status(job, status, *, user, feedback=""):
    if not has_permission(user, "edit_design_jobs"):
        raise PhaseActionDenied("You are not allowed to review designs.")
    feedback = str(feedback or "").strip()
    if status == DesignStatus.REJECTED and not feedback:
        raise IllegalPhaseTransition("Feedback is required when rejecting a design.")
    with transaction.atomic():
        job = _lock_design_job(job)
        previous, fields = _move(job, status, timezone.now())
        if feedback:
            job.feedback = feedback
            fields.append("feedback")
        job.save(update_fields=fields)
        record_audit(
            actor=user,
            action="production.design.status",
            entity_type="job",
            entity_id=job.id,
            summary=f"Design for {job.reference} moved to {job.get_design_status_display()}",
            payload={"from": previous, "to": status, "feedback": feedback},
        )
    logger.info("design status: %s %s -> %s by %s", job.reference, previous, status, user)
    return job
