from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission
from apps.production import design, engine
from apps.production.models import Job
from apps.production.serializers import (
    DesignStatusSerializer,
    DesignSubmitSerializer,
    JobCreateSerializer,
    JobSerializer,
    JobUpdateSerializer,
    PhaseSkipSerializer,
    ScanSerializer,
)


class JobViewSet(viewsets.ModelViewSet):
    serializer_class = JobSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "patch", "head", "options"]
    capability_map = {
        "list": ["view_jobs"],
        "retrieve": ["view_jobs"],
        "create": ["create_jobs"],
        "partial_update": ["edit_jobs"],
        "scan": ["scan_qr"],
        "start_phase": ["start_end_jobs"],
        "end_phase": ["start_end_jobs"],
        "skip_phase": ["skip_phases"],
        "submit_design": ["upload_designs"],
        "design_status": ["edit_design_jobs"],
    }

    def get_queryset(self):
        queryset = Job.objects.select_related("order__client", "assigned_to").prefetch_related(
            "phases__assigned_to"
        )
        params = self.request.query_params
        query = params.get("q")
        if query:
            query = query.strip()
            queryset = queryset.filter(
                Q(reference__icontains=query)
                | Q(qr_code__icontains=query)
                | Q(order__reference__icontains=query)
                | Q(order__job_name__icontains=query)
                | Q(order__client__name__icontains=query)
            )
        job_status = params.get("status")
        if job_status and job_status != "all":
            queryset = queryset.filter(status=job_status)
        job_type = params.get("job_type")
        if job_type and job_type != "all":
            queryset = queryset.filter(job_type=job_type)
        design_status = params.get("design_status")
        if design_status and design_status != "all":
            queryset = queryset.filter(design_status=design_status)
        order_id = params.get("order")
        if order_id:
            queryset = queryset.filter(order_id=order_id)
        return queryset.order_by("-created_at")

    def _snapshot(self, job):
        job = self.get_queryset().get(pk=job.pk)
        return JobSerializer(job, context=self.get_serializer_context()).data

    def create(self, request, *args, **kwargs):
        serializer = JobCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        job = engine.create_job_with_phases(
            order=data.pop("order"),
            created_by=request.user,
            job_type=data.pop("job_type"),
            phase_names=data.pop("phase_names", None),
            **data,
        )
        return Response(self._snapshot(job), status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        job = self.get_object()
        serializer = JobUpdateSerializer(job, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        job = serializer.save()
        record_audit(
            actor=request.user,
            action="production.job.update",
            entity_type="job",
            entity_id=job.id,
            summary=f"Job {job.reference} edited",
            payload={"fields": sorted(serializer.validated_data.keys())},
        )
        return Response(self._snapshot(job))

    @action(detail=False, methods=["post"])
    def scan(self, request):
        serializer = ScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            job = engine.find_job_by_code(serializer.validated_data["code"])
        except engine.PhaseEngineError as exc:
            return error_response(exc.code, exc.detail, exc.status_code)
        record_audit(
            actor=request.user,
            action="production.job.scan",
            entity_type="job",
            entity_id=job.id,
            summary=f"Job {job.reference} scanned",
        )
        return Response(
            {
                "scan": {
                    "job_id": str(job.id),
                    "job_type": job.job_type,
                    "order_id": str(job.order_id),
                    "client_name": job.order.client.name,
                    "job_name": job.order.job_name,
                },
                "job": self._snapshot(job),
            }
        )

    def _run_phase_action(self, operation, phase_id, *args):
        job = self.get_object()
        try:
            operation(job, phase_id, self.request.user, *args)
        except engine.PhaseEngineError as exc:
            return error_response(exc.code, exc.detail, exc.status_code)
        return Response(self._snapshot(job))

    @action(detail=True, methods=["post"], url_path=r"phases/(?P<phase_id>[^/.]+)/start")
    def start_phase(self, request, pk=None, phase_id=None):
        return self._run_phase_action(engine.start_phase, phase_id)

    @action(detail=True, methods=["post"], url_path=r"phases/(?P<phase_id>[^/.]+)/end")
    def end_phase(self, request, pk=None, phase_id=None):
        return self._run_phase_action(engine.end_phase, phase_id)

    @action(detail=True, methods=["post"], url_path=r"phases/(?P<phase_id>[^/.]+)/skip")
    def skip_phase(self, request, pk=None, phase_id=None):
        serializer = PhaseSkipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run_phase_action(engine.skip_phase, phase_id, serializer.validated_data["reason"])

    @action(detail=True, methods=["post"], url_path="design/submit")
    def submit_design(self, request, pk=None):
        job = self.get_object()
        serializer = DesignSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            design.submit_design(job, user=request.user, **serializer.validated_data)
        except engine.PhaseEngineError as exc:
            return error_response(exc.code, exc.detail, exc.status_code)
        return Response(self._snapshot(job))

    @action(detail=True, methods=["post"], url_path="design/status")
    def design_status(self, request, pk=None):
        job = self.get_object()
        serializer = DesignStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            design.set_design_status(
                job,
                serializer.validated_data["status"],
                user=request.user,
                feedback=serializer.validated_data["feedback"],
            )
        except engine.PhaseEngineError as exc:
            return error_response(exc.code, exc.detail, exc.status_code)
        return Response(self._snapshot(job))
