from decimal import Decimal

from django.conf import settings
from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from rest_framework import generics
from rest_framework import serializers
from rest_framework.response import Response

from apps.audit.services import recent_activity
from apps.clients.models import Client
from apps.common.permissions import RolePermission
from apps.orders.models import CLOSED_STATUSES, Order, OrderStatus, status_rank
from apps.production.engine import progress
from apps.production.models import Job, JobStatus, JobType

MONEY = DecimalField(max_digits=16, decimal_places=2)

URGENCY_LEVELS = ("overdue", "critical", "warning", "upcoming")


class DashboardQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    activity_limit = serializers.IntegerField(required=False, min_value=1, max_value=50, default=10)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_from": "date_from must be before or equal to date_to."})
        return attrs


class DueDateQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, default="")
    type = serializers.ChoiceField(choices=["all", "design", "production"], required=False, default="all")
    status = serializers.ChoiceField(choices=["all", *URGENCY_LEVELS], required=False, default="all")


class DashboardView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_dashboard"]}

    @staticmethod
    def _apply_date_range(queryset, date_from, date_to):
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)
        return queryset

    @staticmethod
    def _order_totals(orders):
        return orders.aggregate(
            total_orders=Count("id"),
            pending_orders=Count(
                "id", filter=Q(status__in=[OrderStatus.PENDING, OrderStatus.PAYMENT_PENDING])
            ),
            completed_orders=Count("id", filter=Q(status=OrderStatus.COMPLETED)),
            revenue=Coalesce(Sum("total_paid"), Value(Decimal("0.00")), output_field=MONEY),
            pending_payments=Coalesce(
                Sum("balance_to_pay", filter=~Q(status__in=CLOSED_STATUSES)),
                Value(Decimal("0.00")),
                output_field=MONEY,
            ),
        )

    @staticmethod
    def _job_totals():
        today = timezone.localdate()
        open_jobs = ~Q(status__in=[JobStatus.COMPLETED, JobStatus.CANCELLED])
        return Job.objects.aggregate(
            active_jobs=Count("id", filter=Q(status=JobStatus.IN_PROGRESS)),
            completed_jobs=Count("id", filter=Q(status=JobStatus.COMPLETED)),
            overdue_jobs=Count("id", filter=open_jobs & Q(due_date__lt=today)),
        )

    @staticmethod
    def _status_breakdown(orders):
        return list(orders.values("status").annotate(count=Count("id")).order_by("status"))

    @staticmethod
    def _orders_by_day(orders):
        return list(
            orders.values("created_at__date")
            .annotate(
                orders=Count("id"),
                revenue=Coalesce(Sum("total_paid"), Value(Decimal("0.00")), output_field=MONEY),
            )
            .order_by("created_at__date")
        )

    def get(self, request, *args, **kwargs):
        query_serializer = DashboardQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)
        params = query_serializer.validated_data
        date_from = params.get("date_from")
        date_to = params.get("date_to")

        orders = self._apply_date_range(Order.objects.all(), date_from, date_to)
        new_clients = self._apply_date_range(Client.objects.all(), date_from, date_to).count()
        return Response(
            {
                **self._order_totals(orders),
                **self._job_totals(),
                "total_clients": Client.objects.count(),
                "new_clients": new_clients,
                "range": {"date_from": date_from, "date_to": date_to},
                "status_breakdown": self._status_breakdown(orders),
                "orders_by_day": self._orders_by_day(orders),
                "recent_activity": recent_activity(params["activity_limit"], date_from, date_to),
            }
        )


def urgency_for(days_remaining):
    if days_remaining < 0:
        return "overdue"
    if days_remaining <= settings.DUE_DATE_CRITICAL_DAYS:
        return "critical"
    if days_remaining <= settings.DUE_DATE_WARNING_DAYS:
        return "warning"
    return "upcoming"


class DueDatesView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_due_dates"]}

    @staticmethod
    def _related_job(order, alert_type):
        jobs = list(order.jobs.all())
        for job in jobs:
            if (job.job_type == JobType.DESIGN) == (alert_type == "design"):
                return job
        return None

    def _alert(self, order, alert_type, due_date, today):
        job = self._related_job(order, alert_type)
        days_remaining = (due_date - today).days
        return {
            "id": f"{order.id}:{alert_type}",
            "type": alert_type,
            "order_id": str(order.id),
            "reference": order.reference,
            "job_id": str(job.id) if job else None,
            "client_name": order.client.name,
            "job_name": order.job_name,
            "due_date": due_date,
            "days_remaining": days_remaining,
            "is_overdue": days_remaining < 0,
            "status": urgency_for(days_remaining),
            "priority": job.priority if job else None,
            "department": "Design" if alert_type == "design" else "Production",
            "progress": progress(job) if job else 0,
            "order_status": order.status,
        }

    def _alerts(self, orders):
        today = timezone.localdate()
        design_cutoff = status_rank(OrderStatus.DESIGN_COMPLETED)
        production_cutoff = status_rank(OrderStatus.READY_FOR_DELIVERY)
        alerts = []
        for order in orders:
            rank = status_rank(order.status)
            if order.design_due_date and rank < design_cutoff:
                alerts.append(self._alert(order, "design", order.design_due_date, today))
            if order.production_due_date and rank < production_cutoff:
                alerts.append(self._alert(order, "production", order.production_due_date, today))
        return alerts

    def get(self, request, *args, **kwargs):
        query_serializer = DueDateQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)
        params = query_serializer.validated_data

        orders = (
            Order.objects.select_related("client")
            .prefetch_related("jobs__phases")
            .exclude(status__in=CLOSED_STATUSES)
            .filter(Q(design_due_date__isnull=False) | Q(production_due_date__isnull=False))
        )
        query = params["q"].strip()
        if query:
            orders = orders.filter(
                Q(job_name__icontains=query) | Q(reference__icontains=query) | Q(client__name__icontains=query)
            )

        alerts = self._alerts(orders)
        summary = {level: sum(1 for alert in alerts if alert["status"] == level) for level in URGENCY_LEVELS}
        if params["type"] != "all":
            alerts = [alert for alert in alerts if alert["type"] == params["type"]]
        if params["status"] != "all":
            alerts = [alert for alert in alerts if alert["status"] == params["status"]]
        alerts.sort(key=lambda alert: (alert["days_remaining"], alert["reference"]))
        return Response({"summary": summary, "count": len(alerts), "results": alerts})
