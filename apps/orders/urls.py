from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.orders.views import DeliveryQueueView, OrderViewSet, PaymentQueueView, PublicTrackingView
from apps.orders.views_metrics import DashboardView, DueDatesView

router = DefaultRouter()
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("payments/", PaymentQueueView.as_view(), name="payment-queue"),
    path("deliveries/", DeliveryQueueView.as_view(), name="delivery-queue"),
    path("dashboard/", DashboardView.as_view(), name="dashboard"),
    path("due-dates/", DueDatesView.as_view(), name="due-dates"),
    path("public/tracking/<str:tracking_id>/", PublicTrackingView.as_view(), name="public-tracking"),
] + router.urls
