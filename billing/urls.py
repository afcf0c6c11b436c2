from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AdjustmentCalculationView,
    BillingConfigurationView,
    ConfigurationPreviewView,
    InvoiceViewSet,
    NegotiationViewSet,
)

router = DefaultRouter()
router.register("invoices", InvoiceViewSet, basename="invoice")
router.register("negotiations", NegotiationViewSet, basename="negotiation")

urlpatterns = [
    path("configuration/", BillingConfigurationView.as_view(), name="billing-configuration"),
    path("configuration/preview/", ConfigurationPreviewView.as_view(), name="billing-configuration-preview"),
    path("calculate/", AdjustmentCalculationView.as_view(), name="billing-calculate"),
    path("", include(router.urls)),
]
