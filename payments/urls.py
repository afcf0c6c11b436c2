from django.urls import path
from .views import asaas_webhook

urlpatterns = [
    path("asaas/webhook/", asaas_webhook, name="asaas-webhook"),
]
