import logging

import requests
from rest_framework import serializers, status, viewsets, mixins
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminOnly, IsAdminOrStaff, IsInternalOrReadOnly
from payments.services import sync
from .calculator import calculate_adjustment
from .exceptions import GatewayNotLinked, InvalidCalculationInput
from .models import Invoice, Negotiation
from .serializers import (
    AdjustmentRequestSerializer,
    AdjustmentResultSerializer,
    BillingConfigurationSerializer,
    ConfigurationPreviewSerializer,
    InvoiceSerializer,
    InvoiceStatusSerializer,
    NegotiationSerializer,
    NegotiationStatusSerializer,
)
from .services import (
    InvoiceStatisticsService,
    get_configuration,
    preview_configuration,
    refresh_overdue_invoices,
    update_configuration,
)

logger = logging.getLogger(__name__)


def invalid_input_response(error):
    return Response(
        {"error": error.message, "field": error.field},
        status=status.HTTP_400_BAD_REQUEST,
    )


# =========================
# Configuration
# =========================
class BillingConfigurationView(APIView):
    def get_permissions(self):
        if self.request.method in ("PUT", "PATCH"):
            return [IsAuthenticated(), IsAdminOnly()]
        return [IsAuthenticated(), IsAdminOrStaff()]

    def get(self, request):
        serializer = BillingConfigurationSerializer(get_configuration())
        return Response(serializer.data)

    def patch(self, request):
        serializer = BillingConfigurationSerializer(
            get_configuration(),
            data=request.data,
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        configuration = update_configuration(
            serializer.validated_data,
            updated_by=request.user,
        )
        return Response(BillingConfigurationSerializer(configuration).data)

    def put(self, request):
        return self.patch(request)


class ConfigurationPreviewView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrStaff]

    def post(self, request):
        serializer = ConfigurationPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = preview_configuration(
                amount=serializer.validated_data["amount"],
                days=serializer.validated_data["days"],
            )
        except InvalidCalculationInput as e:
            return invalid_input_response(e)

        return Response(AdjustmentResultSerializer(result).data)


class AdjustmentCalculationView(APIView):
    """Calculate an adjustment for arbitrary values without touching any invoice."""

    def post(self, request):
        serializer = AdjustmentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = calculate_adjustment(
                data["original_amount"],
                data["due_date"],
                get_configuration(),
                as_of_date=data.get("as_of_date"),
            )
        except InvalidCalculationInput as e:
            return invalid_input_response(e)

        return Response(AdjustmentResultSerializer(result).data)


# =========================
# Invoices
# =========================
class InvoiceFilterSerializer(serializers.Serializer):
    unit_code = serializers.IntegerField(required=False)
    charge_type = serializers.ChoiceField(choices=Invoice.CHARGE_TYPE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Invoice.STATUS_CHOICES, required=False)
    due_from = serializers.DateField(required=False)
    due_to = serializers.DateField(required=False)
    min_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    max_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class InvoiceViewSet(viewsets.ModelViewSet):
    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated, IsInternalOrReadOnly]

    FILTER_LOOKUPS = {
        "unit_code": "unit_code",
        "charge_type": "charge_type",
        "status": "status",
        "due_from": "due_date__gte",
        "due_to": "due_date__lte",
        "min_amount": "updated_amount__gte",
        "max_amount": "updated_amount__lte",
    }

    def get_permissions(self):
        if self.action in ("refresh_overdue", "sync_all"):
            return [IsAuthenticated(), IsAdminOrStaff()]
        return super().get_permissions()

    def get_queryset(self):
        user = self.request.user

        if getattr(user, "is_internal", False):
            queryset = Invoice.objects.all()
        elif user.role == "FRANCHISEE" and user.unit_code is not None:
            queryset = Invoice.objects.filter(unit_code=user.unit_code)
        else:
            return Invoice.objects.none()

        if self.action == "list" or self.action == "statistics":
            filters = InvoiceFilterSerializer(data=self.request.query_params)
            filters.is_valid(raise_exception=True)
            lookups = {
                self.FILTER_LOOKUPS[name]: value
                for name, value in filters.validated_data.items()
            }
            queryset = queryset.filter(**lookups)

        return queryset

    def perform_create(self, serializer):
        invoice = serializer.save(created_by=self.request.user)
        logger.info(f"Invoice {invoice.id} created for unit {invoice.unit_code}")

    def perform_update(self, serializer):
        invoice = serializer.save()
        sync.push_invoice_changes(invoice, serializer.validated_data)

    def perform_destroy(self, instance):
        sync.remove_from_gateway(instance)
        logger.info(f"Invoice {instance.id} deleted")
        instance.delete()

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        invoice = self.get_object()
        serializer = InvoiceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invoice.status = serializer.validated_data["status"]
        invoice.save(update_fields=["status", "updated_at"])
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=["get"])
    def adjustment(self, request, pk=None):
        invoice = self.get_object()
        as_of = request.query_params.get("as_of")

        try:
            result = invoice.calculate_adjustment(get_configuration(), as_of_date=as_of)
        except InvalidCalculationInput as e:
            return invalid_input_response(e)

        return Response(AdjustmentResultSerializer(result).data)

    @action(detail=False, methods=["get"])
    def statistics(self, request):
        return Response(
            InvoiceStatisticsService.get_statistics(self.get_queryset())
        )

    @action(detail=False, methods=["post"], url_path="refresh-overdue")
    def refresh_overdue(self, request):
        summary = refresh_overdue_invoices()
        return Response(summary)

    @action(detail=False, methods=["post"], url_path="sync-all")
    def sync_all(self, request):
        dates = InvoiceFilterSerializer(data=request.data)
        dates.is_valid(raise_exception=True)
        summary = sync.sync_all_statuses(
            due_from=dates.validated_data.get("due_from"),
            due_to=dates.validated_data.get("due_to"),
        )
        return Response(summary)

    @action(detail=True, methods=["post"], url_path="sync")
    def sync_status(self, request, pk=None):
        invoice = self.get_object()
        try:
            invoice = sync.sync_invoice_status(invoice)
        except GatewayNotLinked as e:
            return Response({"error": e.message}, status=status.HTTP_400_BAD_REQUEST)
        except requests.RequestException as e:
            logger.error(f"Error syncing invoice {invoice.id} with ASAAS: {str(e)}")
            return Response(
                {"error": "Failed to sync with the payment gateway"},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=["post"], url_path="bank-slip")
    def bank_slip(self, request, pk=None):
        invoice = self.get_object()
        try:
            urls = sync.generate_bank_slip(invoice)
        except GatewayNotLinked as e:
            return Response({"error": e.message}, status=status.HTTP_400_BAD_REQUEST)
        return Response(urls)

    @action(detail=True, methods=["get", "post"])
    def negotiations(self, request, pk=None):
        invoice = self.get_object()

        if request.method == "GET":
            serializer = NegotiationSerializer(invoice.negotiations.all(), many=True)
            return Response(serializer.data)

        serializer = NegotiationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        negotiation = serializer.save(invoice=invoice, created_by=request.user)
        return Response(
            NegotiationSerializer(negotiation).data,
            status=status.HTTP_201_CREATED,
        )


# =========================
# Negotiations
# =========================
class NegotiationViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = NegotiationSerializer
    permission_classes = [IsAuthenticated, IsInternalOrReadOnly]

    def get_queryset(self):
        user = self.request.user

        if getattr(user, "is_internal", False):
            return Negotiation.objects.select_related("invoice")

        if user.role == "FRANCHISEE" and user.unit_code is not None:
            return Negotiation.objects.filter(invoice__unit_code=user.unit_code)

        return Negotiation.objects.none()

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        negotiation = self.get_object()
        serializer = NegotiationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        negotiation.status = serializer.validated_data["status"]
        negotiation.save(update_fields=["status"])
        return Response(NegotiationSerializer(negotiation).data)
