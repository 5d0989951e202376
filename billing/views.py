from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response

from accounts.permissions import RoleAreaPermission, area_permission
from marketlens_api.exceptions import MarketLensError, error_response, invalid_input_response
from marketlens_api.storage import save_upload, discard
from . import services
from .models import BillingEntry
from .serializers import (
    BillingEntrySerializer, UpsertBillingEntrySerializer, ToggleGSTSerializer, AttachProofSerializer,
)


class BillingEntryViewSet(viewsets.ReadOnlyModelViewSet):
    """Billing ledger. Filter with ?log=<daily log id>"""
    serializer_class = BillingEntrySerializer
    permission_classes = [RoleAreaPermission]
    permission_area = 'billing'

    def get_queryset(self):
        queryset = BillingEntry.objects.all()
        log_id = self.request.query_params.get('log')
        if log_id:
            queryset = queryset.filter(inward_log_id=log_id)
        return queryset

    def destroy(self, request, *args, **kwargs):
        try:
            services.delete_billing_entry(kwargs['pk'])
        except MarketLensError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([area_permission('billing')])
def upsert_billing_entry(request):
    """Create or recompute the bill for a received log"""
    serializer = UpsertBillingEntrySerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    try:
        entry, created = services.upsert_billing_entry(
            data['inward_log_id'], data['price_per_unit'], data['gst_enabled'],
        )
    except MarketLensError as e:
        return error_response(e)

    return Response(
        BillingEntrySerializer(entry).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
    )


@api_view(['POST'])
@permission_classes([area_permission('billing')])
def toggle_gst(request, billing_id):
    serializer = ToggleGSTSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    try:
        entry = services.toggle_gst(billing_id, serializer.validated_data['enabled'])
    except MarketLensError as e:
        return error_response(e)
    return Response(BillingEntrySerializer(entry).data)


@api_view(['POST'])
@permission_classes([area_permission('billing')])
@parser_classes([MultiPartParser, FormParser])
def attach_proof(request, billing_id):
    """Upload a bill or payment photo (kind=bill|payment)"""
    serializer = AttachProofSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    url = None
    try:
        url = save_upload(data['image'], f"billing/{data['kind']}")
        entry = services.attach_proof(billing_id, data['kind'], url)
    except MarketLensError as e:
        discard(url)
        return error_response(e)
    return Response(BillingEntrySerializer(entry).data)
