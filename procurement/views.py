from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.utils.dateparse import parse_date

from accounts.permissions import RoleAreaPermission, IsAdminRole, area_permission
from marketlens_api.exceptions import MarketLensError, error_response, invalid_input_response
from marketlens_api.storage import save_upload, discard
from products.imaging import hash_upload
from products.services import find_by_hash
from products.serializers import ProductSerializer
from storefronts.models import ScannedOrder
from . import services, summaries
from .constants import STATUS_ORDERED, STATUS_DISPATCHED, RECEIVED_STATUSES, PICKUP_STATUSES
from .merging import merge_logs as merge_log_entries
from .models import DailyLog, PurchaseOrder
from .serializers import (
    DailyLogSerializer, CreateOrderSerializer, AdjustDetailsSerializer, LogSupplierSerializer,
    PickupSerializer, ReceiveSerializer, MergeLogsSerializer,
    PurchaseOrderSerializer, CreatePurchaseOrderSerializer, UpdatePurchaseOrderSerializer,
)
from .snapshot import StoreSnapshot


class DailyLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Daily purchase logs. Filter with ?date=YYYY-MM-DD, ?status=, ?supplier=, ?product=
    """
    serializer_class = DailyLogSerializer
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action == 'destroy':
            return [IsAdminRole()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = DailyLog.objects.select_related('product', 'supplier')
        params = self.request.query_params

        log_date = parse_date(params.get('date') or '')
        if log_date:
            queryset = queryset.filter(date=log_date)
        statuses = [s for s in (params.get('status') or '').split(',') if s]
        if statuses:
            queryset = queryset.filter(status__in=statuses)
        if params.get('supplier'):
            queryset = queryset.filter(supplier_id=params['supplier'])
        if params.get('product'):
            queryset = queryset.filter(product_id=params['product'])

        return queryset

    def destroy(self, request, *args, **kwargs):
        """Hard delete a log (admin only)"""
        try:
            services.delete_log(kwargs['pk'])
        except MarketLensError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([area_permission('orders')])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def create_order(request):
    """
    Capture an order for a photographed product.

    Reuses today's open log for the same product when there is one.
    """
    serializer = CreateOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    stored_url = None
    try:
        image = data.get('image')
        image_hash = data.get('image_hash')
        image_url = data.get('image_url') or ''
        if image is not None:
            image_hash = hash_upload(image)
            if find_by_hash(image_hash) is None:
                image_url = stored_url = save_upload(image, 'products')

        result = services.create_or_merge_order(
            image_hash,
            data['quantities'],
            data['has_sizes'],
            supplier_name=data.get('supplier_name'),
            description=data.get('description'),
            price=data.get('price'),
            phone=data.get('phone'),
            image_url=image_url,
            category=data.get('category') or '',
            user=request.user,
        )
    except MarketLensError as e:
        discard(stored_url)
        return error_response(e)

    return Response({
        'success': True,
        'merged': result.merged,
        'log': DailyLogSerializer(result.log).data,
        'product': ProductSerializer(result.product).data,
        'message': 'Order added to existing entry' if result.merged else 'Order created',
    }, status=status.HTTP_200_OK if result.merged else status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([area_permission('orders')])
def adjust_log_details(request, log_id):
    """Edit the ordered quantities / price of a log still waiting for pickup"""
    serializer = AdjustDetailsSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    try:
        log = services.adjust_log_details(
            log_id, data['ordered_qty'], price=data.get('price'),
            user=request.user, expected_version=data.get('expected_version'),
        )
    except MarketLensError as e:
        return error_response(e)
    return Response(DailyLogSerializer(log).data)


@api_view(['POST'])
@permission_classes([area_permission('orders')])
def update_log_supplier(request, log_id):
    serializer = LogSupplierSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    try:
        log = services.update_log_supplier(
            log_id, data['supplier_name'], user=request.user,
            expected_version=data.get('expected_version'),
        )
    except MarketLensError as e:
        return error_response(e)
    return Response(DailyLogSerializer(log).data)


@api_view(['POST'])
@permission_classes([area_permission('pickup')])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def process_pickup(request, log_id):
    """
    Confirm a market pickup. A partial pickup splits the log and the
    response carries both the dispatched log and the remainder.
    """
    serializer = PickupSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    proof_url = None
    try:
        if data.get('proof_image') is not None:
            proof_url = save_upload(data['proof_image'], 'pickup-proofs')

        result = services.process_pickup(
            log_id,
            data['picked'],
            notes=data.get('notes'),
            proof_url=proof_url,
            price=data.get('price'),
            supplier_name=data.get('supplier_name'),
            supplier_phone=data.get('supplier_phone'),
            user=request.user,
            expected_version=data.get('expected_version'),
        )
    except MarketLensError as e:
        discard(proof_url)
        return error_response(e)

    return Response({
        'success': True,
        'outcome': result.plan.kind,
        'log': DailyLogSerializer(result.log).data,
        'remainder': DailyLogSerializer(result.remainder).data if result.remainder else None,
    })


@api_view(['POST'])
@permission_classes([area_permission('warehouse')])
def process_receiving(request, log_id):
    serializer = ReceiveSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    try:
        log = services.process_receiving(
            log_id,
            data['received'],
            price=data.get('price'),
            supplier_name=data.get('supplier_name'),
            supplier_phone=data.get('supplier_phone'),
            user=request.user,
            expected_version=data.get('expected_version'),
        )
    except MarketLensError as e:
        return error_response(e)
    return Response(DailyLogSerializer(log).data)


@api_view(['POST'])
@permission_classes([area_permission('orders')])
def merge_logs(request):
    """Merge source_log_id into target_log_id; the source is deleted"""
    serializer = MergeLogsSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    try:
        target = merge_log_entries(
            data['source_log_id'],
            data['target_log_id'],
            user=request.user,
            expected_source_version=data.get('expected_source_version'),
            expected_target_version=data.get('expected_target_version'),
        )
    except MarketLensError as e:
        return error_response(e)

    return Response({
        'success': True,
        'log': DailyLogSerializer(target).data,
        'deleted_log_id': str(data['source_log_id']),
    })


# Summaries

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def orders_summary(request):
    snapshot = StoreSnapshot.capture(DailyLog.objects.filter(status=STATUS_ORDERED))
    return Response(summaries.orders_by_supplier(snapshot))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pickup_summary(request):
    snapshot = StoreSnapshot.capture(DailyLog.objects.filter(status__in=PICKUP_STATUSES))
    return Response(summaries.pickup_queue(snapshot))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def incoming_summary(request):
    snapshot = StoreSnapshot.capture(DailyLog.objects.filter(status=STATUS_DISPATCHED))
    return Response(summaries.incoming_by_supplier(snapshot))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def received_summary(request):
    """Received history, optionally limited with ?start=YYYY-MM-DD&end=YYYY-MM-DD"""
    start = parse_date(request.query_params.get('start') or '')
    end = parse_date(request.query_params.get('end') or '')
    snapshot = StoreSnapshot.capture(DailyLog.objects.filter(status__in=RECEIVED_STATUSES))
    return Response(summaries.received_history(snapshot, start=start, end=end))


@api_view(['GET'])
@permission_classes([area_permission('billing')])
def billing_summary(request):
    snapshot = StoreSnapshot.capture(DailyLog.objects.filter(status__in=RECEIVED_STATUSES))
    return Response(summaries.billing_groups(snapshot))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def merge_candidates(request):
    snapshot = StoreSnapshot.capture()
    return Response(summaries.merge_candidates(snapshot))


# Purchase orders

class PurchaseOrderViewSet(viewsets.ModelViewSet):
    queryset = PurchaseOrder.objects.all()
    serializer_class = PurchaseOrderSerializer
    permission_classes = [RoleAreaPermission]
    permission_area = 'orders'
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = PurchaseOrder.objects.all()
        po_status = self.request.query_params.get('status')
        supplier = self.request.query_params.get('supplier')
        if po_status:
            queryset = queryset.filter(status=po_status)
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = CreatePurchaseOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer.errors)

        data = serializer.validated_data
        linked_order = None
        if data.get('linked_order_id'):
            linked_order = ScannedOrder.objects.filter(id=data['linked_order_id']).first()
            if linked_order is None:
                return Response({
                    'error': 'Scanned order not found',
                    'message': f"Scanned order {data['linked_order_id']} does not exist"
                }, status=status.HTTP_400_BAD_REQUEST)

        try:
            po = services.create_purchase_order(
                data['log_ids'],
                supplier_id=data.get('supplier_id'),
                notes=data.get('notes', ''),
                linked_order=linked_order,
                user=request.user,
            )
        except MarketLensError as e:
            return error_response(e)

        return Response(PurchaseOrderSerializer(po).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = UpdatePurchaseOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer.errors)

        try:
            po = services.update_purchase_order(
                kwargs['pk'],
                status=serializer.validated_data.get('status'),
                notes=serializer.validated_data.get('notes'),
                user=request.user,
            )
        except MarketLensError as e:
            return error_response(e)
        return Response(PurchaseOrderSerializer(po).data)

    def destroy(self, request, *args, **kwargs):
        try:
            services.delete_purchase_order(kwargs['pk'])
        except MarketLensError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)
