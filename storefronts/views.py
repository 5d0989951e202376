from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from accounts.permissions import RoleAreaPermission, area_permission
from marketlens_api.exceptions import MarketLensError, error_response, invalid_input_response
from procurement.serializers import PurchaseOrderSerializer
from . import services
from .models import StoreConfig, ScannedOrder
from .serializers import (
    StoreConfigSerializer, VerifyStoreSerializer, OrderLookupSerializer, ScannedOrderSerializer,
)


class StoreConfigViewSet(viewsets.ModelViewSet):
    """Shopify stores searched by order lookups (admin settings)"""
    queryset = StoreConfig.objects.all()
    serializer_class = StoreConfigSerializer
    permission_classes = [RoleAreaPermission]
    permission_area = 'settings'

    def _save(self, request, store_id=None, partial=False):
        instance = self.get_object() if store_id else None
        serializer = StoreConfigSerializer(instance, data=request.data, partial=partial)
        if not serializer.is_valid():
            return invalid_input_response(serializer.errors)

        data = serializer.validated_data
        try:
            store = services.save_store(
                data.get('shop_name', instance.shop_name if instance else ''),
                data.get('shopify_domain', instance.shopify_domain if instance else ''),
                data.get('access_token', instance.access_token if instance else ''),
                store_id=store_id,
            )
        except MarketLensError as e:
            return error_response(e)

        return Response(
            StoreConfigSerializer(store).data,
            status=status.HTTP_200_OK if store_id else status.HTTP_201_CREATED
        )

    def create(self, request, *args, **kwargs):
        return self._save(request)

    def update(self, request, *args, **kwargs):
        return self._save(request, store_id=kwargs['pk'], partial=kwargs.pop('partial', False))

    def destroy(self, request, *args, **kwargs):
        try:
            services.delete_store(kwargs['pk'])
        except MarketLensError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ScannedOrderViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = ScannedOrder.objects.prefetch_related('purchase_orders')
    serializer_class = ScannedOrderSerializer
    permission_classes = [RoleAreaPermission]
    permission_area = 'orders'


@api_view(['POST'])
@permission_classes([area_permission('settings')])
def verify_store(request):
    """Test a domain / token pair against Shopify without saving it"""
    serializer = VerifyStoreSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    try:
        shop = services.verify_store(data['shopify_domain'], data['access_token'])
    except MarketLensError as e:
        return error_response(e)

    return Response({
        'success': True,
        'message': f"Successfully connected to {shop['shop_name']}!",
        **shop,
    })


@api_view(['POST'])
@permission_classes([area_permission('orders')])
def lookup_order(request):
    serializer = OrderLookupSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    try:
        order = services.find_order_across_stores(serializer.validated_data['order_name'])
    except MarketLensError as e:
        return error_response(e)
    return Response({'success': True, 'order': order})


@api_view(['POST'])
@permission_classes([area_permission('orders')])
def import_order(request):
    """Scan an order name and turn its lines into today's purchase logs"""
    serializer = OrderLookupSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    try:
        scanned, po, skipped = services.import_order(
            serializer.validated_data['order_name'], user=request.user
        )
    except MarketLensError as e:
        return error_response(e)

    return Response({
        'success': True,
        'scanned_order': ScannedOrderSerializer(scanned).data,
        'purchase_order': PurchaseOrderSerializer(po).data,
        'skipped': skipped,
    }, status=status.HTTP_201_CREATED)
