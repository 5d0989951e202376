from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from django.db.models import Q
from accounts.permissions import RoleAreaPermission
from marketlens_api.exceptions import MarketLensError, error_response
from .imaging import hash_upload
from .models import Product
from .serializers import ProductSerializer, ProductSupplierAssignmentSerializer, ImageHashSerializer
from .services import find_by_hash, most_frequent_supplier

class ProductViewSet(viewsets.ModelViewSet):
    """Product catalog. Products are created by order capture, never directly."""
    queryset = Product.objects.select_related('last_supplier')
    serializer_class = ProductSerializer
    permission_classes = [RoleAreaPermission]
    permission_area = 'orders'
    http_method_names = ['get', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = Product.objects.select_related('last_supplier')
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(description__icontains=search) | Q(category__icontains=search))
        return queryset


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def hash_image(request):
    """
    Fingerprint an uploaded photo and return the matching product, if any
    """
    serializer = ImageHashSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({
            'error': 'Invalid input data',
            'message': 'Upload a product photo in the "image" field',
            'details': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    try:
        image_hash = hash_upload(serializer.validated_data['image'])
    except MarketLensError as e:
        return error_response(e)

    product = find_by_hash(image_hash)
    return Response({
        'image_hash': image_hash,
        'product': ProductSerializer(product).data if product else None,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_suggestion(request, product_id):
    """Suggest the supplier this product is usually bought from"""
    product = get_object_or_404(Product, id=product_id)
    assignment = most_frequent_supplier(product)
    return Response({
        'product_id': str(product.id),
        'suggestion': ProductSupplierAssignmentSerializer(assignment).data if assignment else None,
        'last_supplier': str(product.last_supplier_id) if product.last_supplier_id else None,
    })
