from rest_framework import viewsets, status
from rest_framework.response import Response
from accounts.permissions import RoleAreaPermission
from marketlens_api.exceptions import MarketLensError, error_response
from .models import Supplier
from .serializers import SupplierSerializer
from . import services

class SupplierViewSet(viewsets.ModelViewSet):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = [RoleAreaPermission]
    permission_area = 'suppliers'

    def get_queryset(self):
        queryset = Supplier.objects.all()
        search = self.request.query_params.get('search')
        tag = self.request.query_params.get('tag')

        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        if tag:
            queryset = queryset.filter(tag__iexact=tag.strip())

        return queryset

    def create(self, request, *args, **kwargs):
        """Create a supplier; an existing name (any case) gets its phone refreshed"""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            supplier = services.add_supplier(
                serializer.validated_data['name'],
                serializer.validated_data.get('phone', ''),
            )
        except MarketLensError as e:
            return error_response(e)
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        try:
            supplier = services.update_supplier(
                instance.id,
                serializer.validated_data.get('name', instance.name),
                phone=serializer.validated_data.get('phone'),
                tag=serializer.validated_data.get('tag'),
            )
        except MarketLensError as e:
            return error_response(e)
        return Response(SupplierSerializer(supplier).data)
