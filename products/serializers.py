from rest_framework import serializers
from .models import Product, ProductSupplierAssignment

class ProductSerializer(serializers.ModelSerializer):
    last_supplier_name = serializers.CharField(source='last_supplier.name', read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            'id', 'image_url', 'image_hash', 'description', 'category',
            'last_supplier', 'last_supplier_name', 'last_price', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'image_hash', 'last_supplier', 'last_price', 'created_at', 'updated_at']

class ProductSupplierAssignmentSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)

    class Meta:
        model = ProductSupplierAssignment
        fields = ['supplier', 'supplier_name', 'assignment_count', 'last_assigned_at']

class ImageHashSerializer(serializers.Serializer):
    image = serializers.ImageField()
