from rest_framework import serializers
from .models import StoreConfig, ScannedOrder

class StoreConfigSerializer(serializers.ModelSerializer):
    access_token = serializers.CharField(write_only=True)
    token_preview = serializers.SerializerMethodField()

    class Meta:
        model = StoreConfig
        fields = ['id', 'shop_name', 'shopify_domain', 'access_token', 'token_preview', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
        # Uniqueness is checked on the cleaned domain in the service
        extra_kwargs = {'shopify_domain': {'validators': []}}

    def get_token_preview(self, obj):
        return f"{obj.access_token[:6]}...{obj.access_token[-4:]}" if obj.access_token else ''

class VerifyStoreSerializer(serializers.Serializer):
    shopify_domain = serializers.CharField(max_length=200)
    access_token = serializers.CharField(max_length=200)

class OrderLookupSerializer(serializers.Serializer):
    order_name = serializers.CharField(max_length=100)

class ScannedOrderSerializer(serializers.ModelSerializer):
    purchase_orders = serializers.SerializerMethodField()

    class Meta:
        model = ScannedOrder
        fields = [
            'id', 'order_name', 'shop_name', 'shopify_domain', 'line_items',
            'total_price', 'customer_name', 'customer_email', 'status',
            'notes', 'synced_at', 'purchase_orders'
        ]
        read_only_fields = fields

    def get_purchase_orders(self, obj):
        return [po.po_number for po in obj.purchase_orders.all()]
