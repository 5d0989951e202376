import json

from rest_framework import serializers
from .constants import PO_STATUS_CHOICES
from .lifecycle import is_active_for_pickup, pending_quantities
from .models import DailyLog, PurchaseOrder


class QuantityMapField(serializers.Field):
    """
    ``{size: amount}`` mapping. Accepts a JSON object, or a JSON string when
    sent as multipart form data alongside a photo.
    """
    default_error_messages = {
        'invalid': 'Expected a mapping of size to quantity.',
    }

    def to_internal_value(self, data):
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except ValueError:
                self.fail('invalid')
        if not isinstance(data, dict):
            self.fail('invalid')
        return data

    def to_representation(self, value):
        return dict(value or {})


class DailyLogSerializer(serializers.ModelSerializer):
    product_description = serializers.CharField(source='product.description', read_only=True, default=None)
    product_image_url = serializers.CharField(source='product.image_url', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    is_active_for_pickup = serializers.SerializerMethodField()
    pending_qty = serializers.SerializerMethodField()

    class Meta:
        model = DailyLog
        fields = [
            'id', 'product', 'product_description', 'product_image_url',
            'supplier', 'supplier_name', 'date', 'has_sizes',
            'ordered_qty', 'picked_qty', 'dispatched_qty', 'received_qty', 'pending_qty',
            'price', 'status', 'is_active_for_pickup', 'notes', 'pickup_proof_url',
            'history', 'version', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_is_active_for_pickup(self, obj):
        return is_active_for_pickup(obj)

    def get_pending_qty(self, obj):
        return pending_quantities(obj)


class CreateOrderSerializer(serializers.Serializer):
    """Order capture. Send either a photo or an already computed hash."""
    image = serializers.ImageField(required=False)
    image_hash = serializers.CharField(max_length=64, required=False, allow_blank=True)
    image_url = serializers.CharField(required=False, allow_blank=True, default='')
    quantities = QuantityMapField()
    has_sizes = serializers.BooleanField(default=False)
    supplier_name = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)

    def validate(self, data):
        if not data.get('image') and not data.get('image_hash'):
            raise serializers.ValidationError({
                'image': 'Either a product photo or an image_hash is required'
            })
        return data


class AdjustDetailsSerializer(serializers.Serializer):
    ordered_qty = QuantityMapField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    expected_version = serializers.IntegerField(required=False, allow_null=True)


class LogSupplierSerializer(serializers.Serializer):
    supplier_name = serializers.CharField(max_length=200)
    expected_version = serializers.IntegerField(required=False, allow_null=True)


class PickupSerializer(serializers.Serializer):
    picked = QuantityMapField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    proof_image = serializers.ImageField(required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    supplier_name = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    supplier_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    expected_version = serializers.IntegerField(required=False, allow_null=True)


class ReceiveSerializer(serializers.Serializer):
    received = QuantityMapField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    supplier_name = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    supplier_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    expected_version = serializers.IntegerField(required=False, allow_null=True)


class MergeLogsSerializer(serializers.Serializer):
    source_log_id = serializers.UUIDField()
    target_log_id = serializers.UUIDField()
    expected_source_version = serializers.IntegerField(required=False, allow_null=True)
    expected_target_version = serializers.IntegerField(required=False, allow_null=True)


class PurchaseOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'supplier', 'supplier_name', 'supplier_phone', 'linked_order',
            'items', 'total_amount', 'status', 'notes', 'history', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CreatePurchaseOrderSerializer(serializers.Serializer):
    log_ids = serializers.ListField(
        child=serializers.UUIDField(),
        min_length=1,
        error_messages={'min_length': 'At least one daily log is required'}
    )
    supplier_id = serializers.UUIDField(required=False, allow_null=True)
    linked_order_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class UpdatePurchaseOrderSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PO_STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
