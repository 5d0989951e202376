from rest_framework import serializers
from .models import BillingEntry
from .services import PROOF_KINDS

class BillingEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = BillingEntry
        fields = [
            'id', 'inward_log_id', 'price_per_unit', 'total_received_qty',
            'total_amount', 'gst_enabled', 'gst_amount', 'final_amount',
            'bill_proof_url', 'payment_proof_url', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

class UpsertBillingEntrySerializer(serializers.Serializer):
    inward_log_id = serializers.UUIDField()
    price_per_unit = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    gst_enabled = serializers.BooleanField(default=False)

class ToggleGSTSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()

class AttachProofSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=list(PROOF_KINDS))
    image = serializers.ImageField()
