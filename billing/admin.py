from django.contrib import admin
from .models import BillingEntry

@admin.register(BillingEntry)
class BillingEntryAdmin(admin.ModelAdmin):
    list_display = ['inward_log_id', 'total_received_qty', 'price_per_unit', 'total_amount', 'gst_enabled', 'final_amount', 'updated_at']
    list_filter = ['gst_enabled', 'created_at']
    search_fields = ['inward_log_id']
    readonly_fields = ['id', 'total_received_qty', 'total_amount', 'gst_amount', 'final_amount', 'created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'inward_log_id', 'price_per_unit', 'total_received_qty')
        }),
        ('Financial', {
            'fields': ('total_amount', 'gst_enabled', 'gst_amount', 'final_amount')
        }),
        ('Proofs', {
            'fields': ('bill_proof_url', 'payment_proof_url')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
