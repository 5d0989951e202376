from django.contrib import admin
from .models import DailyLog, PurchaseOrder

@admin.register(DailyLog)
class DailyLogAdmin(admin.ModelAdmin):
    list_display = ['product', 'supplier', 'date', 'status', 'has_sizes', 'price', 'version', 'updated_at']
    list_filter = ['status', 'date', 'has_sizes']
    search_fields = ['product__description', 'supplier__name', 'notes']
    readonly_fields = ['id', 'status', 'history', 'version', 'created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'product', 'supplier', 'date', 'has_sizes', 'status', 'price')
        }),
        ('Quantities', {
            'fields': ('ordered_qty', 'picked_qty', 'dispatched_qty', 'received_qty')
        }),
        ('Additional Information', {
            'fields': ('notes', 'pickup_proof_url', 'created_by')
        }),
        ('Audit', {
            'fields': ('history', 'version', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier_name', 'status', 'total_amount', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['po_number', 'supplier_name', 'notes']
    readonly_fields = ['id', 'po_number', 'items', 'total_amount', 'history', 'created_at', 'updated_at']
