from django.contrib import admin
from .models import StoreConfig, ScannedOrder

@admin.register(StoreConfig)
class StoreConfigAdmin(admin.ModelAdmin):
    list_display = ['shop_name', 'shopify_domain', 'updated_at']
    search_fields = ['shop_name', 'shopify_domain']
    readonly_fields = ['id', 'created_at', 'updated_at']

@admin.register(ScannedOrder)
class ScannedOrderAdmin(admin.ModelAdmin):
    list_display = ['order_name', 'shop_name', 'customer_name', 'total_price', 'status', 'synced_at']
    list_filter = ['status', 'shop_name', 'synced_at']
    search_fields = ['order_name', 'customer_name', 'customer_email']
    readonly_fields = ['id', 'synced_at']
