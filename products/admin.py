from django.contrib import admin
from .models import Product, ProductSupplierAssignment

class ProductSupplierAssignmentInline(admin.TabularInline):
    model = ProductSupplierAssignment
    extra = 0
    readonly_fields = ['assignment_count', 'last_assigned_at']

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['description', 'category', 'image_hash', 'last_supplier', 'last_price', 'created_at']
    list_filter = ['category', 'created_at']
    search_fields = ['description', 'image_hash', 'last_supplier__name']
    readonly_fields = ['id', 'image_hash', 'created_at', 'updated_at']
    inlines = [ProductSupplierAssignmentInline]

@admin.register(ProductSupplierAssignment)
class ProductSupplierAssignmentAdmin(admin.ModelAdmin):
    list_display = ['product', 'supplier', 'assignment_count', 'last_assigned_at']
    search_fields = ['product__description', 'supplier__name']
