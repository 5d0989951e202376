from django.contrib import admin
from .models import Supplier

@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'tag', 'last_used_at', 'created_at']
    list_filter = ['tag']
    search_fields = ['name', 'phone', 'tag']
    readonly_fields = ['id', 'created_at', 'updated_at']
