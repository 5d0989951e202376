import uuid

from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal

class Product(models.Model):
    """
    Product master, fingerprinted by the perceptual hash of its photo.

    ``last_supplier`` and ``last_price`` remember what the product was last
    bought at; order, pickup and receiving flows refresh them.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    image_url = models.TextField(blank=True)
    image_hash = models.CharField(max_length=64, unique=True)
    description = models.CharField(max_length=255, default='Item')
    category = models.CharField(max_length=100, blank=True)

    last_supplier = models.ForeignKey(
        'suppliers.Supplier', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='remembered_products'
    )
    last_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.description} [{self.image_hash[:8]}]"


class ProductSupplierAssignment(models.Model):
    """How often a product has been bought from a supplier"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='supplier_assignments')
    supplier = models.ForeignKey('suppliers.Supplier', on_delete=models.CASCADE, related_name='product_assignments')
    assignment_count = models.PositiveIntegerField(default=0)
    last_assigned_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-assignment_count', '-last_assigned_at']
        unique_together = ['product', 'supplier']

    def __str__(self):
        return f"{self.product} <- {self.supplier} ({self.assignment_count}x)"
