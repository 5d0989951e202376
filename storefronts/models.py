import uuid

from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal

from .constants import SCANNED_STATUS_CHOICES, SCANNED_STATUS_IMPORTED


class StoreConfig(models.Model):
    """Credentials for one Shopify store used for order lookups"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop_name = models.CharField(max_length=200)
    shopify_domain = models.CharField(max_length=200, unique=True)
    access_token = models.CharField(max_length=200)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['shop_name']

    def __str__(self):
        return f"{self.shop_name} ({self.shopify_domain})"


class ScannedOrder(models.Model):
    """
    A storefront order pulled in by scanning its order name.

    ``line_items`` keeps the order lines as returned by the lookup so the
    purchase orders built from it stay explainable.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_name = models.CharField(max_length=100)
    shop_name = models.CharField(max_length=200, blank=True)
    shopify_domain = models.CharField(max_length=200, blank=True)
    line_items = models.JSONField(default=list, blank=True)
    total_price = models.DecimalField(
        max_digits=12, decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    customer_name = models.CharField(max_length=200, blank=True)
    customer_email = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=20, choices=SCANNED_STATUS_CHOICES, default=SCANNED_STATUS_IMPORTED)
    notes = models.TextField(blank=True)
    synced_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        'accounts.User', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='scanned_orders'
    )

    class Meta:
        ordering = ['-synced_at']
        indexes = [
            models.Index(fields=['order_name'], name='scanned_order_name_idx'),
        ]

    def __str__(self):
        return f"{self.order_name} - {self.shop_name}"
