import uuid

from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
from django.utils import timezone

from .constants import LOG_STATUS_CHOICES, STATUS_ORDERED, PO_STATUS_CHOICES


class DailyLog(models.Model):
    """
    One purchase entry for a product on a given day.

    Quantities are kept per size key (``Total`` when the product is not
    sized). ``status`` is always derived from the quantity maps and
    ``history`` is an append-only list of ``{action, timestamp, ...}``
    entries. ``version`` goes up on every write.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        'products.Product', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='daily_logs'
    )
    supplier = models.ForeignKey(
        'suppliers.Supplier', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='daily_logs'
    )
    date = models.DateField(default=timezone.localdate)
    has_sizes = models.BooleanField(default=False)

    ordered_qty = models.JSONField(default=dict, blank=True)
    picked_qty = models.JSONField(default=dict, blank=True)
    dispatched_qty = models.JSONField(default=dict, blank=True)
    received_qty = models.JSONField(default=dict, blank=True)

    price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    status = models.CharField(max_length=20, choices=LOG_STATUS_CHOICES, default=STATUS_ORDERED)
    notes = models.TextField(blank=True)
    pickup_proof_url = models.TextField(blank=True)
    history = models.JSONField(default=list, blank=True)

    version = models.PositiveIntegerField(default=1)
    created_by = models.ForeignKey('accounts.User', on_delete=models.SET_NULL, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', 'created_at']
        indexes = [
            models.Index(fields=['product', 'date'], name='procurement_product_date_idx'),
            models.Index(fields=['status'], name='procurement_status_idx'),
        ]

    def __str__(self):
        product = self.product.description if self.product else 'Unknown product'
        return f"{product} on {self.date} ({self.status})"


class PurchaseOrder(models.Model):
    """
    Snapshot of a batch of daily logs sent to one supplier.

    Items are frozen at creation; afterwards only ``status`` and ``notes``
    change.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    po_number = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(
        'suppliers.Supplier', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='purchase_orders'
    )
    supplier_name = models.CharField(max_length=200, blank=True)
    supplier_phone = models.CharField(max_length=20, blank=True)
    linked_order = models.ForeignKey(
        'storefronts.ScannedOrder', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='purchase_orders'
    )

    items = models.JSONField(default=list, blank=True)
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    status = models.CharField(max_length=20, choices=PO_STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)
    history = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey('accounts.User', on_delete=models.SET_NULL, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.po_number} ({self.supplier_name or 'No Supplier'})"

    def save(self, *args, **kwargs):
        if not self.po_number:
            po_year = timezone.localdate().year
            prefix = f"PO-{po_year}-"

            last_po = PurchaseOrder.objects.filter(
                po_number__startswith=prefix
            ).order_by('-po_number').first()

            if last_po:
                new_num = int(last_po.po_number.split('-')[-1]) + 1
            else:
                new_num = 1

            self.po_number = f"{prefix}{new_num:04d}"

        super().save(*args, **kwargs)
