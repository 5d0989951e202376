import uuid

from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal

class BillingEntry(models.Model):
    """
    Supplier bill for one received daily log.

    Keyed by the log id without a foreign key, so the ledger keeps its
    history even if the log is later removed. All amounts are derived from
    the received quantity, the unit price and the GST flag.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    inward_log_id = models.UUIDField(unique=True)

    price_per_unit = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    total_received_qty = models.PositiveIntegerField(default=0)
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    gst_enabled = models.BooleanField(default=False)
    gst_amount = models.DecimalField(
        max_digits=12, decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    final_amount = models.DecimalField(
        max_digits=12, decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    bill_proof_url = models.TextField(blank=True)
    payment_proof_url = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']
        verbose_name_plural = 'billing entries'

    def __str__(self):
        return f"Bill for log {self.inward_log_id}: {self.final_amount}"
