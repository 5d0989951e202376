import uuid

from django.db import models
from django.utils import timezone

class Supplier(models.Model):
    """
    Market supplier a purchase is made from.

    Suppliers are identified by name (case-insensitive) when orders are
    captured, so ``name`` is stored trimmed and the id never changes.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True)
    tag = models.CharField(max_length=50, blank=True, help_text="Free-form label, e.g. market lane or stall number")

    last_used_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-last_used_at']
        indexes = [
            models.Index(fields=['name'], name='suppliers_name_idx'),
        ]

    def __str__(self):
        return self.name
