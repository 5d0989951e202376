"""
Supplier lookup and upsert used by every order, pickup and receiving flow.
"""

import logging
from typing import Optional

from django.utils import timezone

from marketlens_api.exceptions import ValidationError, SupplierNotFoundError
from marketlens_api.persistence import atomic_batch, lock_row
from .models import Supplier

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    return (name or '').strip()


def find_by_name(name: str) -> Optional[Supplier]:
    normalized = normalize_name(name)
    if not normalized:
        return None
    return Supplier.objects.filter(name__iexact=normalized).order_by('created_at').first()


def touch_supplier(supplier: Supplier, phone: Optional[str] = None) -> Supplier:
    """Mark a supplier as used now, merging in a phone number when given."""
    supplier.last_used_at = timezone.now()
    update_fields = ['last_used_at', 'updated_at']
    if phone:
        supplier.phone = phone.strip()
        update_fields.append('phone')
    supplier.save(update_fields=update_fields)
    return supplier


def resolve_supplier(name: Optional[str], phone: Optional[str] = None) -> Optional[Supplier]:
    """
    Find a supplier by case-insensitive name or create it.

    Returns ``None`` for a blank name. Callers run this inside their own
    ``atomic_batch`` so the upsert commits with the rest of the operation.
    """
    normalized = normalize_name(name)
    if not normalized:
        return None

    supplier = find_by_name(normalized)
    if supplier:
        return touch_supplier(supplier, phone)

    supplier = Supplier.objects.create(
        name=normalized,
        phone=(phone or '').strip(),
        last_used_at=timezone.now(),
    )
    logger.info(f"Created supplier '{supplier.name}' ({supplier.id})")
    return supplier


def refresh_supplier(current: Optional[Supplier], name: Optional[str] = None,
                     phone: Optional[str] = None) -> Optional[Supplier]:
    """
    Resolve the supplier an operation should point at.

    A given name wins over the current supplier; otherwise a phone number is
    merged into the current supplier.
    """
    if normalize_name(name):
        return resolve_supplier(name, phone)
    if current is not None and phone:
        return touch_supplier(current, phone)
    return current


def add_supplier(name: str, phone: str = '') -> Supplier:
    """Create a supplier, or refresh the phone of an existing one with that name."""
    if not normalize_name(name):
        raise ValidationError('Supplier name is required')
    with atomic_batch():
        supplier = find_by_name(name)
        if supplier:
            supplier.phone = (phone or '').strip()
            supplier.last_used_at = timezone.now()
            supplier.save(update_fields=['phone', 'last_used_at', 'updated_at'])
            logger.info(f"Updated phone for existing supplier '{supplier.name}'")
            return supplier
        supplier = Supplier.objects.create(name=normalize_name(name), phone=(phone or '').strip())
    logger.info(f"Added supplier '{supplier.name}' ({supplier.id})")
    return supplier


def update_supplier(supplier_id, name: str, phone: Optional[str] = None,
                    tag: Optional[str] = None) -> Supplier:
    if not normalize_name(name):
        raise ValidationError('Supplier name is required')
    with atomic_batch():
        supplier = lock_row(Supplier.objects.all(), supplier_id, SupplierNotFoundError)
        supplier.name = normalize_name(name)
        supplier.last_used_at = timezone.now()
        if phone is not None:
            supplier.phone = phone.strip()
        if tag is not None:
            supplier.tag = tag.strip()
        supplier.save()
    logger.info(f"Updated supplier {supplier.id}")
    return supplier
