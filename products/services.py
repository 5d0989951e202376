"""
Product resolution and the "memory" fields kept on each product.
"""

import logging
from decimal import Decimal
from typing import Optional

from django.db.models import F
from django.utils import timezone

from .models import Product, ProductSupplierAssignment

logger = logging.getLogger(__name__)


def find_by_hash(image_hash: str) -> Optional[Product]:
    if not image_hash:
        return None
    return Product.objects.filter(image_hash=image_hash).first()


def update_product_memory(product: Product, supplier=None, price: Optional[Decimal] = None) -> Product:
    """Remember the latest supplier and price when they changed."""
    update_fields = []
    if supplier is not None and product.last_supplier_id != supplier.id:
        product.last_supplier = supplier
        update_fields.append('last_supplier')
    if price is not None and product.last_price != price:
        product.last_price = price
        update_fields.append('last_price')
    if update_fields:
        product.save(update_fields=update_fields + ['updated_at'])
    return product


def resolve_product(image_hash: str, description: Optional[str] = None, price: Optional[Decimal] = None,
                    supplier=None, image_url: str = '', category: str = '') -> Product:
    """
    Return the product with this exact hash, creating it when unseen.

    Existing products only get their memory fields refreshed.
    """
    product = find_by_hash(image_hash)
    if product:
        return update_product_memory(product, supplier=supplier, price=price)

    product = Product.objects.create(
        image_hash=image_hash,
        image_url=image_url or '',
        description=(description or '').strip() or 'Item',
        category=category or '',
        last_supplier=supplier,
        last_price=price,
    )
    logger.info(f"Created product '{product.description}' ({product.id})")
    return product


def record_assignment(product: Product, supplier) -> ProductSupplierAssignment:
    """Count one more purchase of ``product`` from ``supplier``."""
    assignment, created = ProductSupplierAssignment.objects.get_or_create(
        product=product,
        supplier=supplier,
        defaults={'assignment_count': 1, 'last_assigned_at': timezone.now()},
    )
    if not created:
        ProductSupplierAssignment.objects.filter(pk=assignment.pk).update(
            assignment_count=F('assignment_count') + 1,
            last_assigned_at=timezone.now(),
        )
        assignment.refresh_from_db()
    return assignment


def most_frequent_supplier(product: Product) -> Optional[ProductSupplierAssignment]:
    """The supplier this product is bought from most often (latest wins ties)."""
    return (
        ProductSupplierAssignment.objects
        .filter(product=product)
        .select_related('supplier')
        .order_by('-assignment_count', '-last_assigned_at')
        .first()
    )
