"""
Immutable, per-request view of suppliers, products and daily logs.

Summary projections are computed from a snapshot instead of hitting the
database repeatedly, and can be tested with hand-built snapshots.
"""

from dataclasses import dataclass, field
from datetime import date as date_type, datetime
from decimal import Decimal
from functools import cached_property
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from suppliers.models import Supplier
from products.models import Product
from .models import DailyLog


@dataclass(frozen=True)
class SupplierRow:
    id: str
    name: str
    phone: str = ''
    tag: str = ''


@dataclass(frozen=True)
class ProductRow:
    id: str
    description: str
    image_hash: str = ''
    image_url: str = ''
    last_supplier_id: Optional[str] = None
    last_price: Optional[Decimal] = None


@dataclass(frozen=True)
class LogRow:
    id: str
    product_id: Optional[str]
    supplier_id: Optional[str]
    date: date_type
    status: str
    has_sizes: bool = False
    ordered_qty: Mapping[str, int] = field(default_factory=dict)
    picked_qty: Mapping[str, int] = field(default_factory=dict)
    dispatched_qty: Mapping[str, int] = field(default_factory=dict)
    received_qty: Mapping[str, int] = field(default_factory=dict)
    price: Optional[Decimal] = None
    notes: str = ''
    history: Tuple[Mapping, ...] = ()
    created_at: Optional[datetime] = None
    version: int = 1


def _frozen(mapping):
    return MappingProxyType(dict(mapping or {}))


def _id(value):
    return str(value) if value is not None else None


def supplier_row(supplier):
    return SupplierRow(id=_id(supplier.id), name=supplier.name, phone=supplier.phone, tag=supplier.tag)


def product_row(product):
    return ProductRow(
        id=_id(product.id),
        description=product.description,
        image_hash=product.image_hash,
        image_url=product.image_url,
        last_supplier_id=_id(product.last_supplier_id),
        last_price=product.last_price,
    )


def log_row(log):
    return LogRow(
        id=_id(log.id),
        product_id=_id(log.product_id),
        supplier_id=_id(log.supplier_id),
        date=log.date,
        status=log.status,
        has_sizes=log.has_sizes,
        ordered_qty=_frozen(log.ordered_qty),
        picked_qty=_frozen(log.picked_qty),
        dispatched_qty=_frozen(log.dispatched_qty),
        received_qty=_frozen(log.received_qty),
        price=log.price,
        notes=log.notes,
        history=tuple(MappingProxyType(dict(entry)) for entry in (log.history or [])),
        created_at=log.created_at,
        version=log.version,
    )


@dataclass(frozen=True)
class StoreSnapshot:
    suppliers: Tuple[SupplierRow, ...] = ()
    products: Tuple[ProductRow, ...] = ()
    logs: Tuple[LogRow, ...] = ()

    @classmethod
    def capture(cls, logs=None):
        """Read the current state. ``logs`` narrows which logs are included."""
        log_queryset = logs if logs is not None else DailyLog.objects.all()
        return cls(
            suppliers=tuple(supplier_row(s) for s in Supplier.objects.all()),
            products=tuple(product_row(p) for p in Product.objects.all()),
            logs=tuple(log_row(log) for log in log_queryset),
        )

    @cached_property
    def suppliers_by_id(self):
        return MappingProxyType({s.id: s for s in self.suppliers})

    @cached_property
    def products_by_id(self):
        return MappingProxyType({p.id: p for p in self.products})

    def supplier(self, supplier_id) -> Optional[SupplierRow]:
        return self.suppliers_by_id.get(_id(supplier_id))

    def product(self, product_id) -> Optional[ProductRow]:
        return self.products_by_id.get(_id(product_id))
