"""
Daily log lifecycle services.

Each public function is one user action: it locks the rows it needs, works
out the next state with the pure rules in ``lifecycle`` and writes
everything back in a single ``atomic_batch``. Errors propagate unchanged.
"""

from collections import namedtuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List, Optional
import logging

from django.utils import timezone

from marketlens_api.exceptions import (
    ValidationError, InvalidStateError, LogNotFoundError,
    SupplierNotFoundError, PurchaseOrderNotFoundError,
)
from marketlens_api.persistence import atomic_batch, lock_row, check_version
from products.services import resolve_product, update_product_memory, record_assignment
from suppliers.models import Supplier
from suppliers.services import resolve_supplier, refresh_supplier
from . import lifecycle
from .constants import (
    REOPENABLE_STATUSES, RECEIVABLE_STATUSES, STATUS_ORDERED, PO_STATUS_CHOICES,
    ACTION_CREATED, ACTION_UPDATED_ORDER, ACTION_EDITED_DETAILS, ACTION_SUPPLIER_CHANGE,
    ACTION_VISITED_ZERO, ACTION_PICKUP_DISPATCH, ACTION_PICKUP_FULL_DISPATCH,
    ACTION_SPLIT_REMAINING, ACTION_RECEIVED,
    PO_ACTION_CREATED, PO_ACTION_STATUS_CHANGE, PO_ACTION_NOTES_UPDATED,
)
from .models import DailyLog, PurchaseOrder

logger = logging.getLogger(__name__)

OrderResult = namedtuple('OrderResult', ['log', 'product', 'supplier', 'merged'])
PickupResult = namedtuple('PickupResult', ['log', 'remainder', 'plan'])

CENT = Decimal('0.01')


def parse_price(price) -> Optional[Decimal]:
    if price is None or price == '':
        return None
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Price must be a number, got {price!r}')
    if value < 0:
        raise ValidationError('Price cannot be negative')
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _lock_log(log_id) -> DailyLog:
    return lock_row(DailyLog.objects.all(), log_id, LogNotFoundError)


def _save_log(log: DailyLog, entry: dict, created: bool = False) -> DailyLog:
    """Append the history entry, re-derive status and persist."""
    log.history = list(log.history or []) + [entry]
    log.status = lifecycle.derive_status(log)
    if not created:
        log.version += 1
    log.save()
    return log


def _apply_supplier(log: DailyLog, supplier_name=None, supplier_phone=None) -> bool:
    """Point the log at the resolved supplier. Returns True when it changed."""
    target = refresh_supplier(log.supplier, supplier_name, supplier_phone)
    if target is None or target.id == log.supplier_id:
        return False
    log.supplier = target
    if log.product_id:
        record_assignment(log.product, target)
    return True


def _refresh_product_memory(log: DailyLog, supplier_changed: bool, price: Optional[Decimal]):
    if log.product_id:
        update_product_memory(
            log.product,
            supplier=log.supplier if supplier_changed else None,
            price=price,
        )


# Order capture

def create_or_merge_order(image_hash: str, quantities: Dict[str, int], has_sizes: bool,
                          supplier_name: Optional[str] = None, description: Optional[str] = None,
                          price=None, phone: Optional[str] = None, image_url: str = '',
                          category: str = '', user=None) -> OrderResult:
    """
    Record an order for the photographed product.

    A second order for the same product on the same day is added onto the
    open log (re-opening it for pickup) instead of creating a duplicate.
    Dispatched or received logs are never reopened.
    """
    if not image_hash:
        raise ValidationError('An image hash is required')
    quantities = lifecycle.strip_zeros(lifecycle.normalize(quantities, has_sizes=has_sizes))
    if lifecycle.total(quantities) <= 0:
        raise ValidationError('At least one quantity must be greater than zero')
    price = parse_price(price)
    today = timezone.localdate()

    with atomic_batch():
        supplier = resolve_supplier(supplier_name, phone)
        product = resolve_product(
            image_hash, description=description, price=price, supplier=supplier,
            image_url=image_url, category=category,
        )

        log = (
            DailyLog.objects.select_for_update()
            .filter(product=product, date=today, status__in=REOPENABLE_STATUSES)
            .order_by('created_at')
            .first()
        )

        if log:
            log.ordered_qty = lifecycle.add(log.ordered_qty, quantities)
            log.has_sizes = log.has_sizes or has_sizes
            if supplier:
                log.supplier = supplier
            if price is not None:
                log.price = price
            _save_log(log, lifecycle.history_entry(
                ACTION_UPDATED_ORDER,
                details=f'Added {lifecycle.format_breakdown(quantities)}',
                user=user,
                quantity=lifecycle.total(quantities),
            ))
            merged = True
        else:
            log = DailyLog(
                product=product,
                supplier=supplier,
                date=today,
                has_sizes=has_sizes,
                ordered_qty=quantities,
                price=price,
                created_by=user if getattr(user, 'pk', None) else None,
            )
            _save_log(log, lifecycle.history_entry(ACTION_CREATED, user=user), created=True)
            merged = False

        if supplier:
            record_assignment(product, supplier)

    logger.info(
        f"{'Merged order into' if merged else 'Created'} log {log.id} for product {product.id} "
        f"({lifecycle.format_breakdown(quantities)})"
    )
    return OrderResult(log, product, supplier, merged)


def adjust_log_details(log_id, ordered_qty, price=None, user=None, expected_version=None) -> DailyLog:
    """Admin correction of the quantities (and price) of a log not yet picked up."""
    price = parse_price(price)
    with atomic_batch():
        log = _lock_log(log_id)
        check_version(log, expected_version)
        if log.status != STATUS_ORDERED:
            raise InvalidStateError(f'Only ordered entries can be edited (status is {log.status})')

        quantities = lifecycle.strip_zeros(lifecycle.normalize(ordered_qty, has_sizes=log.has_sizes))
        if lifecycle.total(quantities) <= 0:
            raise ValidationError('At least one quantity must be greater than zero; delete the entry instead')

        log.ordered_qty = quantities
        if price is not None:
            log.price = price
        _save_log(log, lifecycle.history_entry(
            ACTION_EDITED_DETAILS,
            details=f'Ordered: {lifecycle.format_breakdown(quantities)}',
            user=user,
        ))

    logger.info(f"Edited details of log {log.id}")
    return log


def update_log_supplier(log_id, supplier_name: str, user=None, expected_version=None) -> DailyLog:
    if not (supplier_name or '').strip():
        raise ValidationError('Supplier name is required')

    with atomic_batch():
        log = _lock_log(log_id)
        check_version(log, expected_version)
        supplier = resolve_supplier(supplier_name)
        log.supplier = supplier
        if log.product_id:
            update_product_memory(log.product, supplier=supplier)
            record_assignment(log.product, supplier)
        _save_log(log, lifecycle.history_entry(
            ACTION_SUPPLIER_CHANGE, details=f'Supplier: {supplier.name}', user=user,
        ))

    logger.info(f"Log {log.id} now points at supplier {supplier.id}")
    return log


def delete_log(log_id) -> None:
    with atomic_batch():
        log = _lock_log(log_id)
        log.delete()
    logger.info(f"Deleted log {log_id}")


# Market pickup

def process_pickup(log_id, picked_amounts, notes: Optional[str] = None, proof_url: Optional[str] = None,
                   price=None, supplier_name: Optional[str] = None, supplier_phone: Optional[str] = None,
                   user=None, expected_version=None) -> PickupResult:
    """
    Record what was picked up at the market for one log.

    Picking nothing leaves the quantities untouched. Picking everything
    dispatches the log in place. Picking part of it keeps this log id for the
    dispatched part and opens a new log for the rest.
    """
    price = parse_price(price)
    picked = lifecycle.normalize(picked_amounts)

    with atomic_batch():
        log = _lock_log(log_id)
        check_version(log, expected_version)
        if not lifecycle.is_active_for_pickup(log):
            raise InvalidStateError(f'Entry is not waiting for pickup (status is {log.status})')

        plan = lifecycle.plan_pickup(log.ordered_qty, picked)

        supplier_changed = _apply_supplier(log, supplier_name, supplier_phone)
        if price is not None:
            log.price = price
        _refresh_product_memory(log, supplier_changed, price)

        if notes is not None:
            log.notes = notes
        remainder = None

        if plan.kind == lifecycle.PLAN_VISITED_ZERO:
            _save_log(log, lifecycle.history_entry(ACTION_VISITED_ZERO, details=notes or None, user=user))

        elif plan.kind == lifecycle.PLAN_SPLIT:
            original_qty = dict(log.ordered_qty)
            parent_history = list(log.history or [])

            log.ordered_qty = plan.dispatched
            log.picked_qty = plan.dispatched
            log.dispatched_qty = plan.dispatched
            log.received_qty = {}
            if proof_url:
                log.pickup_proof_url = proof_url
            _save_log(log, lifecycle.history_entry(
                ACTION_PICKUP_DISPATCH,
                details=f'Dispatched: {plan.dispatched_total}',
                user=user,
                quantity=plan.dispatched_total,
            ))

            remainder = DailyLog(
                product=log.product,
                supplier=log.supplier,
                date=log.date,
                has_sizes=log.has_sizes,
                ordered_qty=plan.remaining,
                price=log.price,
                history=parent_history,
                created_by=log.created_by,
            )
            _save_log(remainder, lifecycle.history_entry(
                ACTION_SPLIT_REMAINING,
                details=(
                    f'Remaining: {lifecycle.format_breakdown(plan.remaining)} '
                    f'(original order: {lifecycle.format_breakdown(original_qty)})'
                ),
                user=user,
                quantity=lifecycle.total(plan.remaining),
            ), created=True)

        else:
            log.picked_qty = plan.dispatched
            log.dispatched_qty = plan.dispatched
            if proof_url:
                log.pickup_proof_url = proof_url
            _save_log(log, lifecycle.history_entry(
                ACTION_PICKUP_FULL_DISPATCH,
                details=f'Fully Dispatched: {plan.dispatched_total}',
                user=user,
                quantity=plan.dispatched_total,
            ))

    if remainder is not None:
        logger.info(f"Pickup split log {log.id}: dispatched {plan.dispatched}, remainder {remainder.id} {plan.remaining}")
    else:
        logger.info(f"Pickup on log {log.id}: {plan.kind}")
    return PickupResult(log, remainder, plan)


# Warehouse inward

def process_receiving(log_id, received_amounts, price=None, supplier_name: Optional[str] = None,
                      supplier_phone: Optional[str] = None, user=None, expected_version=None) -> DailyLog:
    """
    Record what arrived at the warehouse for a dispatched log.

    The log is fully received once everything that was picked has arrived,
    whatever the original order was. Receiving again replaces the amounts.
    """
    price = parse_price(price)
    received = lifecycle.normalize(received_amounts)
    if not received:
        raise ValidationError('Received quantities are required')

    with atomic_batch():
        log = _lock_log(log_id)
        check_version(log, expected_version)
        if log.status not in RECEIVABLE_STATUSES:
            raise InvalidStateError(f'Entry has not been dispatched yet (status is {log.status})')

        supplier_changed = _apply_supplier(log, supplier_name, supplier_phone)
        if price is not None:
            log.price = price
        _refresh_product_memory(log, supplier_changed, price)

        log.received_qty = received
        _save_log(log, lifecycle.history_entry(
            ACTION_RECEIVED,
            details=(
                f'Received {lifecycle.format_breakdown(received)} '
                f'of {lifecycle.format_breakdown(log.picked_qty)} dispatched'
            ),
            user=user,
            quantity=lifecycle.total(received),
        ))

    logger.info(f"Received log {log.id}: {received} -> {log.status}")
    return log


# Purchase orders

def _purchase_order_item(log: DailyLog) -> dict:
    product = log.product
    price = log.price
    if price is None and product is not None:
        price = product.last_price
    return {
        'log_id': str(log.id),
        'product_id': str(product.id) if product else None,
        'title': product.description if product else 'Item',
        'quantity': lifecycle.total(log.ordered_qty),
        'sizes': dict(log.ordered_qty),
        'price': str(price if price is not None else Decimal('0.00')),
        'has_sizes': log.has_sizes,
        'image_url': product.image_url if product else '',
    }


def create_purchase_order(log_ids: List, supplier_id=None, notes: str = '',
                          linked_order=None, user=None) -> PurchaseOrder:
    """Freeze a set of logs into a numbered purchase order."""
    if not log_ids:
        raise ValidationError('At least one daily log is required')

    with atomic_batch():
        logs = []
        for log_id in log_ids:
            logs.append(lock_row(DailyLog.objects.all(), log_id, LogNotFoundError))

        supplier = None
        if supplier_id:
            supplier = lock_row(Supplier.objects.all(), supplier_id, SupplierNotFoundError)
        else:
            supplier_ids = {log.supplier_id for log in logs if log.supplier_id}
            if len(supplier_ids) == 1:
                supplier = next(log.supplier for log in logs if log.supplier_id)

        items = [_purchase_order_item(log) for log in logs]
        total_amount = sum(
            (Decimal(item['price']) * item['quantity'] for item in items), Decimal('0.00')
        ).quantize(CENT, rounding=ROUND_HALF_UP)

        po = PurchaseOrder(
            supplier=supplier,
            supplier_name=supplier.name if supplier else '',
            supplier_phone=supplier.phone if supplier else '',
            linked_order=linked_order,
            items=items,
            total_amount=total_amount,
            notes=notes or '',
            created_by=user if getattr(user, 'pk', None) else None,
        )
        po.history = [lifecycle.history_entry(PO_ACTION_CREATED, details=f'{len(items)} item(s)', user=user)]
        po.save()

    logger.info(f"Created purchase order {po.po_number} with {len(items)} item(s), total {total_amount}")
    return po


def update_purchase_order(po_id, status: Optional[str] = None, notes: Optional[str] = None,
                          user=None) -> PurchaseOrder:
    valid_statuses = {choice for choice, _ in PO_STATUS_CHOICES}
    if status is not None and status not in valid_statuses:
        raise ValidationError(f'Unknown purchase order status: {status}')

    with atomic_batch():
        po = lock_row(PurchaseOrder.objects.all(), po_id, PurchaseOrderNotFoundError)
        history = list(po.history or [])
        if status is not None and status != po.status:
            history.append(lifecycle.history_entry(
                PO_ACTION_STATUS_CHANGE, details=f'{po.status} -> {status}', user=user,
            ))
            po.status = status
        if notes is not None and notes != po.notes:
            history.append(lifecycle.history_entry(PO_ACTION_NOTES_UPDATED, user=user))
            po.notes = notes
        po.history = history
        po.save()

    logger.info(f"Updated purchase order {po.po_number}")
    return po


def delete_purchase_order(po_id) -> None:
    with atomic_batch():
        po = lock_row(PurchaseOrder.objects.all(), po_id, PurchaseOrderNotFoundError)
        po.delete()
    logger.info(f"Deleted purchase order {po_id}")
