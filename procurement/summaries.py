"""
Read-only projections over a ``StoreSnapshot``.

Every function here is pure. A log whose supplier or product no longer
exists is shown under a placeholder instead of breaking the view.
"""

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from . import lifecycle
from .constants import (
    STATUS_ORDERED, STATUS_DISPATCHED, RECEIVED_STATUSES, ACTION_RECEIVED,
    UNASSIGNED_SUPPLIER, UNKNOWN_SUPPLIER,
)
from .merging import find_duplicate_groups

ZERO = Decimal('0.00')


def _price(snapshot, log):
    if log.price is not None:
        return Decimal(log.price)
    product = snapshot.product(log.product_id)
    if product and product.last_price is not None:
        return Decimal(product.last_price)
    return ZERO


def _supplier_key(snapshot, log, placeholder):
    supplier = snapshot.supplier(log.supplier_id)
    if supplier is None:
        return None, placeholder, ''
    return supplier.id, supplier.name, supplier.phone


def _item(snapshot, log, quantities):
    product = snapshot.product(log.product_id)
    qty = lifecycle.total(quantities)
    price = _price(snapshot, log)
    return {
        'log_id': log.id,
        'product_id': log.product_id,
        'description': product.description if product else 'Unknown product',
        'image_url': product.image_url if product else '',
        'date': log.date,
        'status': log.status,
        'has_sizes': log.has_sizes,
        'quantities': dict(quantities),
        'quantity': qty,
        'price': price,
        'amount': price * qty,
    }


def _group_by_supplier(snapshot, logs, placeholder, quantities_of):
    groups = OrderedDict()
    for log in logs:
        supplier_id, name, phone = _supplier_key(snapshot, log, placeholder)
        group = groups.setdefault(name.lower(), {
            'supplier_id': supplier_id,
            'supplier_name': name,
            'supplier_phone': phone,
            'items': [],
            'total_quantity': 0,
            'total_amount': ZERO,
        })
        item = _item(snapshot, log, quantities_of(log))
        group['items'].append(item)
        group['total_quantity'] += item['quantity']
        group['total_amount'] += item['amount']
    return list(groups.values())


def _by_amount(groups):
    return sorted(groups, key=lambda g: (-g['total_amount'], g['supplier_name'].lower()))


def orders_by_supplier(snapshot):
    """Ordered logs per supplier, biggest spend first."""
    logs = [log for log in snapshot.logs if log.status == STATUS_ORDERED]
    return _by_amount(_group_by_supplier(snapshot, logs, UNASSIGNED_SUPPLIER, lambda log: log.ordered_qty))


def pickup_queue(snapshot):
    """
    What the market runner still has to collect, per supplier.

    Logs for products with the same photo are shown as one line.
    """
    logs = [log for log in snapshot.logs if lifecycle.is_active_for_pickup(log)]
    groups = OrderedDict()
    for log in logs:
        supplier_id, name, phone = _supplier_key(snapshot, log, UNASSIGNED_SUPPLIER)
        group = groups.setdefault(name.lower(), {
            'supplier_id': supplier_id,
            'supplier_name': name,
            'supplier_phone': phone,
            'products': OrderedDict(),
            'pending_total': 0,
        })
        product = snapshot.product(log.product_id)
        product_key = (product.image_hash if product else None) or log.product_id or log.id
        pending = lifecycle.pending_quantities(log)
        line = group['products'].setdefault(product_key, {
            'product_id': log.product_id,
            'description': product.description if product else 'Unknown product',
            'image_url': product.image_url if product else '',
            'log_ids': [],
            'pending': {},
            'pending_total': 0,
        })
        line['log_ids'].append(log.id)
        line['pending'] = lifecycle.add(line['pending'], pending)
        line['pending_total'] += lifecycle.total(pending)
        group['pending_total'] += lifecycle.total(pending)

    result = []
    for group in groups.values():
        group['products'] = list(group['products'].values())
        result.append(group)
    return sorted(result, key=lambda g: (-g['pending_total'], g['supplier_name'].lower()))


def incoming_by_supplier(snapshot):
    """Dispatched logs on their way to the warehouse, valued at what was picked."""
    logs = [log for log in snapshot.logs if log.status == STATUS_DISPATCHED]
    return _by_amount(_group_by_supplier(snapshot, logs, UNKNOWN_SUPPLIER, lambda log: log.picked_qty))


def received_date(log):
    """Local date of the latest ``received`` history entry, else the log date."""
    for entry in reversed(log.history or ()):
        if entry.get('action') == ACTION_RECEIVED and entry.get('timestamp'):
            moment = datetime.fromtimestamp(entry['timestamp'] / 1000, tz=timezone.get_current_timezone())
            return moment.date()
    return log.date


def received_history(snapshot, start=None, end=None):
    """Received logs grouped by supplier, then by the day they arrived (newest first)."""
    suppliers = OrderedDict()
    for log in snapshot.logs:
        if log.status not in RECEIVED_STATUSES:
            continue
        day = received_date(log)
        if (start and day < start) or (end and day > end):
            continue
        supplier_id, name, phone = _supplier_key(snapshot, log, UNKNOWN_SUPPLIER)
        group = suppliers.setdefault(name.lower(), {
            'supplier_id': supplier_id,
            'supplier_name': name,
            'supplier_phone': phone,
            'dates': OrderedDict(),
        })
        bucket = group['dates'].setdefault(day, {'date': day, 'items': [], 'total_received': 0})
        item = _item(snapshot, log, log.received_qty)
        bucket['items'].append(item)
        bucket['total_received'] += item['quantity']

    result = []
    for group in sorted(suppliers.values(), key=lambda g: g['supplier_name'].lower()):
        group['dates'] = sorted(group['dates'].values(), key=lambda b: b['date'], reverse=True)
        result.append(group)
    return result


def billing_groups(snapshot):
    """Received logs grouped by supplier and log date, ready for billing."""
    groups = OrderedDict()
    for log in snapshot.logs:
        if log.status not in RECEIVED_STATUSES:
            continue
        supplier_id, name, phone = _supplier_key(snapshot, log, UNKNOWN_SUPPLIER)
        group = groups.setdefault((name.lower(), log.date), {
            'supplier_id': supplier_id,
            'supplier_name': name,
            'date': log.date,
            'items': [],
            'total_received': 0,
            'total_amount': ZERO,
        })
        item = _item(snapshot, log, log.received_qty)
        group['items'].append(item)
        group['total_received'] += item['quantity']
        group['total_amount'] += item['amount']
    return sorted(groups.values(), key=lambda g: (g['supplier_name'].lower(), g['date']))


def merge_candidates(snapshot):
    """Duplicate groups with enough context for a merge screen."""
    result = []
    for members in find_duplicate_groups(snapshot.logs):
        first = members[0]
        product = snapshot.product(first.product_id)
        supplier_id, name, _ = _supplier_key(snapshot, first, UNASSIGNED_SUPPLIER)
        result.append({
            'product_id': first.product_id,
            'description': product.description if product else 'Unknown product',
            'supplier_id': supplier_id,
            'supplier_name': name,
            'logs': [_item(snapshot, log, log.ordered_qty) for log in members],
            'total_quantity': sum(lifecycle.total(log.ordered_qty) for log in members),
        })
    return result
