"""
Pure rules for the daily log lifecycle.

Nothing here touches the database. Functions take plain quantity maps
(``{size_key: int}``) or any object exposing ``ordered_qty``,
``picked_qty``, ``dispatched_qty``, ``received_qty`` and ``status``, so the
same rules serve model instances and read-only snapshot rows.
"""

from collections import namedtuple
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.utils import timezone

from marketlens_api.exceptions import ValidationError
from .constants import (
    SIZE_TOTAL_KEY, STATUS_ORDERED, STATUS_DISPATCHED,
    STATUS_RECEIVED_FULL, STATUS_RECEIVED_PARTIAL, PICKUP_STATUSES,
)

Quantities = Dict[str, int]


# Quantity maps

def _to_int(key, value):
    if isinstance(value, bool):
        raise ValidationError(f'Quantity for "{key}" must be a number')
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Quantity for "{key}" must be a number, got {value!r}')
    if number != number.to_integral_value():
        raise ValidationError(f'Quantity for "{key}" must be a whole number, got {value!r}')
    if number < 0:
        raise ValidationError(f'Quantity for "{key}" cannot be negative')
    return int(number)


def normalize(quantities, has_sizes: Optional[bool] = None) -> Quantities:
    """
    Validate a quantity map coming from outside.

    Keys are trimmed size labels; values must be non-negative whole numbers.
    With ``has_sizes=False`` everything is folded onto the ``Total`` key.
    """
    if quantities is None:
        return {}
    if not isinstance(quantities, dict):
        raise ValidationError('Quantities must be a mapping of size to amount')

    result = {}
    for raw_key, raw_value in quantities.items():
        key = str(raw_key).strip()
        if not key:
            raise ValidationError('Size labels cannot be blank')
        result[key] = result.get(key, 0) + _to_int(key, raw_value)

    if has_sizes is False and set(result) - {SIZE_TOTAL_KEY}:
        return {SIZE_TOTAL_KEY: total(result)}
    return result


def total(quantities) -> int:
    return sum(int(v or 0) for v in (quantities or {}).values())


def add(base, extra) -> Quantities:
    result = dict(base or {})
    for key, value in (extra or {}).items():
        result[key] = result.get(key, 0) + int(value or 0)
    return result


def subtract(base, taken) -> Quantities:
    """Per key ``base - taken`` over the keys of ``base``."""
    taken = taken or {}
    return {key: int(value or 0) - int(taken.get(key, 0) or 0) for key, value in (base or {}).items()}


def strip_zeros(quantities) -> Quantities:
    return {key: value for key, value in (quantities or {}).items() if value}


def format_breakdown(quantities) -> str:
    """``"S:7, M:1"`` for sized maps, ``"8"`` for a lone Total."""
    quantities = quantities or {}
    if set(quantities) == {SIZE_TOTAL_KEY}:
        return str(quantities[SIZE_TOTAL_KEY])
    return ', '.join(f'{key}:{value}' for key, value in quantities.items())


# Status

def derive_status(log) -> str:
    """
    Compute a log's status from its quantity maps.

    Once anything has been received the log is in the receiving stage and is
    judged against what was picked, not what was ordered.
    """
    if log.received_qty:
        if total(log.received_qty) >= total(log.picked_qty):
            return STATUS_RECEIVED_FULL
        return STATUS_RECEIVED_PARTIAL

    ordered = total(log.ordered_qty)
    if ordered > 0 and total(log.dispatched_qty) >= ordered:
        return STATUS_DISPATCHED

    return STATUS_ORDERED


def is_active_for_pickup(log) -> bool:
    return log.status in PICKUP_STATUSES and total(log.ordered_qty) > total(log.dispatched_qty)


def pending_quantities(log) -> Quantities:
    """What is still to be picked up, per size."""
    return strip_zeros({key: max(value, 0) for key, value in subtract(log.ordered_qty, log.dispatched_qty).items()})


# Pickup planning

PickupPlan = namedtuple('PickupPlan', ['kind', 'dispatched', 'remaining', 'dispatched_total'])

PLAN_VISITED_ZERO = 'visited_zero'
PLAN_FULL = 'full'
PLAN_SPLIT = 'split'


def validate_picked(ordered_qty, picked) -> Quantities:
    """Picked amounts must use the log's size keys and never exceed the ask."""
    unknown = [key for key in picked if key not in ordered_qty]
    if unknown:
        raise ValidationError(f'Unknown size(s) for this entry: {", ".join(unknown)}')
    for key, value in picked.items():
        if value > int(ordered_qty.get(key) or 0):
            raise ValidationError(
                f'Picked {value} of "{key}" but only {ordered_qty.get(key, 0)} were ordered'
            )
    return picked


def plan_pickup(ordered_qty, picked) -> PickupPlan:
    """
    Decide what a pickup does to a log.

    Nothing picked is a visit with no change. Picking everything dispatches
    the log in place. Anything less splits off the remainder into a new log.
    """
    validate_picked(ordered_qty, picked)
    dispatched_total = total(picked)
    if dispatched_total == 0:
        return PickupPlan(PLAN_VISITED_ZERO, {}, {}, 0)

    remaining = {}
    for key, ordered in ordered_qty.items():
        left = int(ordered or 0) - int(picked.get(key, 0) or 0)
        if left > 0:
            remaining[key] = left

    dispatched = strip_zeros(picked)
    if remaining:
        return PickupPlan(PLAN_SPLIT, dispatched, remaining, dispatched_total)
    return PickupPlan(PLAN_FULL, dispatched, {}, dispatched_total)


# History

def timestamp_ms(now=None) -> int:
    now = now or timezone.now()
    return int(now.timestamp() * 1000)


def history_entry(action, details=None, user=None, quantity=None, now=None) -> dict:
    entry = {'action': action, 'timestamp': timestamp_ms(now)}
    if details:
        entry['details'] = details
    if user is not None and getattr(user, 'pk', None) is not None:
        entry['user_id'] = str(user.pk)
    if quantity is not None:
        entry['quantity'] = quantity
    return entry
