"""
Billing reconciliation for received daily logs.
"""

from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP
import logging

from marketlens_api.exceptions import (
    InvalidStateError, LogNotFoundError, BillingNotFoundError, ValidationError,
)
from marketlens_api.persistence import atomic_batch, lock_row
from procurement.constants import RECEIVED_STATUSES
from procurement.lifecycle import total
from procurement.models import DailyLog
from procurement.services import parse_price
from .models import BillingEntry

logger = logging.getLogger(__name__)

# Fixed 5% GST
GST_RATE = Decimal('0.05')
CENT = Decimal('0.01')

PROOF_KINDS = {
    'bill': 'bill_proof_url',
    'payment': 'payment_proof_url',
}

BillAmounts = namedtuple('BillAmounts', ['total_amount', 'gst_amount', 'final_amount'])


def _round(value):
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def gst_amounts(total_amount, gst_enabled) -> BillAmounts:
    total_amount = _round(Decimal(total_amount))
    gst_amount = _round(total_amount * GST_RATE) if gst_enabled else Decimal('0.00')
    return BillAmounts(total_amount, gst_amount, _round(total_amount + gst_amount))


def compute_amounts(total_received_qty, price_per_unit, gst_enabled) -> BillAmounts:
    """Pure recompute from (quantity, unit price, GST flag)."""
    return gst_amounts(Decimal(total_received_qty) * Decimal(price_per_unit), gst_enabled)


def upsert_billing_entry(inward_log_id, price_per_unit, gst_enabled=False):
    """
    Create or recompute the bill for a received log.

    Every call derives all amounts from scratch, so repeating it with the
    same inputs gives the same figures.
    """
    price = parse_price(price_per_unit)
    if price is None:
        raise ValidationError('Price per unit is required')

    with atomic_batch():
        log = lock_row(DailyLog.objects.all(), inward_log_id, LogNotFoundError)
        if log.status not in RECEIVED_STATUSES:
            raise InvalidStateError(f'Only received entries can be billed (status is {log.status})')

        quantity = total(log.received_qty)
        amounts = compute_amounts(quantity, price, gst_enabled)
        entry, created = BillingEntry.objects.update_or_create(
            inward_log_id=log.id,
            defaults={
                'price_per_unit': price,
                'total_received_qty': quantity,
                'gst_enabled': bool(gst_enabled),
                'total_amount': amounts.total_amount,
                'gst_amount': amounts.gst_amount,
                'final_amount': amounts.final_amount,
            },
        )

    logger.info(f"{'Created' if created else 'Recomputed'} billing entry {entry.id} for log {log.id}: {amounts.final_amount}")
    return entry, created


def toggle_gst(billing_id, enabled):
    """Switch GST on or off, recomputing from the stored total."""
    with atomic_batch():
        entry = lock_row(BillingEntry.objects.all(), billing_id, BillingNotFoundError)
        amounts = gst_amounts(entry.total_amount, enabled)
        entry.gst_enabled = bool(enabled)
        entry.gst_amount = amounts.gst_amount
        entry.final_amount = amounts.final_amount
        entry.save(update_fields=['gst_enabled', 'gst_amount', 'final_amount', 'updated_at'])

    logger.info(f"GST {'enabled' if enabled else 'disabled'} on billing entry {entry.id}")
    return entry


def attach_proof(billing_id, kind, url):
    field = PROOF_KINDS.get(kind)
    if field is None:
        raise ValidationError(f'Unknown proof kind "{kind}", expected one of: {", ".join(PROOF_KINDS)}')

    with atomic_batch():
        entry = lock_row(BillingEntry.objects.all(), billing_id, BillingNotFoundError)
        setattr(entry, field, url)
        entry.save(update_fields=[field, 'updated_at'])

    logger.info(f"Attached {kind} proof to billing entry {entry.id}")
    return entry


def delete_billing_entry(billing_id):
    with atomic_batch():
        entry = lock_row(BillingEntry.objects.all(), billing_id, BillingNotFoundError)
        entry.delete()
    logger.info(f"Deleted billing entry {billing_id}")
