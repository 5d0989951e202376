"""
Merging duplicate daily logs.

``merge_logs`` folds one log into another in a single transaction;
``find_duplicate_groups`` is the read-only helper that spots candidates.
"""

from collections import OrderedDict
import logging

from marketlens_api.exceptions import InvalidMergeError, LogNotFoundError
from marketlens_api.persistence import atomic_batch, lock_row, check_version
from . import lifecycle
from .constants import (
    SIZE_TOTAL_KEY, RECEIVED_STATUSES, DUPLICATE_CANDIDATE_STATUSES, ACTION_MERGED_ENTRIES,
)
from .models import DailyLog

logger = logging.getLogger(__name__)


def merge_quantities(target_qty, source_qty, merged_has_sizes):
    """
    Add ``source_qty`` onto ``target_qty``.

    Sized keys keep their name when the merged log is sized. Unsized
    quantities (and any ``Total`` bucket) land on ``Total``, even next to real
    sizes, so no quantity is lost. Zero keys are dropped.
    """
    merged = dict(target_qty or {})
    for key, value in (source_qty or {}).items():
        amount = int(value or 0)
        if merged_has_sizes and key != SIZE_TOTAL_KEY:
            merged[key] = merged.get(key, 0) + amount
        else:
            merged[SIZE_TOTAL_KEY] = merged.get(SIZE_TOTAL_KEY, 0) + amount
    return lifecycle.strip_zeros(merged)


def _short_date(value):
    return f"{value.day} {value.strftime('%b %y')}"


def merge_details(source_date, target_date):
    source_str = _short_date(source_date)
    target_str = _short_date(target_date)
    if source_date == target_date:
        summary = f'Merged duplicate from same date ({source_str})'
    else:
        summary = f'Merged entry from {source_str} into {target_str}'
    return summary, f'{summary} (Source Date: {source_str}, Target Date: {target_str})'


def merge_logs(source_log_id, target_log_id, user=None,
               expected_source_version=None, expected_target_version=None) -> DailyLog:
    """
    Fold the source log into the target and delete the source.

    The target is re-opened for pickup with its picked and dispatched
    amounts cleared, its notes get a ``[MERGED: ...]`` annotation and its
    history one ``merged_entries`` entry.
    """
    if str(source_log_id) == str(target_log_id):
        raise InvalidMergeError('Cannot merge an entry into itself')

    with atomic_batch():
        # Lock in a stable order so two opposite merges cannot deadlock
        locked = {}
        for log_id in sorted([str(source_log_id), str(target_log_id)]):
            locked[log_id] = lock_row(DailyLog.objects.all(), log_id, LogNotFoundError)
        source = locked[str(source_log_id)]
        target = locked[str(target_log_id)]
        check_version(source, expected_source_version)
        check_version(target, expected_target_version)

        moved = lifecycle.total(source.ordered_qty)
        if moved <= 0:
            raise InvalidMergeError('Cannot merge entry with zero quantity')
        for log in (source, target):
            if log.status in RECEIVED_STATUSES:
                raise InvalidMergeError(f'Entry {log.id} has already been received and cannot be merged')

        merged_has_sizes = source.has_sizes or target.has_sizes
        summary, details = merge_details(source.date, target.date)

        target.ordered_qty = merge_quantities(target.ordered_qty, source.ordered_qty, merged_has_sizes)
        target.has_sizes = merged_has_sizes
        # Reopened for pickup: the whole merged ask goes back to the market
        target.picked_qty = {}
        target.dispatched_qty = {}
        annotation = f'[MERGED: {summary}]'
        target.notes = f'{target.notes} | {annotation}' if target.notes else annotation
        target.history = list(target.history or []) + [
            lifecycle.history_entry(ACTION_MERGED_ENTRIES, details=details, user=user, quantity=moved)
        ]
        target.status = lifecycle.derive_status(target)
        target.version += 1
        target.save()

        source.delete()

    logger.info(f"Merged log {source_log_id} ({moved} units) into {target.id}")
    return target


def find_duplicate_groups(logs):
    """
    Group logs that look like the same order.

    Open and dispatched logs sharing a product and supplier form a group;
    only groups with two or more logs are returned, each oldest first.
    Works on model instances or snapshot rows.
    """
    groups = OrderedDict()
    for log in logs:
        if log.status not in DUPLICATE_CANDIDATE_STATUSES or not log.product_id:
            continue
        groups.setdefault((log.product_id, log.supplier_id), []).append(log)

    return [
        sorted(members, key=lambda log: (log.created_at, str(log.id)))
        for members in groups.values()
        if len(members) >= 2
    ]
