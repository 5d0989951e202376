"""
Business constants for daily purchase logs.
"""

# Quantity key used by logs that are not broken down by size
SIZE_TOTAL_KEY = 'Total'

STATUS_ORDERED = 'ordered'
STATUS_PICKED_PARTIAL = 'picked_partial'
STATUS_PICKED_FULL = 'picked_full'
STATUS_DISPATCHED = 'dispatched'
STATUS_RECEIVED_PARTIAL = 'received_partial'
STATUS_RECEIVED_FULL = 'received_full'
STATUS_DISCREPANCY = 'discrepancy'

LOG_STATUS_CHOICES = [
    (STATUS_ORDERED, 'Ordered'),
    (STATUS_PICKED_PARTIAL, 'Picked (partial)'),
    (STATUS_PICKED_FULL, 'Picked (full)'),
    (STATUS_DISPATCHED, 'Dispatched'),
    (STATUS_RECEIVED_PARTIAL, 'Received (partial)'),
    (STATUS_RECEIVED_FULL, 'Received (full)'),
    (STATUS_DISCREPANCY, 'Discrepancy'),
]

# A new order for the same product and day folds into a log in one of these
REOPENABLE_STATUSES = (STATUS_ORDERED, STATUS_PICKED_PARTIAL, STATUS_PICKED_FULL)

PICKUP_STATUSES = REOPENABLE_STATUSES

RECEIVED_STATUSES = (STATUS_RECEIVED_PARTIAL, STATUS_RECEIVED_FULL)

RECEIVABLE_STATUSES = (STATUS_DISPATCHED,) + RECEIVED_STATUSES

# Logs considered by duplicate detection
DUPLICATE_CANDIDATE_STATUSES = REOPENABLE_STATUSES + (STATUS_DISPATCHED,)

# History actions
ACTION_CREATED = 'created'
ACTION_UPDATED_ORDER = 'updated_order'
ACTION_EDITED_DETAILS = 'edited_details'
ACTION_SUPPLIER_CHANGE = 'supplier_change'
ACTION_VISITED_ZERO = 'visited_zero'
ACTION_PICKUP_DISPATCH = 'pickup_dispatch'
ACTION_PICKUP_FULL_DISPATCH = 'pickup_full_dispatch'
ACTION_SPLIT_REMAINING = 'split_remaining'
ACTION_RECEIVED = 'received'
ACTION_MERGED_ENTRIES = 'merged_entries'
ACTION_STATUS_RECOMPUTED = 'status_recomputed'

PO_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('confirmed', 'Confirmed'),
    ('partial_received', 'Partially Received'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
]

PO_ACTION_CREATED = 'created'
PO_ACTION_STATUS_CHANGE = 'status_change'
PO_ACTION_NOTES_UPDATED = 'notes_updated'

UNASSIGNED_SUPPLIER = 'Unassigned'
UNKNOWN_SUPPLIER = 'Unknown'
