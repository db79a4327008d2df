"""
Signals sent by the pickup ledger.

``pickup_status_changed`` fires after an order was created (``previous`` is
None) or moved to another status, once the database write is committed.
Receivers get ``order``, ``previous`` and ``status`` keyword arguments.
"""
from django.dispatch import Signal

pickup_status_changed = Signal()
