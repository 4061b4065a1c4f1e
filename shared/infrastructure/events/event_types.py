"""
Event type constants for the order real-time feed.
"""

# Order lifecycle
ORDER_CREATED = "ORDER_CREATED"
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"  # The order row changed
ORDER_HISTORY_APPENDED = "ORDER_HISTORY_APPENDED"  # A status-history row was inserted

ORDER_EVENT_TYPES = frozenset({ORDER_CREATED, ORDER_STATUS_CHANGED, ORDER_HISTORY_APPENDED})

# Maximum serialized event size in bytes
MAX_EVENT_SIZE = 64 * 1024
