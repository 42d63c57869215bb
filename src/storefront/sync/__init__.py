"""
Synchronous adapters for async storefront components.

Example:
    >>> from storefront.sync import SyncOrderEngineAdapter
    >>>
    >>> sync_engine = SyncOrderEngineAdapter(engine, timeout=10.0)
    >>>
    >>> # In a Celery task
    >>> @celery.task
    >>> def cancel(order_id: int, user_id: int):
    ...     sync_engine.cancel_order_sync(order_id, user_id)
"""

from storefront.sync.adapter import SyncOrderEngineAdapter

__all__ = ["SyncOrderEngineAdapter"]
