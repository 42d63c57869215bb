"""
Synchronous adapter for the async OrderEngine.

This module provides SyncOrderEngineAdapter, which wraps an OrderEngine
and provides synchronous versions of its caller-facing operations.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from storefront.models import Order, OrderStatus, PlaceOrderRequest
from storefront.orders.engine import OrderEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncOrderEngineAdapter:
    """
    Synchronous adapter for OrderEngine.

    For use from thread-based callers such as WSGI views, Celery tasks or
    management commands.

    Handles two event loop scenarios:
    1. No running event loop -> asyncio.run() on the calling thread
    2. Running event loop -> asyncio.run() on a worker thread, so the
       calling loop is never blocked waiting on itself

    Thread Safety:
        Every call runs on its own short-lived event loop. With the SQLite
        and PostgreSQL backends, concurrent calls from many threads are
        independent transactions. The in-memory backend binds its lock to
        one event loop and cannot be shared across threads this way.

    Example:
        >>> engine = OrderEngine(SQLiteDatabase("shop.db"))
        >>> sync_engine = SyncOrderEngineAdapter(engine, timeout=10.0)
        >>>
        >>> order = sync_engine.place_order_sync(request)
        >>> sync_engine.cancel_order_sync(order.id, user_id=order.user_id)
    """

    # Class-level executor for the running loop case
    _executor: ThreadPoolExecutor | None = None
    _executor_lock: threading.Lock = threading.Lock()

    def __init__(self, engine: OrderEngine, timeout: float = 30.0) -> None:
        """
        Initialize the sync adapter.

        Args:
            engine: The OrderEngine to wrap
            timeout: Default timeout in seconds for all operations (default: 30.0)

        Raises:
            TypeError: If engine is not an OrderEngine
            ValueError: If timeout is not positive
        """
        if not isinstance(engine, OrderEngine):
            raise TypeError(f"engine must be an OrderEngine instance, got {type(engine).__name__}")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._engine = engine
        self._timeout = timeout

    @property
    def engine(self) -> OrderEngine:
        return self._engine

    @classmethod
    def _get_executor(cls) -> ThreadPoolExecutor:
        """Get or create the shared thread pool executor."""
        with cls._executor_lock:
            if cls._executor is None:
                cls._executor = ThreadPoolExecutor(
                    max_workers=4,
                    thread_name_prefix="storefront_sync",
                )
            return cls._executor

    @classmethod
    def shutdown_executor(cls) -> None:
        """
        Shutdown the shared thread pool executor.

        Call this during application shutdown. The executor is recreated on
        next use.
        """
        with cls._executor_lock:
            if cls._executor is not None:
                cls._executor.shutdown(wait=True)
                cls._executor = None

    def _run_sync(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """
        Execute coroutine synchronously.

        Raises:
            TimeoutError: If operation exceeds timeout. The unit of work in
                flight is rolled back.
            Exception: Any exception raised by the coroutine
        """
        effective_timeout = timeout if timeout is not None else self._timeout

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No running event loop - the common case for sync callers
            try:
                return asyncio.run(asyncio.wait_for(coro, timeout=effective_timeout))
            except TimeoutError as e:
                raise TimeoutError(f"Sync operation timed out after {effective_timeout}s") from e

        logger.warning(
            "SyncOrderEngineAdapter called from running event loop. "
            "Consider awaiting OrderEngine directly."
        )
        future = self._get_executor().submit(
            asyncio.run, asyncio.wait_for(coro, timeout=effective_timeout)
        )
        try:
            return future.result()
        except TimeoutError as e:
            raise TimeoutError(
                f"Sync operation timed out after {effective_timeout}s "
                "(called from running event loop)"
            ) from e

    def place_order_sync(
        self,
        request: PlaceOrderRequest | Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> Order:
        """
        Synchronously place an order.

        Raises:
            Same as OrderEngine.place_order, plus TimeoutError
        """
        return self._run_sync(self._engine.place_order(request), timeout=timeout)

    def cancel_order_sync(
        self,
        order_id: int,
        user_id: int,
        *,
        timeout: float | None = None,
    ) -> Order:
        """
        Synchronously cancel an order.

        Raises:
            Same as OrderEngine.cancel_order, plus TimeoutError
        """
        return self._run_sync(self._engine.cancel_order(order_id, user_id), timeout=timeout)

    def set_status_sync(
        self,
        order_id: int,
        status: OrderStatus | str,
        *,
        timeout: float | None = None,
    ) -> Order:
        """Synchronously set an order's status (administrative override)."""
        return self._run_sync(self._engine.set_status(order_id, status), timeout=timeout)

    def get_order_sync(
        self,
        order_id: int,
        user_id: int | None = None,
        *,
        timeout: float | None = None,
    ) -> Order:
        """Synchronously load an order with its line items."""
        return self._run_sync(self._engine.get_order(order_id, user_id), timeout=timeout)


__all__ = ["SyncOrderEngineAdapter"]
