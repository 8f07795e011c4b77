"""Bounded worker pool for asynchronous renders.

Every pipeline entry point has an ``*_async`` twin that submits the
synchronous call here and returns a ``concurrent.futures.Future``. Errors
raised by the call come back through ``Future.exception()`` /
``Future.result()`` with their original type.
"""

import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

from galley.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T")

THREAD_NAME_PREFIX = "galley-render"


def default_pool_size() -> int:
    """Return ``max(2, cpu count)``."""
    return max(2, os.cpu_count() or 1)


class AsyncExecutor:
    """Resizable wrapper around a ``ThreadPoolExecutor``.

    There is no automatic shutdown; call ``shutdown()`` during teardown (or
    use the executor as a context manager).

    Usage:
        executor = AsyncExecutor()
        future = executor.submit(lambda: renderer.render_template("a.html"))
        html = future.result()
        executor.shutdown()
    """

    def __init__(self, size: int | None = None) -> None:
        """Initialize the worker pool.

        Args:
            size: Number of worker threads (default: ``max(2, cpu count)``)
        """
        size = default_pool_size() if size is None else size
        if size < 1:
            raise InvalidArgumentError("Thread count must be at least 1")
        self._lock = threading.Lock()
        self._size = size
        self._pool = self._create_pool(size)
        self._shutdown = False

    @staticmethod
    def _create_pool(size: int) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=size, thread_name_prefix=THREAD_NAME_PREFIX)

    @property
    def size(self) -> int:
        """Number of worker threads in the current pool."""
        return self._size

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def submit(self, operation: Callable[[], T]) -> "Future[T]":
        """Run a zero-argument callable on the pool.

        Raises:
            RuntimeError: If the executor has been shut down
        """
        with self._lock:
            return self._pool.submit(operation)

    def resize(self, size: int) -> None:
        """Replace the pool with one of ``size`` workers.

        The old pool stops accepting work; tasks already running on it are
        left to finish.
        """
        if size < 1:
            raise InvalidArgumentError("Thread count must be at least 1")
        with self._lock:
            old_pool = self._pool
            self._pool = self._create_pool(size)
            self._size = size
            self._shutdown = False
        old_pool.shutdown(wait=False)
        logger.info("Async thread pool size set to %d", size)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work. Safe to call more than once."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            pool = self._pool
        pool.shutdown(wait=wait)
        logger.info("Async thread pool shut down")

    def __enter__(self) -> "AsyncExecutor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
