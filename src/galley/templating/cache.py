"""Compiled template cache.

Maps a template identifier to its compiled ``jinja2.Template``. The cache
has no recency policy: once it is full, new compile results are returned to
the caller but not retained. Shrinking the maximum below the current
population drops every entry.
"""

import logging
import threading
from collections.abc import Callable

from jinja2 import Template

from galley.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100


class TemplateCache:
    """Thread-safe identifier -> compiled template store.

    Lookups and inserts are serialised by a lock, but compilation runs
    outside it: two threads missing on the same identifier may both compile
    and the last one to finish is the one kept. A compile that was started
    before a clear is returned to its caller but never stored.

    Usage:
        cache = TemplateCache(max_size=50)
        template = cache.resolve("invoice.html", env.get_template)
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, enabled: bool = True) -> None:
        """Initialize the cache.

        Args:
            max_size: Maximum number of retained templates (at least 1)
            enabled: Whether resolved templates are retained at all
        """
        if max_size < 1:
            raise InvalidArgumentError("Template cache max size must be at least 1")
        self._entries: dict[str, Template] = {}
        self._lock = threading.Lock()
        self._max_size = max_size
        self._enabled = enabled
        self._generation = 0

    @property
    def enabled(self) -> bool:
        """Whether compiled templates are retained."""
        return self._enabled

    @property
    def max_size(self) -> int:
        """Maximum number of retained templates."""
        return self._max_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._entries

    def resolve(self, identifier: str, compile: Callable[[str], Template]) -> Template:
        """Return the cached template for ``identifier`` or compile it.

        Args:
            identifier: Template identifier
            compile: Called with the identifier on a miss (or always, when disabled)

        Returns:
            Compiled template

        Compilation errors propagate and nothing is stored.
        """
        if not self._enabled:
            return compile(identifier)

        with self._lock:
            template = self._entries.get(identifier)
            generation = self._generation
        if template is not None:
            logger.debug("Template loaded from cache: %s", identifier)
            return template

        template = compile(identifier)

        with self._lock:
            if generation != self._generation:
                logger.debug("Cache cleared while compiling %s, not storing", identifier)
                return template
            stored = len(self._entries) < self._max_size
            if stored:
                self._entries[identifier] = template

        if stored:
            logger.debug("Added template to cache: %s", identifier)
        else:
            logger.warning(
                "Template cache is full (size: %d). Consider increasing the cache size.",
                self._max_size,
            )
        return template

    def clear(self) -> None:
        """Drop every cached template."""
        with self._lock:
            self._entries.clear()
            self._generation += 1
        logger.info("Template cache cleared")

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable caching. Disabling also clears the cache."""
        self._enabled = enabled
        if not enabled:
            with self._lock:
                self._entries.clear()
                self._generation += 1
            logger.info("Template caching disabled and cache cleared")
        else:
            logger.info("Template caching enabled")

    def set_max_size(self, max_size: int) -> None:
        """Change the maximum size.

        Raises:
            InvalidArgumentError: If ``max_size`` is below 1
        """
        if max_size < 1:
            raise InvalidArgumentError("Template cache max size must be at least 1")

        with self._lock:
            self._max_size = max_size
            if len(self._entries) > max_size:
                self._entries.clear()
                self._generation += 1

        logger.info("Template cache max size set to: %d", max_size)
