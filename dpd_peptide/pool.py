"""
dpd_peptide.pool
================

Thread-safe reuse pool for parsed SPICES fragments.

Parsing a fragment is cheap but happens once per residue of every chain of
every table build, and most fragments repeat. The pool hands out a parsed
:class:`~dpd_peptide.spices.SpicesFragment` for a given text and takes it back
afterwards. A borrowed instance is removed from the pool, so two holders never
share one object.
"""

from __future__ import annotations

import logging
import threading

from dpd_peptide.spices import SpicesFragment

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class SpicesPool:
    """
    Keyed pool of parsed fragments.

    Parameters
    ----------
    capacity : int, default=100
        Soft limit: fragments returned while the pool is full are dropped.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self._lock = threading.Lock()
        self._items: dict[str, SpicesFragment] = {}
        self.capacity = capacity

    def acquire(self, text: str) -> SpicesFragment:
        """Remove and return the pooled fragment for ``text``, or parse a new one."""
        with self._lock:
            fragment = self._items.pop(text, None)
        if fragment is None:
            logger.debug("SPICES pool miss: %r", text)
            fragment = SpicesFragment(text)
        return fragment

    def release(self, fragment: SpicesFragment) -> None:
        """Return a fragment for reuse; kept only if its text is not pooled yet."""
        with self._lock:
            if len(self._items) < self.capacity:
                self._items.setdefault(fragment.text, fragment)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
