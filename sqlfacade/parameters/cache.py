"""Named-query cache.

Memoizes scanner output keyed by the original SQL text so that identical queries are
only rewritten once per facade.
"""

import threading
from typing import TYPE_CHECKING, Optional

from mypy_extensions import mypyc_attr

from sqlfacade.parameters.scanner import PlaceholderScanner
from sqlfacade.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlfacade.parameters.types import ScanResult

__all__ = ("NamedQueryCache",)

logger = get_logger("parameters.cache")


@mypyc_attr(allow_interpreted_subclasses=False)
class NamedQueryCache:
    """Unbounded ``original sql -> ScanResult`` store.

    Only statements that actually contained named placeholders are stored. The store
    lives as long as its facade and is emptied by :meth:`clear`.

    Args:
        enabled: Store scan results. When False every call re-scans and nothing is stored.
        scanner: Scanner to delegate to.
    """

    __slots__ = ("_entries", "_lock", "_scanner", "enabled")

    def __init__(self, enabled: bool = True, scanner: "Optional[PlaceholderScanner]" = None) -> None:
        self.enabled = enabled
        self._scanner = scanner or PlaceholderScanner()
        self._entries: dict[str, ScanResult] = {}
        self._lock = threading.Lock()

    def resolve(self, sql: str) -> "Optional[ScanResult]":
        """Return the rewritten SQL and binding plan for ``sql``.

        Returns:
            The cached or freshly scanned result, or None when ``sql`` holds no named
            placeholders.
        """
        if not self.enabled:
            return self._scanner.scan(sql)

        with self._lock:
            cached = self._entries.get(sql)
            if cached is not None:
                return cached
            result = self._scanner.scan(sql)
            if result is not None:
                self._entries[sql] = result
                logger.debug("Cached named query: %s -> %s", sql, result.sql)
            return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, sql: object) -> bool:
        return sql in self._entries

    def __len__(self) -> int:
        return len(self._entries)
