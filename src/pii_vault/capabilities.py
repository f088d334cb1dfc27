"""
Process-scoped memory of which optional columns exist.

Older databases lack some of the encrypted columns. Callers probe once,
typically by running a query and checking for a "column does not exist"
error, and the answer is kept for the life of the process. ``reset`` and
``forget`` are the only invalidation points.
"""

import logging
import re
import threading
from typing import Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

COLUMN_MISSING_PATTERN = re.compile(r"column .* does not exist", re.IGNORECASE)


def is_missing_column_error(message: Optional[str]) -> bool:
    """Check whether a database error message reports a missing column."""
    return bool(message) and COLUMN_MISSING_PATTERN.search(message) is not None


class ColumnCapabilities:
    """
    Cache of column-existence probe results.

    Each ``(table, column)`` pair is probed at most once until reset.
    """

    def __init__(self) -> None:
        self._results: Dict[Tuple[str, str], bool] = {}
        self._lock = threading.Lock()

    def probe(self, table: str, column: str, check: Callable[[], bool]) -> bool:
        """
        Report whether a column exists, probing only on first use.

        Args:
            table: Table name
            column: Column name
            check: Callable returning True if the column exists; it may
                raise, in which case nothing is cached

        Returns:
            The cached or freshly probed answer
        """
        key = (table, column)
        with self._lock:
            if key in self._results:
                return self._results[key]

        available = bool(check())

        with self._lock:
            # A concurrent probe may have won; keep the first answer.
            available = self._results.setdefault(key, available)
        logger.debug("column %s.%s available: %s", table, column, available)
        return available

    def known(self, table: str, column: str) -> Optional[bool]:
        """Return the cached answer, or None if never probed."""
        with self._lock:
            return self._results.get((table, column))

    def forget(self, table: str, column: str) -> None:
        """Drop one cached answer so the next call probes again."""
        with self._lock:
            self._results.pop((table, column), None)

    def reset(self) -> None:
        """Drop every cached answer."""
        with self._lock:
            self._results.clear()


# Lives as long as the process; re-probing happens only after a restart
# or an explicit reset.
default_capabilities = ColumnCapabilities()
