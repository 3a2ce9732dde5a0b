"""In-memory cache of parsed formulas."""

import threading
from typing import Optional

from labformula.core.logging import get_logger
from labformula.formula.parser import FormulaParser, ParsedFormula, get_parser

logger = get_logger(__name__)


class FormulaCache:
    """Parsed formula cache keyed by exact formula text.

    Entries live until ``clear()`` is called; edited formula text gets a
    new key, so stale entries only cost memory. Access is guarded by a
    lock so one cache can be shared across threads.

    Failed parses are not cached.
    """

    def __init__(self, parser: Optional[FormulaParser] = None) -> None:
        """Initialize an empty cache.

        Args:
            parser: Parser used on cache misses (shared parser by default)

        """
        self._parser = parser
        self._entries: dict[str, ParsedFormula] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, formula: str) -> Optional[ParsedFormula]:
        """Get a cached parse result, or None when not cached."""
        with self._lock:
            return self._entries.get(formula)

    def put(self, formula: str, parsed: ParsedFormula) -> None:
        """Store a parse result."""
        with self._lock:
            self._entries[formula] = parsed

    def get_or_parse(self, formula: str) -> ParsedFormula:
        """Return the cached parse of ``formula``, parsing it on a miss.

        Raises:
            ParseError: If the formula cannot be parsed

        """
        with self._lock:
            cached = self._entries.get(formula)
            if cached is not None:
                self.hits += 1
                logger.debug(f"Cache hit: {formula!r}")
                return cached
            self.misses += 1

        logger.debug(f"Cache miss: {formula!r}")
        parsed = (self._parser or get_parser()).parse(formula)
        with self._lock:
            # Keep the first stored result if another thread parsed concurrently
            return self._entries.setdefault(formula, parsed)

    def clear(self) -> None:
        """Drop every cached entry and reset the counters."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.debug(f"Formula cache cleared ({count} entries)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, formula: object) -> bool:
        with self._lock:
            return formula in self._entries


# Process-wide cache used when callers do not inject their own
formula_cache = FormulaCache()


def clear_formula_cache() -> None:
    """Clear the process-wide formula cache."""
    formula_cache.clear()
