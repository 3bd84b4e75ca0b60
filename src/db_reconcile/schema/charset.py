"""Character set / collation pairs and the default-collation cache.

``DatabaseCharset`` is a plain value: a charset name and a collation name,
either of which may be absent.

Whether a collation is the *default* collation of its charset is engine
metadata (``information_schema.CHARACTER_SETS``). That lookup lives in
``CharsetCache``, an explicit object that is created once per run and
passed to whatever renders DDL. Tests build isolated caches with
``CharsetCache.from_mapping()``.

Usage:
    from db_reconcile.schema.charset import CharsetCache, DatabaseCharset

    cache = CharsetCache.from_mapping({"utf8mb4": "utf8mb4_general_ci"})
    charset = DatabaseCharset(charset="utf8mb4", collate="utf8mb4_general_ci")
    charset.is_default_collate(cache)
    # True
"""

import logging
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

CharsetSource = Callable[[], Mapping[str, str]]


class DatabaseCharset(BaseModel):
    """Character set and collation of a table or column.

    Equality is structural: two instances are equal when both fields match
    exactly, including both being absent. Instances are immutable; derive a
    changed value with ``model_copy(update={"collate": "utf8mb4_bin"})``.

    Example:
        >>> DatabaseCharset().describe()
        'NONE'
        >>> DatabaseCharset(charset="utf8mb4", collate="utf8mb4_bin").describe()
        'utf8mb4/utf8mb4_bin'
    """

    model_config = ConfigDict(frozen=True)

    charset: str | None = None
    collate: str | None = None

    @property
    def is_empty(self) -> bool:
        """True if neither charset nor collation is set."""
        return self.charset is None and self.collate is None

    def describe(self) -> str:
        """Describe as ``charset/collate``, or ``NONE`` if either is absent."""
        if self.charset and self.collate:
            return f"{self.charset}/{self.collate}"
        return "NONE"

    def is_default_collate(self, cache: "CharsetCache | None") -> bool:
        """True if the collation is the engine default for the charset.

        Without a cache nothing is known about defaults, so the answer is
        ``False``.
        """
        if cache is None:
            return False
        return cache.is_default_collate(self)


class CharsetCache:
    """Lazily populated mapping of charset name to default collation.

    The mapping is loaded from ``source`` on first use. If the source raises,
    the failure is logged and the cache resolves to an empty mapping: every
    ``is_default_collate()`` check then answers ``False``.

    Population happens at most once until ``invalidate()`` is called and is
    guarded by a lock. The populated mapping is read-only, so concurrent
    comparisons can share one cache.

    Args:
        source: Zero-argument callable returning ``{charset: default_collation}``.
            ``None`` means no metadata is available.
    """

    def __init__(self, source: CharsetSource | None = None) -> None:
        self._source = source
        self._charsets: Mapping[str, str] | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "CharsetCache":
        """Build a cache that is already populated with ``mapping``."""
        cache = cls(source=lambda: mapping)
        cache.populate()
        return cache

    @property
    def is_populated(self) -> bool:
        """True once the mapping has been loaded (possibly as empty)."""
        return self._charsets is not None

    def populate(self) -> Mapping[str, str]:
        """Load the mapping from the source if not loaded yet.

        Returns:
            Read-only mapping of charset name to default collation.
        """
        charsets = self._charsets
        if charsets is not None:
            return charsets

        with self._lock:
            if self._charsets is None:
                self._charsets = MappingProxyType(self._load())
            return self._charsets

    def invalidate(self) -> None:
        """Drop the loaded mapping; the next lookup loads it again."""
        with self._lock:
            self._charsets = None

    @property
    def charsets(self) -> Mapping[str, str]:
        """Read-only mapping of charset name to default collation."""
        return self.populate()

    def default_collate(self, charset: str | None) -> str | None:
        """Return the default collation for ``charset``, or None if unknown."""
        if not charset:
            return None
        return self.populate().get(charset)

    def is_default_collate(self, charset: DatabaseCharset) -> bool:
        """True if ``charset.collate`` is the default collation of ``charset.charset``."""
        if not charset.charset or not charset.collate:
            return False
        default = self.default_collate(charset.charset)
        return default is not None and default == charset.collate

    def _load(self) -> dict[str, str]:
        if self._source is None:
            return {}
        try:
            return dict(self._source())
        except Exception as e:
            logger.warning(f"Character set metadata unavailable: {e}")
            return {}
