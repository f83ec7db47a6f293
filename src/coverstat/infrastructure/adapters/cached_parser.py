"""Cached structure parser adapter.

Decorator pattern: wraps StructureParserPort with content-hash based caching.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

from coverstat.domain.exceptions import ParsingError
from coverstat.domain.model.structure import FileStructure
from coverstat.domain.ports.structure_parser import StructureParserPort

logger = logging.getLogger(__name__)


@dataclass
class CachedStructureParser(StructureParserPort):
    """Parser with content-hash based caching.

    Decorator pattern: wraps another StructureParserPort.
    Uses SHA-256 hash of file content for cache invalidation.

    Cache is in-memory only - no persistence between runs.

    Attributes:
        _inner: Wrapped parser implementation
        _cache: Path → (content_hash, FileStructure) mapping
    """

    _inner: StructureParserPort
    _cache: dict[str, tuple[str, FileStructure]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if self._inner is None:
            raise TypeError("_inner parser must not be None")

    def parse(self, path: str) -> FileStructure:
        """Parse with cache lookup.

        Cache hit: return cached FileStructure if content hash matches.
        Cache miss: parse with inner parser, cache result.

        Raises:
            ParsingError: If file cannot be read
        """
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise ParsingError(path, str(e) or type(e).__name__) from e
        content_hash = hashlib.sha256(content).hexdigest()

        cached = self._cache.get(path)
        if cached is not None:
            cached_hash, cached_structure = cached
            if cached_hash == content_hash:
                return cached_structure

        logger.debug("structure cache miss for %s", path)
        structure = self._inner.parse(path)
        self._cache[path] = (content_hash, structure)
        return structure

    def invalidate(self, path: str) -> None:
        """Explicitly invalidate cache entry.

        Use when you know a file has changed externally.
        """
        self._cache.pop(path, None)

    def clear(self) -> None:
        """Clear entire cache."""
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        """Number of cached structures."""
        return len(self._cache)
