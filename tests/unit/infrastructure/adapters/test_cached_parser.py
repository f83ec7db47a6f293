"""Tests for CachedStructureParser.

Tests:
- Cache hit on unchanged content
- Re-parse on changed content
- invalidate() / clear()
- FAIL-FIRST validation
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest

from coverstat.domain.exceptions import ParsingError
from coverstat.domain.ports.structure_parser import StructureParserPort
from coverstat.infrastructure.adapters import CachedStructureParser
from tests.factories import make_structure

if TYPE_CHECKING:
    from pathlib import Path


def _inner() -> MagicMock:
    inner = MagicMock(spec=StructureParserPort)
    inner.parse.side_effect = lambda path: make_structure(path, line_count=2)
    return inner


class TestCachedStructureParser:
    """Tests for CachedStructureParser."""

    def test_unchanged_content_hits_cache(self, tmp_path: Path) -> None:
        """Second parse of the same content returns the cached structure."""
        path = tmp_path / "mod.py"
        path.write_text("x = 1\n")
        inner = _inner()
        parser = CachedStructureParser(inner)

        first = parser.parse(str(path))
        second = parser.parse(str(path))

        assert first is second
        inner.parse.assert_called_once_with(str(path))
        assert parser.cache_size == 1

    def test_changed_content_reparses(self, tmp_path: Path) -> None:
        """Content change invalidates the entry."""
        path = tmp_path / "mod.py"
        path.write_text("x = 1\n")
        inner = _inner()
        parser = CachedStructureParser(inner)
        parser.parse(str(path))

        path.write_text("x = 2\n")
        parser.parse(str(path))

        assert inner.parse.call_count == 2

    def test_invalidate_and_clear(self, tmp_path: Path) -> None:
        """invalidate() drops one entry, clear() drops all."""
        a = tmp_path / "a.py"
        b = tmp_path / "b.py"
        a.write_text("x = 1\n")
        b.write_text("y = 1\n")
        parser = CachedStructureParser(_inner())
        parser.parse(str(a))
        parser.parse(str(b))

        parser.invalidate(str(a))
        assert parser.cache_size == 1

        parser.clear()
        assert parser.cache_size == 0

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Unreadable file raises ParsingError before the inner parser runs."""
        inner = _inner()
        parser = CachedStructureParser(inner)

        with pytest.raises(ParsingError):
            parser.parse(str(tmp_path / "missing.py"))

        inner.parse.assert_not_called()

    def test_none_inner_rejected(self) -> None:
        """Inner parser is required."""
        with pytest.raises(TypeError, match="_inner"):
            CachedStructureParser(None)  # type: ignore[arg-type]
