"""Tests for JSON persistence of store contents.

Tests:
- dump_store / load_store round trip (records, tests, whitelist)
- write_json / read_json files
- Malformed input errors
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from coverstat.domain.exceptions import InvalidInputError, ParsingError
from coverstat.domain.model.enums import TestSize
from coverstat.domain.model.records import TestRecord
from coverstat.infrastructure.filters import Filter
from coverstat.infrastructure.serialization import (
    FORMAT_VERSION,
    dump_store,
    load_store,
    read_json,
    write_json,
)
from tests.factories import (
    FILE_A,
    FILE_B,
    make_file_coverage,
    make_function_coverage,
    make_raw,
    make_store,
)

if TYPE_CHECKING:
    from pathlib import Path

    from coverstat.application.services.coverage_store import CoverageStore


def _populated() -> CoverageStore:
    flt = Filter()
    flt.set_whitelisted_files({FILE_A, FILE_B})
    store = make_store(filter=flt)
    function = make_function_coverage(branches={0: (1, 2, 3)}, paths={0: 2})
    store.append(
        make_raw({FILE_A: make_file_coverage(executed=[2], not_executed=[3], dead=[4], functions={"f": function})}),
        TestRecord(test_id="T1", size=TestSize.SMALL, status=0),
    )
    return store


class TestDumpLoad:
    """Tests for dump_store / load_store."""

    def test_round_trip(self) -> None:
        """A loaded dump dumps identically."""
        original = dump_store(_populated())
        store = make_store()

        load_store(store, json.loads(json.dumps(original)))

        assert dump_store(store) == original
        assert store.tests["T1"].size is TestSize.SMALL
        record = store.get_data(raw=True)[FILE_A]
        assert record.lines[4] is None
        assert record.branches["f"][0].tests == ["T1"]
        assert record.paths["f"][0].hit == 2

    def test_dump_layout(self) -> None:
        """Dump carries version, whitelist, tests and data."""
        data = dump_store(_populated())

        assert data["version"] == FORMAT_VERSION
        assert data["whitelist"] == sorted([FILE_A, FILE_B])
        assert data["tests"] == {"T1": {"size": "small", "status": 0}}
        assert data["data"][FILE_A]["lines"]["2"] == {"path_covered": True, "tests": ["T1"]}
        assert data["data"][FILE_A]["lines"]["4"] is None

    def test_whitelist_unioned(self) -> None:
        """Loading keeps the receiving store's whitelist."""
        flt = Filter()
        flt.set_whitelisted_files({"/other.py"})
        store = make_store(filter=flt)

        load_store(store, dump_store(_populated()))

        assert store.filter.whitelisted_files == frozenset({FILE_A, FILE_B, "/other.py"})

    def test_wrong_version_rejected(self) -> None:
        """Unknown format version raises InvalidInputError."""
        data = dump_store(_populated())
        data["version"] = FORMAT_VERSION + 1

        with pytest.raises(InvalidInputError):
            load_store(make_store(), data)

    def test_malformed_rejected_without_changes(self) -> None:
        """Malformed dump raises and leaves the store untouched."""
        store = _populated()
        before = dump_store(store)
        data = dump_store(make_store())
        data["tests"] = {"T9": {"size": "gigantic", "status": 0}}

        with pytest.raises(InvalidInputError):
            load_store(store, data)

        assert dump_store(store) == before

    def test_not_a_dict_rejected(self) -> None:
        """Non-dict input raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            load_store(make_store(), [])  # type: ignore[arg-type]


class TestJsonFiles:
    """Tests for write_json / read_json."""

    def test_file_round_trip(self, tmp_path: Path) -> None:
        """Written file loads into an equal store."""
        original = _populated()
        path = tmp_path / "coverage.json"

        write_json(original, path, indent=2)
        store = make_store()
        read_json(store, path)

        assert dump_store(store) == dump_store(original)

    def test_shards_merge(self, tmp_path: Path) -> None:
        """Stores persisted separately merge after loading."""
        first = make_store()
        first.append(make_raw({FILE_A: make_file_coverage(executed=[1])}), "T1")
        second = make_store()
        second.append(make_raw({FILE_A: make_file_coverage(executed=[1])}), "T2")
        write_json(second, tmp_path / "shard.json")

        loaded = make_store()
        read_json(loaded, tmp_path / "shard.json")
        first.merge(loaded)

        entry = first.get_data(raw=True)[FILE_A].lines[1]
        assert entry is not None
        assert entry.tests == ["T1", "T2"]

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Invalid JSON raises ParsingError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ParsingError):
            read_json(make_store(), path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Missing file raises ParsingError."""
        with pytest.raises(ParsingError):
            read_json(make_store(), tmp_path / "missing.json")
