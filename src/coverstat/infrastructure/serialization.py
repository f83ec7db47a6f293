"""Infrastructure layer: JSON persistence of store contents.

Round-trips records, tests and the whitelisted files so that stores
collected in separate processes can be merged later.

Usage:
    write_json(store, "coverage-shard-1.json")
    ...
    other = CoverageStore(driver)
    read_json(other, "coverage-shard-1.json")
    store.merge(other)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from coverstat.domain.exceptions import InvalidInputError, ParsingError
from coverstat.domain.model.enums import TestSize
from coverstat.domain.model.records import (
    BranchRecord,
    FileCoverageRecord,
    LineRecord,
    PathRecord,
    TestRecord,
)

if TYPE_CHECKING:
    from coverstat.application.services.coverage_store import CoverageStore

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


# =============================================================================
# Records → dict
# =============================================================================


def _line_to_dict(entry: LineRecord | None) -> dict[str, Any] | None:
    if entry is None:
        return None
    return {"path_covered": entry.path_covered, "tests": list(entry.tests)}


def _record_to_dict(record: FileCoverageRecord) -> dict[str, Any]:
    # JSON object keys are strings: line and branch/path ids are stringified
    return {
        "lines": {str(n): _line_to_dict(e) for n, e in sorted(record.lines.items())},
        "branches": {
            fn: {
                str(i): {
                    "hit": b.hit,
                    "line_start": b.line_start,
                    "line_end": b.line_end,
                    "tests": list(b.tests),
                }
                for i, b in sorted(branches.items())
            }
            for fn, branches in sorted(record.branches.items())
        },
        "paths": {
            fn: {str(i): {"hit": p.hit} for i, p in sorted(paths.items())}
            for fn, paths in sorted(record.paths.items())
        },
    }


def dump_store(store: CoverageStore) -> dict[str, Any]:
    """Convert store contents to a JSON-serializable dict.

    Raw data is dumped: the add-uncovered baseline pass does not run.

    Args:
        store: Store to dump

    Returns:
        Dictionary suitable for json.dump()
    """
    return {
        "version": FORMAT_VERSION,
        "whitelist": sorted(store.filter.whitelisted_files),
        "tests": {
            test_id: {"size": test.size.value, "status": test.status}
            for test_id, test in sorted(store.tests.items())
        },
        "data": {path: _record_to_dict(record) for path, record in sorted(store.get_data(raw=True).items())},
    }


# =============================================================================
# dict → Records
# =============================================================================


def _line_from_dict(value: dict[str, Any] | None) -> LineRecord | None:
    if value is None:
        return None
    return LineRecord(path_covered=bool(value["path_covered"]), tests=[str(t) for t in value["tests"]])


def _record_from_dict(value: dict[str, Any]) -> FileCoverageRecord:
    return FileCoverageRecord(
        lines={int(n): _line_from_dict(e) for n, e in value.get("lines", {}).items()},
        branches={
            fn: {
                int(i): BranchRecord(
                    hit=int(b["hit"]),
                    line_start=int(b["line_start"]),
                    line_end=int(b["line_end"]),
                    tests=[str(t) for t in b["tests"]],
                )
                for i, b in branches.items()
            }
            for fn, branches in value.get("branches", {}).items()
        },
        paths={
            fn: {int(i): PathRecord(hit=int(p["hit"])) for i, p in paths.items()}
            for fn, paths in value.get("paths", {}).items()
        },
    )


def load_store(store: CoverageStore, data: dict[str, Any]) -> None:
    """Replace store contents with a dump produced by dump_store().

    Whitelisted files are unioned with the store's own.

    Args:
        store: Receiving store
        data: Output of dump_store() (possibly via JSON)

    Raises:
        InvalidInputError: data is not a dump of a supported version
    """
    if not isinstance(data, dict):
        raise InvalidInputError("data", "a dict produced by dump_store()")
    if data.get("version") != FORMAT_VERSION:
        raise InvalidInputError("data", f"a dump with version {FORMAT_VERSION}, got {data.get('version')!r}")

    try:
        records = {str(path): _record_from_dict(value) for path, value in data["data"].items()}
        tests = {
            str(test_id): TestRecord(
                test_id=str(test_id),
                size=TestSize(value["size"]),
                status=int(value["status"]),
            )
            for test_id, value in data["tests"].items()
        }
        whitelist = [str(path) for path in data["whitelist"]]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidInputError("data", f"a well-formed coverage dump ({type(e).__name__}: {e})") from e

    store.set_data(records)
    store.set_tests(tests)
    store.filter.set_whitelisted_files(store.filter.whitelisted_files | set(whitelist))
    logger.debug("loaded %d files and %d tests", len(records), len(tests))


# =============================================================================
# Files
# =============================================================================


def write_json(store: CoverageStore, path: str | Path, *, indent: int | None = None) -> None:
    """Write dump_store() output to a JSON file.

    Args:
        store: Store to dump
        path: Destination file
        indent: JSON indentation (default: None for compact)
    """
    Path(path).write_text(json.dumps(dump_store(store), indent=indent), encoding="utf-8")


def read_json(store: CoverageStore, path: str | Path) -> None:
    """Load a JSON file written by write_json() into store.

    Raises:
        ParsingError: File cannot be read or is not valid JSON
        InvalidInputError: JSON is not a supported coverage dump
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParsingError(str(path), str(e) or type(e).__name__) from e
    load_store(store, data)
