#!/usr/bin/env python3
"""Benchmark script for coverstat performance testing.

Outputs results in JSON format compatible with github-action-benchmark.
"""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path
from types import MappingProxyType

FILES = 200
LINES = 200


def _structure_parser() -> object:
    from coverstat.domain.model.structure import FileStructure
    from coverstat.domain.ports.structure_parser import StructureParserPort

    class SyntheticParser(StructureParserPort):
        """Every file is LINES lines of plain code, never read from disk."""

        def parse(self, path: str) -> FileStructure:
            return FileStructure(path=path, lines=tuple(f"x = {n}" for n in range(LINES)))

    return SyntheticParser()


def _store() -> object:
    from coverstat.application.services.coverage_store import CoverageStore
    from coverstat.infrastructure.tracking import MonitoringDriver

    return CoverageStore(MonitoringDriver(), parser=_structure_parser())  # type: ignore[arg-type]


def _raw(offset: int) -> object:
    from coverstat.domain.model.enums import LineStatus
    from coverstat.domain.model.raw import RawFileCoverage

    files = {}
    for i in range(FILES):
        lines = {
            n: LineStatus.EXECUTED if (n + offset) % 3 else LineStatus.NOT_EXECUTED for n in range(1, LINES + 1)
        }
        files[f"/bench/module_{i}.py"] = RawFileCoverage(lines=MappingProxyType(lines))
    return MappingProxyType(files)


def benchmark_import_time() -> float:
    """Measure import time of coverstat package."""
    start = time.perf_counter()
    import coverstat  # noqa: F401

    return time.perf_counter() - start


def benchmark_append() -> float:
    """Measure folding 10 tests over FILES x LINES lines into one store."""
    store = _store()
    batches = [_raw(i) for i in range(10)]

    start = time.perf_counter()
    for i, raw in enumerate(batches):
        store.append(raw, f"test_{i}")  # type: ignore[attr-defined]
    return time.perf_counter() - start


def benchmark_merge() -> float:
    """Measure merging two populated stores."""
    left, right = _store(), _store()
    left.append(_raw(0), "left")  # type: ignore[attr-defined]
    right.append(_raw(1), "right")  # type: ignore[attr-defined]

    start = time.perf_counter()
    left.merge(right)  # type: ignore[attr-defined]
    return time.perf_counter() - start


def main() -> None:
    """Run benchmarks and output results."""
    parser = argparse.ArgumentParser(description="Run coverstat benchmarks")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("benchmark-results.json"),
        help="Output file for benchmark results",
    )
    args = parser.parse_args()

    results = [
        {"name": "Import Time", "unit": "seconds", "value": benchmark_import_time()},
        {"name": f"Append (10 tests, {FILES}x{LINES} lines)", "unit": "seconds", "value": benchmark_append()},
        {"name": f"Merge ({FILES} files)", "unit": "seconds", "value": benchmark_merge()},
    ]

    # Write results
    args.output.write_text(json.dumps(results, indent=2))
    print(f"Benchmark results written to {args.output}")
    for r in results:
        print(f"  {r['name']}: {r['value']:.4f} {r['unit']}")


if __name__ == "__main__":
    main()
