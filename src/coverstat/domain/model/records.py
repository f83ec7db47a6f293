"""Accumulated coverage records.

Mutable collectors owned by CoverageStore. copy() gives the independent
scratch values used for stage-then-commit appends and merges.

Line entries are tagged:
    - excluded: line absent from FileCoverageRecord.lines
    - not executable: None marker
    - concrete: LineRecord
"""

from __future__ import annotations

from dataclasses import dataclass, field

from coverstat.domain.model.enums import TestSize

# Line priorities used by merge. Higher wins.
PRIORITY_ABSENT = 1
PRIORITY_EMPTY = 2
PRIORITY_NOT_EXECUTABLE = 3
PRIORITY_COVERED = 4


def _add_unique(tests: list[str], test_id: str) -> None:
    if test_id not in tests:
        tests.append(test_id)


@dataclass(slots=True)
class LineRecord:
    """Concrete record of an executable line.

    Attributes:
        path_covered: Line was executed (or lies in a taken branch)
        tests: Ids of tests that executed the line, insertion-ordered, unique
    """

    path_covered: bool = False
    tests: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Recorded but never executed by anything."""
        return not self.path_covered and not self.tests

    def add_test(self, test_id: str) -> None:
        """Append test id unless already present."""
        _add_unique(self.tests, test_id)

    def absorb(self, other: LineRecord) -> None:
        """Union tests (own order first) and OR path_covered."""
        self.path_covered = self.path_covered or other.path_covered
        for test_id in other.tests:
            _add_unique(self.tests, test_id)

    def copy(self) -> LineRecord:
        """Independent copy."""
        return LineRecord(path_covered=self.path_covered, tests=list(self.tests))


@dataclass(slots=True)
class BranchRecord:
    """Accumulated branch observation.

    Attributes:
        hit: Max hit across observations (never decreases)
        line_start: First line of the branch
        line_end: End line of the branch
        tests: Ids of tests that took the branch
    """

    hit: int = 0
    line_start: int = 0
    line_end: int = 0
    tests: list[str] = field(default_factory=list)

    def record_hit(self, hit: int) -> None:
        """Raise hit to max(hit, current)."""
        self.hit = max(self.hit, hit)

    def add_test(self, test_id: str) -> None:
        """Append test id unless already present."""
        _add_unique(self.tests, test_id)

    def absorb(self, other: BranchRecord) -> None:
        """Merge another observation of the same branch."""
        self.record_hit(other.hit)
        if not self.line_start:
            self.line_start = other.line_start
        if not self.line_end:
            self.line_end = other.line_end
        for test_id in other.tests:
            _add_unique(self.tests, test_id)

    def copy(self) -> BranchRecord:
        """Independent copy."""
        return BranchRecord(
            hit=self.hit,
            line_start=self.line_start,
            line_end=self.line_end,
            tests=list(self.tests),
        )


@dataclass(slots=True)
class PathRecord:
    """Accumulated path observation. hit never decreases."""

    hit: int = 0

    def record_hit(self, hit: int) -> None:
        """Raise hit to max(hit, current)."""
        self.hit = max(self.hit, hit)

    def copy(self) -> PathRecord:
        """Independent copy."""
        return PathRecord(hit=self.hit)


@dataclass(slots=True)
class FileCoverageRecord:
    """All accumulated coverage of one file.

    Attributes:
        lines: Line → LineRecord, or None for not-executable lines
        branches: Function name → branch id → BranchRecord
        paths: Function name → path id → PathRecord
    """

    lines: dict[int, LineRecord | None] = field(default_factory=dict)
    branches: dict[str, dict[int, BranchRecord]] = field(default_factory=dict)
    paths: dict[str, dict[int, PathRecord]] = field(default_factory=dict)

    def line_priority(self, line: int) -> int:
        """Merge priority of a line: absent < empty < not executable < covered."""
        if line not in self.lines:
            return PRIORITY_ABSENT
        entry = self.lines[line]
        if entry is None:
            return PRIORITY_NOT_EXECUTABLE
        if entry.is_empty:
            return PRIORITY_EMPTY
        return PRIORITY_COVERED

    def line(self, line: int) -> LineRecord:
        """Concrete record of a line, created (replacing a None marker) if needed."""
        entry = self.lines.get(line)
        if entry is None:
            entry = LineRecord()
            self.lines[line] = entry
        return entry

    def branch(self, function: str, branch_id: int) -> BranchRecord:
        """Branch record, created on first access."""
        return self.branches.setdefault(function, {}).setdefault(branch_id, BranchRecord())

    def path(self, function: str, path_id: int) -> PathRecord:
        """Path record, created on first access."""
        return self.paths.setdefault(function, {}).setdefault(path_id, PathRecord())

    def copy(self) -> FileCoverageRecord:
        """Deep, independent copy."""
        return FileCoverageRecord(
            lines={n: (e.copy() if e is not None else None) for n, e in self.lines.items()},
            branches={
                fn: {i: b.copy() for i, b in branches.items()} for fn, branches in self.branches.items()
            },
            paths={fn: {i: p.copy() for i, p in paths.items()} for fn, paths in self.paths.items()},
        )


@dataclass(frozen=True, slots=True)
class TestRecord:
    """Contributing test as recorded in the store.

    Attributes:
        test_id: Unique test identifier
        size: Size category
        status: Status code reported by the runner, -1 if unknown
    """

    __test__ = False

    test_id: str
    size: TestSize = TestSize.UNKNOWN
    status: int = -1

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if not self.test_id:
            raise ValueError("test_id must be non-empty string")
