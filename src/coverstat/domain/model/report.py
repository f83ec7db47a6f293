"""Report tree: directories and files with coverage totals.

Read-only for renderers. Directory totals are sums of child totals;
percentages are always recomputed from summed counts.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, fields

from coverstat.domain.model.enums import UnitKind
from coverstat.domain.model.records import FileCoverageRecord, TestRecord
from coverstat.domain.model.stats import UnitStat, percent
from coverstat.domain.model.structure import LinesOfCode


@dataclass(frozen=True, slots=True)
class Totals:
    """Summable coverage counters of a node."""

    files: int = 0
    executable_lines: int = 0
    executed_lines: int = 0
    classes_and_traits: int = 0
    tested_classes_and_traits: int = 0
    methods: int = 0
    tested_methods: int = 0
    functions: int = 0
    tested_functions: int = 0
    branches: int = 0
    tested_branches: int = 0
    paths: int = 0
    tested_paths: int = 0
    loc: int = 0
    cloc: int = 0
    ncloc: int = 0

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise ValueError(f"{f.name} must be >= 0, got {value}")
        if self.executed_lines > self.executable_lines:
            raise ValueError(
                f"executed_lines ({self.executed_lines}) must be <= executable_lines ({self.executable_lines})",
            )

    def __add__(self, other: Totals) -> Totals:
        return Totals(**{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)})


class _NodeStatistics:
    """Counters and percentages shared by DirectoryNode and FileNode."""

    __slots__ = ()

    segments: tuple[str, ...]
    totals: Totals

    @property
    def id(self) -> str:
        """Path segments joined with "/", unique within the tree."""
        return "/".join(self.segments)

    @property
    def parent_id(self) -> str | None:
        """id of the enclosing directory, None for the root."""
        if len(self.segments) <= 1:
            return None
        return "/".join(self.segments[:-1])

    @property
    def num_files(self) -> int:
        """Number of files in/under this node."""
        return self.totals.files

    @property
    def num_executable_lines(self) -> int:
        """Lines that can be executed."""
        return self.totals.executable_lines

    @property
    def num_executed_lines(self) -> int:
        """Lines that were executed."""
        return self.totals.executed_lines

    @property
    def num_classes_and_traits(self) -> int:
        """Classes and traits with at least one executable method."""
        return self.totals.classes_and_traits

    @property
    def num_tested_classes_and_traits(self) -> int:
        """Classes and traits fully covered."""
        return self.totals.tested_classes_and_traits

    @property
    def num_methods(self) -> int:
        """Methods with executable lines."""
        return self.totals.methods

    @property
    def num_tested_methods(self) -> int:
        """Methods fully covered."""
        return self.totals.tested_methods

    @property
    def num_functions(self) -> int:
        """Module-level functions."""
        return self.totals.functions

    @property
    def num_tested_functions(self) -> int:
        """Functions fully covered."""
        return self.totals.tested_functions

    @property
    def num_functions_and_methods(self) -> int:
        """Functions plus methods."""
        return self.totals.functions + self.totals.methods

    @property
    def num_tested_functions_and_methods(self) -> int:
        """Fully covered functions plus methods."""
        return self.totals.tested_functions + self.totals.tested_methods

    @property
    def num_branches(self) -> int:
        """Known branches."""
        return self.totals.branches

    @property
    def num_tested_branches(self) -> int:
        """Branches with hit > 0."""
        return self.totals.tested_branches

    @property
    def num_paths(self) -> int:
        """Known paths."""
        return self.totals.paths

    @property
    def num_tested_paths(self) -> int:
        """Paths with hit > 0."""
        return self.totals.tested_paths

    @property
    def lines_of_code(self) -> LinesOfCode:
        """Summed LOC/CLOC/NCLOC."""
        return LinesOfCode(loc=self.totals.loc, cloc=self.totals.cloc, ncloc=self.totals.ncloc)

    @property
    def line_executed_percent(self) -> float:
        """Executed / executable lines × 100."""
        return percent(self.totals.executed_lines, self.totals.executable_lines)

    @property
    def tested_classes_and_traits_percent(self) -> float:
        """Tested / all classes and traits × 100."""
        return percent(self.totals.tested_classes_and_traits, self.totals.classes_and_traits)

    @property
    def tested_methods_percent(self) -> float:
        """Tested / all methods × 100."""
        return percent(self.totals.tested_methods, self.totals.methods)

    @property
    def tested_functions_and_methods_percent(self) -> float:
        """Tested / all functions and methods × 100."""
        return percent(self.num_tested_functions_and_methods, self.num_functions_and_methods)

    @property
    def tested_branches_percent(self) -> float:
        """Tested / all branches × 100."""
        return percent(self.totals.tested_branches, self.totals.branches)

    @property
    def tested_paths_percent(self) -> float:
        """Tested / all paths × 100."""
        return percent(self.totals.tested_paths, self.totals.paths)


@dataclass(frozen=True, slots=True)
class FileNode(_NodeStatistics):
    """File in the report tree.

    Attributes:
        name: Last path segment
        path: Absolute path of the source file
        segments: Path segments from the report root (root name first)
        totals: Counters of this file
        units: Arena of class/trait/method/function statistics
        coverage_data: Snapshot of the accumulated record of this file
        test_data: Tests known to the store
    """

    name: str
    path: str
    segments: tuple[str, ...]
    totals: Totals
    units: tuple[UnitStat, ...]
    coverage_data: FileCoverageRecord
    test_data: Mapping[str, TestRecord]

    def _units_of_kind(self, kind: UnitKind) -> tuple[UnitStat, ...]:
        return tuple(u for u in self.units if u.kind is kind)

    @property
    def classes(self) -> tuple[UnitStat, ...]:
        """Class statistics in declaration order."""
        return self._units_of_kind(UnitKind.CLASS)

    @property
    def traits(self) -> tuple[UnitStat, ...]:
        """Trait statistics in declaration order."""
        return self._units_of_kind(UnitKind.TRAIT)

    @property
    def classes_and_traits(self) -> tuple[UnitStat, ...]:
        """Classes then traits."""
        return self.classes + self.traits

    @property
    def functions(self) -> tuple[UnitStat, ...]:
        """Module-level function statistics."""
        return self._units_of_kind(UnitKind.FUNCTION)

    def methods_of(self, unit: UnitStat) -> tuple[UnitStat, ...]:
        """Method statistics of a class or trait."""
        return tuple(self.units[i] for i in unit.children)

    def iter_files(self) -> Iterator[FileNode]:
        """Yield self."""
        yield self


@dataclass(frozen=True, slots=True)
class DirectoryNode(_NodeStatistics):
    """Directory in the report tree.

    Attributes:
        name: Directory name (root: common base path)
        segments: Path segments from the report root
        children: Path segment → child node; directories first, then files
        totals: Sum of child totals
    """

    name: str
    segments: tuple[str, ...]
    children: Mapping[str, DirectoryNode | FileNode]
    totals: Totals

    @property
    def path(self) -> str:
        """Filesystem path of the directory."""
        return os.path.join(*self.segments) if self.segments else ""

    @property
    def directories(self) -> tuple[DirectoryNode, ...]:
        """Direct child directories."""
        return tuple(c for c in self.children.values() if isinstance(c, DirectoryNode))

    @property
    def files(self) -> tuple[FileNode, ...]:
        """Direct child files."""
        return tuple(c for c in self.children.values() if isinstance(c, FileNode))

    def iter_files(self) -> Iterator[FileNode]:
        """All files under this directory, depth-first in child order."""
        for child in self.children.values():
            yield from child.iter_files()


type ReportNode = DirectoryNode | FileNode
