"""Per-file statistics: line scan over an arena of unit counters.

Units live in one list and reference each other by index. Lines map to
unit indices through an immutable table built before the scan.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from coverstat.domain.model.enums import ClassKind, UnitKind
from coverstat.domain.model.raw import METHOD_KEY_SEPARATOR
from coverstat.domain.model.report import FileNode, Totals
from coverstat.domain.model.stats import UnitStat

if TYPE_CHECKING:
    from coverstat.domain.model.records import BranchRecord, FileCoverageRecord, PathRecord, TestRecord
    from coverstat.domain.model.structure import ClassLike, CodeUnit, FileStructure


def _hit_counts(records: Mapping[int, BranchRecord | PathRecord]) -> tuple[int, int]:
    """(known, hit > 0) over branch or path records."""
    total = len(records)
    hit = sum(1 for r in records.values() if r.hit > 0)
    return total, hit


def _unit(code: CodeUnit, kind: UnitKind, parent: int | None = None) -> UnitStat:
    return UnitStat(
        name=code.name,
        kind=kind,
        start_line=code.start_line,
        end_line=code.end_line,
        ccn=code.ccn,
        signature=code.signature,
        visibility=code.visibility,
        parent=parent,
    )


class _Arena:
    """Unit counters plus the line → unit indices table."""

    def __init__(self, line_count: int) -> None:
        self.units: list[UnitStat] = []
        self._line_units: list[list[int]] = [[] for _ in range(line_count + 1)]

    def add(self, unit: UnitStat) -> int:
        self.units.append(unit)
        return len(self.units) - 1

    def attribute(self, start: int, end: int, indices: tuple[int, ...]) -> None:
        """Lines start..end (clamped to the file) also belong to indices.

        Nested units add to the enclosing ones, a line keeps every unit
        whose range contains it.
        """
        for line in range(max(start, 1), min(end, len(self._line_units) - 1) + 1):
            owners = self._line_units[line]
            owners.extend(i for i in indices if i not in owners)

    def freeze(self) -> tuple[tuple[int, ...], ...]:
        return tuple(tuple(owners) for owners in self._line_units)


def _add_class(arena: _Arena, cls: ClassLike) -> int:
    kind = UnitKind.TRAIT if cls.kind is ClassKind.TRAIT else UnitKind.CLASS
    index = arena.add(
        UnitStat(name=cls.qualified_name, kind=kind, start_line=cls.start_line, end_line=cls.end_line),
    )
    for method in cls.methods:
        if method.synthesized:
            continue
        child = arena.add(_unit(method, UnitKind.METHOD, parent=index))
        arena.units[index].children.append(child)
        arena.attribute(method.start_line, method.end_line, (index, child))
    return index


def build_file_node(
    *,
    name: str,
    path: str,
    segments: tuple[str, ...],
    record: FileCoverageRecord,
    tests: Mapping[str, TestRecord],
    structure: FileStructure,
) -> FileNode:
    """Compute the statistics of one file.

    Args:
        name: Last path segment
        path: Absolute file path
        segments: Path segments from the report root
        record: Accumulated coverage of the file
        tests: Tests known to the store
        structure: Parsed structure (invalid structures have no units)

    Returns:
        FileNode with totals and unit arena
    """
    loc = structure.lines_of_code
    line_count = loc.loc if loc is not None else structure.line_count
    arena = _Arena(line_count)

    class_indices = [_add_class(arena, c) for c in structure.classes]
    trait_indices = [_add_class(arena, t) for t in structure.traits]
    function_indices: list[int] = []
    for function in structure.functions:
        if function.synthesized:
            continue
        index = arena.add(_unit(function, UnitKind.FUNCTION))
        function_indices.append(index)
        arena.attribute(function.start_line, function.end_line, (index,))

    line_units = arena.freeze()
    units = arena.units

    executable = 0
    executed = 0
    for line in range(1, line_count + 1):
        if line not in record.lines:
            continue
        entry = record.lines[line]
        if entry is None:
            continue
        executable += 1
        for i in line_units[line]:
            units[i].executable_lines += 1
        if entry.path_covered:
            executed += 1
            for i in line_units[line]:
                units[i].executed_lines += 1

    branches = 0
    tested_branches = 0
    paths = 0
    tested_paths = 0

    def _apply_branches_and_paths(unit: UnitStat, key: str) -> tuple[int, int, int, int]:
        b_total, b_hit = _hit_counts(record.branches.get(key, {}))
        p_total, p_hit = _hit_counts(record.paths.get(key, {}))
        unit.executable_branches, unit.executed_branches = b_total, b_hit
        unit.executable_paths, unit.executed_paths = p_total, p_hit
        return b_total, b_hit, p_total, p_hit

    counted_classes = 0
    tested_classes = 0
    methods = 0
    tested_methods = 0
    for index in (*class_indices, *trait_indices):
        owner = units[index]
        has_executable_method = False
        for child in owner.children:
            method = units[child]
            method.finalize()
            owner.ccn += method.ccn
            b_total, b_hit, p_total, p_hit = _apply_branches_and_paths(
                method,
                f"{owner.name}{METHOD_KEY_SEPARATOR}{method.name}",
            )
            owner.executable_branches += b_total
            owner.executed_branches += b_hit
            owner.executable_paths += p_total
            owner.executed_paths += p_hit
            branches += b_total
            tested_branches += b_hit
            paths += p_total
            tested_paths += p_hit
            if method.executable_lines > 0:
                has_executable_method = True
                methods += 1
                if method.is_tested:
                    tested_methods += 1
        owner.finalize()
        if has_executable_method:
            counted_classes += 1
        if owner.is_tested:
            tested_classes += 1

    tested_functions = 0
    for index in function_indices:
        function = units[index]
        function.finalize()
        if function.is_tested:
            tested_functions += 1
        b_total, b_hit, p_total, p_hit = _apply_branches_and_paths(function, function.name)
        branches += b_total
        tested_branches += b_hit
        paths += p_total
        tested_paths += p_hit

    lines_of_code = structure.lines_of_code
    totals = Totals(
        files=1,
        executable_lines=executable,
        executed_lines=executed,
        classes_and_traits=counted_classes,
        tested_classes_and_traits=tested_classes,
        methods=methods,
        tested_methods=tested_methods,
        functions=len(function_indices),
        tested_functions=tested_functions,
        branches=branches,
        tested_branches=tested_branches,
        paths=paths,
        tested_paths=tested_paths,
        loc=lines_of_code.loc if lines_of_code else 0,
        cloc=lines_of_code.cloc if lines_of_code else 0,
        ncloc=lines_of_code.ncloc if lines_of_code else 0,
    )

    return FileNode(
        name=name,
        path=path,
        segments=segments,
        totals=totals,
        units=tuple(units),
        coverage_data=record.copy(),
        test_data=tests,
    )
