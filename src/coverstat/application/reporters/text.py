"""Text reporter: report tree → rich formatted summary string."""

from __future__ import annotations

from dataclasses import dataclass
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

from coverstat.domain.model.stats import format_percent, percent

if TYPE_CHECKING:
    from coverstat.domain.model.report import DirectoryNode


@dataclass(frozen=True, slots=True)
class TextReporterConfig:
    """Configuration for text reporter.

    All fields have defaults (convenience).
    Immutable (frozen dataclass).

    Attributes:
        low_upper_bound: Coverage at or below is low (red).
        high_lower_bound: Coverage at or above is high (green).
        show_uncovered_files: List classes with no executed line.
        show_only_summary: Omit the per-class section.
        show_colors: Emit ANSI colors.
        width: Console width in characters.
    """

    low_upper_bound: int = 50
    high_lower_bound: int = 90
    show_uncovered_files: bool = False
    show_only_summary: bool = False
    show_colors: bool = False
    width: int = 120

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if not 0 <= self.low_upper_bound <= self.high_lower_bound <= 100:
            raise ValueError(
                "bounds must satisfy 0 <= low_upper_bound <= high_lower_bound <= 100, "
                f"got {self.low_upper_bound} and {self.high_lower_bound}",
            )
        if self.width <= 0:
            raise ValueError(f"width must be > 0, got {self.width}")


@dataclass(frozen=True, slots=True)
class _ClassRow:
    """Per-class counters of the detail section."""

    name: str
    tested_methods: int
    methods: int
    executed_lines: int
    executable_lines: int
    tested_branches: int
    branches: int
    tested_paths: int
    paths: int


def _counts(covered: int, total: int, width: int = 0) -> str:
    """ "xx.xx% (covered/total)" with optional right-aligned counts."""
    return f"{format_percent(covered, total, fixed_width=True)} ({covered:>{width}}/{total:>{width}})"


class TextReporter:
    """Text reporter: summary plus per-class coverage.

    Output is str, not print(). Caller decides destination.
    """

    def __init__(self, config: TextReporterConfig | None = None) -> None:
        """Initialize reporter.

        Args:
            config: Reporter configuration. Uses defaults if None.
        """
        self._config = config or TextReporterConfig()

    def report(self, root: DirectoryNode) -> str:
        """Format report tree.

        Args:
            root: Root of the report tree

        Returns:
            Formatted string
        """
        output = StringIO()
        console = Console(
            file=output,
            force_terminal=self._config.show_colors,
            color_system="standard" if self._config.show_colors else None,
            highlight=False,
            width=self._config.width,
        )

        self._render_summary(console, root)
        if not self._config.show_only_summary:
            self._render_classes(console, root)

        return output.getvalue()

    def _style(self, covered: int, total: int) -> str:
        """Color by coverage thresholds."""
        if not self._config.show_colors:
            return ""
        coverage = percent(covered, total)
        if coverage >= self._config.high_lower_bound:
            return "black on green"
        if coverage > self._config.low_upper_bound:
            return "black on yellow"
        return "white on red"

    def _render_summary(self, console: Console, root: DirectoryNode) -> None:
        """Render title and the five totals lines."""
        rows = [
            ("Classes:", root.num_tested_classes_and_traits, root.num_classes_and_traits),
            ("Methods:", root.num_tested_methods, root.num_methods),
            ("Lines:", root.num_executed_lines, root.num_executable_lines),
            ("Branches:", root.num_tested_branches, root.num_branches),
            ("Paths:", root.num_tested_paths, root.num_paths),
        ]

        console.print()
        title = "Code Coverage Report Summary:" if self._config.show_only_summary else "Code Coverage Report:"
        console.print(Text(title, style="bold" if self._config.show_colors else ""))
        if not self._config.show_only_summary:
            console.print()
            console.print(" Summary:")

        for label, covered, total in rows:
            line = f"  {label:<9} {format_percent(covered, total, fixed_width=True):>6} ({covered}/{total})"
            console.print(Text(line, style=self._style(covered, total)))

    def _collect_rows(self, root: DirectoryNode) -> list[_ClassRow]:
        """Per-class counters over methods with executable lines."""
        rows: list[_ClassRow] = []
        for node in root.iter_files():
            for unit in node.classes_and_traits:
                methods = [m for m in node.methods_of(unit) if m.executable_lines > 0]
                rows.append(
                    _ClassRow(
                        name=unit.name,
                        tested_methods=sum(1 for m in methods if m.is_tested),
                        methods=len(methods),
                        executed_lines=sum(m.executed_lines for m in methods),
                        executable_lines=sum(m.executable_lines for m in methods),
                        tested_branches=sum(m.executed_branches for m in methods),
                        branches=sum(m.executable_branches for m in methods),
                        tested_paths=sum(m.executed_paths for m in methods),
                        paths=sum(m.executable_paths for m in methods),
                    ),
                )
        return sorted(rows, key=lambda r: r.name)

    def _render_classes(self, console: Console, root: DirectoryNode) -> None:
        """Render per-class table."""
        rows = [
            r for r in self._collect_rows(root) if self._config.show_uncovered_files or r.executed_lines != 0
        ]
        if not rows:
            return

        def width(*values: int) -> int:
            return max((len(str(v)) for v in values), default=1)

        method_width = width(*(r.methods for r in rows))
        line_width = width(*(r.executable_lines for r in rows))
        branch_width = width(*(r.branches for r in rows))
        path_width = width(*(r.paths for r in rows))

        table = Table(box=None, show_edge=False, pad_edge=False)
        table.add_column("Class")
        table.add_column("Methods")
        table.add_column("Lines")
        table.add_column("Branches")
        table.add_column("Paths")

        for r in rows:
            table.add_row(
                r.name,
                Text(
                    _counts(r.tested_methods, r.methods, method_width),
                    style=self._style(r.tested_methods, r.methods),
                ),
                Text(
                    _counts(r.executed_lines, r.executable_lines, line_width),
                    style=self._style(r.executed_lines, r.executable_lines),
                ),
                Text(
                    _counts(r.tested_branches, r.branches, branch_width),
                    style=self._style(r.tested_branches, r.branches),
                ),
                Text(_counts(r.tested_paths, r.paths, path_width), style=self._style(r.tested_paths, r.paths)),
            )

        console.print()
        console.print(table)
