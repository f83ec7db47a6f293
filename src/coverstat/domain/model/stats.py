"""Coverage statistics: percentages, CRAP metric, per-unit counters."""

from __future__ import annotations

from dataclasses import dataclass, field

from coverstat.domain.model.enums import UnitKind, Visibility

FULL_COVERAGE_THRESHOLD = 95.0


def percent(covered: int, total: int) -> float:
    """Coverage percentage (0-100).

    Returns 100.0 if total is 0 (nothing to cover = fully covered).
    """
    if total == 0:
        return 100.0
    return (covered / total) * 100.0


def format_percent(covered: int, total: int, *, fixed_width: bool = False) -> str:
    """Percentage as "12.34%", "" when total is 0.

    Args:
        covered: Covered count
        total: Total count
        fixed_width: Right-align to 7 characters (" 12.34%")
    """
    if total == 0:
        return ""
    text = f"{percent(covered, total):.2f}%"
    if fixed_width:
        return text.rjust(7)
    return text


def crap(ccn: int, coverage: float) -> str:
    """Change Risk Anti-Patterns score, rendered like the report shows it.

    Args:
        ccn: Cyclomatic complexity of the unit
        coverage: Line coverage percentage (0-100)

    Returns:
        ccn as-is at >= 95% coverage, ccn² + ccn at 0%,
        ccn² × (1 − coverage/100)³ + ccn with two decimals otherwise
    """
    if coverage == 0:
        return str(ccn**2 + ccn)
    if coverage >= FULL_COVERAGE_THRESHOLD:
        return str(ccn)
    return f"{ccn**2 * (1 - coverage / 100) ** 3 + ccn:.2f}"


@dataclass(slots=True)
class UnitStat:
    """Statistics of one class, trait, method or function.

    Arena element: units reference each other by index into the owning
    FileNode.units tuple, never by object.

    NOT frozen: counters are accumulated while the file is scanned.
    """

    name: str
    kind: UnitKind
    start_line: int
    end_line: int
    ccn: int = 0
    signature: str = ""
    visibility: Visibility = Visibility.PUBLIC
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    executable_lines: int = 0
    executed_lines: int = 0
    executable_paths: int = 0
    executed_paths: int = 0
    executable_branches: int = 0
    executed_branches: int = 0
    coverage: float = 0.0
    crap: str = "0"

    def finalize(self) -> None:
        """Compute coverage and crap from the accumulated counters."""
        self.coverage = percent(self.executed_lines, self.executable_lines)
        self.crap = crap(self.ccn, self.coverage)

    @property
    def is_tested(self) -> bool:
        """Has executable lines and all of them were executed."""
        return self.executable_lines > 0 and self.executed_lines == self.executable_lines
