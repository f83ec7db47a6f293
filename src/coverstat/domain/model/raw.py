"""Raw coverage data as produced by a driver for one bracket."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from coverstat.domain.model.enums import LineStatus

# Function key of a method in RawFileCoverage.functions: "Class->method"
METHOD_KEY_SEPARATOR = "->"


@dataclass(frozen=True, slots=True)
class RawBranch:
    """Branch observation inside one function.

    Attributes:
        hit: 1 if the branch was taken, 0 otherwise
        line_start: First line of the branch
        line_end: Line the branch ends on (exclusive for path marking)
    """

    hit: int
    line_start: int
    line_end: int

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if self.hit < 0:
            raise ValueError(f"hit must be >= 0, got {self.hit}")
        if self.line_end < self.line_start:
            raise ValueError(f"line_end ({self.line_end}) must be >= line_start ({self.line_start})")


@dataclass(frozen=True, slots=True)
class RawPath:
    """Path observation inside one function."""

    hit: int

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if self.hit < 0:
            raise ValueError(f"hit must be >= 0, got {self.hit}")


@dataclass(frozen=True, slots=True)
class RawFunctionCoverage:
    """Branch and path observations of one function.

    Attributes:
        branches: Branch id → observation
        paths: Path id → observation
    """

    branches: Mapping[int, RawBranch] = field(default_factory=lambda: MappingProxyType({}))
    paths: Mapping[int, RawPath] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class RawFileCoverage:
    """Line and function observations of one file.

    Immutable: filtering returns new instances.

    Attributes:
        lines: Line number (1-based) → status
        functions: Function name → branch/path observations
    """

    lines: Mapping[int, LineStatus] = field(default_factory=lambda: MappingProxyType({}))
    functions: Mapping[str, RawFunctionCoverage] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        for line in self.lines:
            if line <= 0:
                raise ValueError(f"line numbers must be > 0, got {line}")

    @property
    def executed_lines(self) -> tuple[int, ...]:
        """Lines reported as executed, ascending."""
        return tuple(sorted(n for n, s in self.lines.items() if s == LineStatus.EXECUTED))

    def without_lines(self, lines: Iterable[int]) -> RawFileCoverage:
        """Copy with the given line numbers removed."""
        dropped = frozenset(lines)
        kept = {n: s for n, s in self.lines.items() if n not in dropped}
        return RawFileCoverage(lines=MappingProxyType(kept), functions=self.functions)

    def restricted_to(self, lines: Iterable[int]) -> RawFileCoverage:
        """Copy keeping only the given line numbers."""
        allowed = frozenset(lines)
        kept = {n: s for n, s in self.lines.items() if n in allowed}
        return RawFileCoverage(lines=MappingProxyType(kept), functions=self.functions)

    def downgraded(self) -> RawFileCoverage:
        """Copy with every EXECUTED line reported as NOT_EXECUTED."""
        lines = {
            n: LineStatus.NOT_EXECUTED if s == LineStatus.EXECUTED else LineStatus(s)
            for n, s in self.lines.items()
        }
        return RawFileCoverage(lines=MappingProxyType(lines), functions=self.functions)


type RawCoverage = Mapping[str, RawFileCoverage]
