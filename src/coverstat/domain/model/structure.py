"""Structural metadata of a source file.

Produced by a StructureParserPort, consumed by IgnoredLinesResolver,
CodeUnitLookup and the report builder.
"""

from __future__ import annotations

from dataclasses import dataclass

from coverstat.domain.model.enums import ClassKind, TokenKind, Visibility


@dataclass(frozen=True, slots=True)
class CodeUnit:
    """Function or method boundaries.

    Attributes:
        name: Function/method name
        start_line: Declaration line (1-based)
        end_line: Last line of the body
        ccn: Cyclomatic complexity (>= 1)
        signature: Printable signature
        visibility: Visibility by naming convention
        synthesized: Closure/lambda created by the runtime, not declared by name
    """

    name: str
    start_line: int
    end_line: int
    ccn: int = 1
    signature: str = ""
    visibility: Visibility = Visibility.PUBLIC
    synthesized: bool = False

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if not self.name:
            raise ValueError("name must be non-empty string")
        if self.start_line <= 0:
            raise ValueError(f"start_line must be > 0, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(f"end_line ({self.end_line}) must be >= start_line ({self.start_line})")
        if self.ccn < 1:
            raise ValueError(f"ccn must be >= 1, got {self.ccn}")

    def contains(self, line: int) -> bool:
        """Line lies within [start_line, end_line]."""
        return self.start_line <= line <= self.end_line


@dataclass(frozen=True, slots=True)
class ClassLike:
    """Class, trait or interface with its methods in declaration order."""

    name: str
    kind: ClassKind
    start_line: int
    end_line: int
    methods: tuple[CodeUnit, ...] = ()
    namespace: str = ""

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if not self.name:
            raise ValueError("name must be non-empty string")
        if self.start_line <= 0:
            raise ValueError(f"start_line must be > 0, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(f"end_line ({self.end_line}) must be >= start_line ({self.start_line})")

    @property
    def qualified_name(self) -> str:
        """Name prefixed with namespace, if any."""
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name


@dataclass(frozen=True, slots=True)
class SourceToken:
    """Token of interest in source order.

    Attributes:
        kind: Token kind
        line: First line of the token
        end_line: Last line (declarations: end of the declared element)
        text: Token text (comments, docstrings)
        docblock: Documentation attached to a declaration, if any
    """

    kind: TokenKind
    line: int
    end_line: int = 0
    text: str = ""
    docblock: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST. end_line defaults to line."""
        if self.line <= 0:
            raise ValueError(f"line must be > 0, got {self.line}")
        if self.end_line == 0:
            object.__setattr__(self, "end_line", self.line)
        if self.end_line < self.line:
            raise ValueError(f"end_line ({self.end_line}) must be >= line ({self.line})")


@dataclass(frozen=True, slots=True)
class LinesOfCode:
    """Line counts: total, comment and non-comment lines."""

    loc: int
    cloc: int
    ncloc: int

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        if min(self.loc, self.cloc, self.ncloc) < 0:
            raise ValueError("line counts must be >= 0")
        if self.cloc + self.ncloc != self.loc:
            raise ValueError(f"cloc + ncloc must equal loc, got {self.cloc} + {self.ncloc} != {self.loc}")


@dataclass(frozen=True, slots=True)
class FileStructure:
    """Everything known about the structure of one source file.

    Attributes:
        path: File path
        lines: Physical lines without line terminators
        interfaces: Interface-like declarations
        classes: Class declarations
        traits: Trait-like declarations
        functions: Module-level functions
        tokens: Comment/declaration/code tokens in source order
        valid: False when the source could not be parsed (no units, no tokens)
    """

    path: str
    lines: tuple[str, ...]
    interfaces: tuple[ClassLike, ...] = ()
    classes: tuple[ClassLike, ...] = ()
    traits: tuple[ClassLike, ...] = ()
    functions: tuple[CodeUnit, ...] = ()
    tokens: tuple[SourceToken, ...] = ()
    lines_of_code: LinesOfCode | None = None
    valid: bool = True

    def __post_init__(self) -> None:
        """Default lines_of_code to all-code."""
        if self.lines_of_code is None:
            count = len(self.lines)
            object.__setattr__(self, "lines_of_code", LinesOfCode(loc=count, cloc=0, ncloc=count))

    @property
    def line_count(self) -> int:
        """Number of physical lines."""
        return len(self.lines)

    @classmethod
    def unparsable(cls, path: str, lines: tuple[str, ...]) -> FileStructure:
        """Structure of a file whose syntax could not be analyzed."""
        return cls(path=path, lines=lines, valid=False)
