"""Domain model entities."""

# Raw driver data
from coverstat.domain.model.configuration import CoverageConfig
from coverstat.domain.model.enums import (
    ClassKind,
    LineStatus,
    TestSize,
    TokenKind,
    UnitKind,
    Visibility,
)
from coverstat.domain.model.expectation import (
    EMPTY_LINE_MAP,
    NO_EXPECTATION,
    Covered,
    LineMap,
    normalize_covered,
    normalize_line_map,
)
from coverstat.domain.model.raw import (
    RawBranch,
    RawCoverage,
    RawFileCoverage,
    RawFunctionCoverage,
    RawPath,
)

# Accumulated records
from coverstat.domain.model.records import (
    BranchRecord,
    FileCoverageRecord,
    LineRecord,
    PathRecord,
    TestRecord,
)

# Report tree
from coverstat.domain.model.report import DirectoryNode, FileNode, ReportNode, Totals
from coverstat.domain.model.stats import UnitStat, crap, format_percent, percent

# Source structure
from coverstat.domain.model.structure import (
    ClassLike,
    CodeUnit,
    FileStructure,
    LinesOfCode,
    SourceToken,
)

__all__ = [
    # Configuration
    "CoverageConfig",
    # Enums
    "ClassKind",
    "LineStatus",
    "TestSize",
    "TokenKind",
    "UnitKind",
    "Visibility",
    # Expectations
    "EMPTY_LINE_MAP",
    "NO_EXPECTATION",
    "Covered",
    "LineMap",
    "normalize_covered",
    "normalize_line_map",
    # Raw
    "RawBranch",
    "RawCoverage",
    "RawFileCoverage",
    "RawFunctionCoverage",
    "RawPath",
    # Records
    "BranchRecord",
    "FileCoverageRecord",
    "LineRecord",
    "PathRecord",
    "TestRecord",
    # Report
    "DirectoryNode",
    "FileNode",
    "ReportNode",
    "Totals",
    "UnitStat",
    "crap",
    "format_percent",
    "percent",
    # Structure
    "ClassLike",
    "CodeUnit",
    "FileStructure",
    "LinesOfCode",
    "SourceToken",
]
