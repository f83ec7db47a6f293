"""Application layer for coverage aggregation.

Components:
- services: CoverageStore facade, ignored lines, expectation checks
- report: Report tree construction and per-file statistics
- reporters: Output formatting (text)
"""

from coverstat.application.report import ReportBuilder
from coverstat.application.reporters import TextReporter, TextReporterConfig
from coverstat.application.services import (
    UNCOVERED_FILES_ID,
    CodeUnitLookup,
    CoverageStore,
    ExpectationFilter,
    IgnoredLinesResolver,
)

__all__ = [
    # Services
    "UNCOVERED_FILES_ID",
    "CodeUnitLookup",
    "CoverageStore",
    "ExpectationFilter",
    "IgnoredLinesResolver",
    # Report
    "ReportBuilder",
    # Reporters
    "TextReporter",
    "TextReporterConfig",
]
