"""Application services for coverage aggregation.

CoverageStore is the main facade for collecting and merging coverage.
"""

from coverstat.application.services.coverage_store import UNCOVERED_FILES_ID, CoverageStore
from coverstat.application.services.expectations import ExpectationFilter
from coverstat.application.services.ignored_lines import IgnoredLinesResolver, compute_ignored_lines
from coverstat.application.services.unit_lookup import CodeUnitLookup

__all__ = [
    "UNCOVERED_FILES_ID",
    "CodeUnitLookup",
    "CoverageStore",
    "ExpectationFilter",
    "IgnoredLinesResolver",
    "compute_ignored_lines",
]
