"""coverstat - code coverage aggregation, filtering and reporting."""

__version__ = "0.1.0"

from coverstat.application.reporters import TextReporter, TextReporterConfig
from coverstat.application.services import CoverageStore
from coverstat.domain.exceptions import CoverstatError
from coverstat.domain.model import NO_EXPECTATION, CoverageConfig, TestRecord, TestSize
from coverstat.infrastructure.filters import Filter
from coverstat.infrastructure.serialization import dump_store, load_store, read_json, write_json

__all__ = [
    "NO_EXPECTATION",
    "CoverageConfig",
    "CoverageStore",
    "CoverstatError",
    "Filter",
    "TestRecord",
    "TestSize",
    "TextReporter",
    "TextReporterConfig",
    "__version__",
    "dump_store",
    "load_store",
    "read_json",
    "write_json",
]
