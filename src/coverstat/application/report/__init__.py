"""Report tree construction and per-file statistics."""

from coverstat.application.report.builder import ReportBuilder, common_base_path
from coverstat.application.report.file_stats import build_file_node

__all__ = [
    "ReportBuilder",
    "build_file_node",
    "common_base_path",
]
