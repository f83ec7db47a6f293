"""Reporters for coverage report trees.

Built-in reporter renders with rich.
Users can implement custom reporters via ReporterProtocol.
"""

from coverstat.application.reporters.text import TextReporter, TextReporterConfig

__all__ = [
    "TextReporter",
    "TextReporterConfig",
]
