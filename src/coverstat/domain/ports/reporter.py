"""Reporter protocol for output formatting.

Users extend coverstat by implementing this Protocol.
NOT rich-specific - users can adapt to any output format.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from coverstat.domain.model.report import DirectoryNode


class ReporterProtocol(Protocol):
    """Contract for reporters.

    Users implement this Protocol to customize output format.
    coverstat provides TextReporter as default.

    Example:
        class CsvReporter:
            def report(self, root: DirectoryNode) -> str:
                rows = ["file,executable,executed"]
                for node in root.iter_files():
                    rows.append(f"{node.path},{node.num_executable_lines},{node.num_executed_lines}")
                return "\\n".join(rows)
    """

    def report(self, root: DirectoryNode) -> str:
        """Render the report tree.

        Output is str, not print(). Caller decides destination.

        Args:
            root: Root of the report tree
        """
        ...
