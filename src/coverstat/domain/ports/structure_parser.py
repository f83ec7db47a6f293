"""Structure parser port (interface)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coverstat.domain.model.structure import FileStructure


class StructureParserPort(ABC):
    """Port for extracting structural metadata from a source file.

    Infrastructure layer must provide implementation.
    """

    @abstractmethod
    def parse(self, path: str) -> FileStructure:
        """Parse single source file.

        Syntactically invalid input is tolerated: the result then has
        lines only and valid=False.

        Args:
            path: Path to source file

        Returns:
            Structure of the file

        Raises:
            ParsingError: If file cannot be read
        """
        ...
