"""Driver port (interface)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coverstat.domain.model.raw import RawCoverage


class DriverPort(ABC):
    """Port for the instrumentation that observes executed lines.

    Infrastructure layer must provide implementation.
    One start()/stop() bracket at a time.
    """

    @property
    @abstractmethod
    def supports_branch_coverage(self) -> bool:
        """Driver can report branch and path data."""
        ...

    @abstractmethod
    def start(self, determine_dead_and_unused: bool = True) -> None:
        """Start observing.

        Args:
            determine_dead_and_unused: Also report executable lines that did
                not run (NOT_EXECUTED) and dead code (NOT_EXECUTABLE)

        Raises:
            AlreadyActiveError: Bracket already open
        """
        ...

    @abstractmethod
    def stop(self) -> RawCoverage:
        """Stop observing and return everything seen since start().

        Raises:
            NotActiveError: No bracket open
        """
        ...

    @abstractmethod
    def set_determine_branch_coverage(self, flag: bool) -> None:
        """Enable or disable branch/path collection.

        Raises:
            ConfigurationError: flag is True and branches are unsupported
        """
        ...
