"""Domain exceptions: all public errors of coverstat.

Hexagonal architecture: all exceptions visible to users defined in domain.
Infrastructure/Application use these, not define their own public exceptions.
"""

from __future__ import annotations

from collections.abc import Sequence


class CoverstatError(Exception):
    """Base for all coverstat error exceptions.

    Allows: except CoverstatError to catch all library errors.
    """


class ConfigurationError(CoverstatError, RuntimeError):
    """Coverage cannot be collected with the current setup.

    Raised when no driver is available or the driver lacks a
    requested capability (branch coverage).

    Attributes:
        reason: Error description.
    """

    def __init__(self, reason: str) -> None:
        """Initialize with reason."""
        if not reason:
            raise ValueError("reason must be non-empty string")
        self.reason = reason
        super().__init__(reason)


class InvalidInputError(CoverstatError, TypeError):
    """Argument has the wrong shape.

    Inherits TypeError for semantic correctness (expected X, got Y).

    Attributes:
        argument: Name of the offending argument.
        expected: Description of what was expected.
    """

    def __init__(self, argument: str, expected: str) -> None:
        """Initialize with argument name and expectation."""
        self.argument = argument
        self.expected = expected
        super().__init__(f"Argument {argument!r} must be {expected}")


class NotFoundError(CoverstatError, FileNotFoundError):
    """Path added to the filter does not exist.

    Attributes:
        path: Missing path.
    """

    def __init__(self, path: str) -> None:
        """Initialize with missing path."""
        self.path = path
        super().__init__(f"{path} does not exist")


class ParsingError(CoverstatError):
    """Source file cannot be read for structural analysis.

    Syntax errors are NOT parsing errors: parsers skip invalid input.

    Attributes:
        path: File that failed.
        reason: Error description.
    """

    def __init__(self, path: str, reason: str) -> None:
        """Initialize with file path and error reason."""
        if not reason:
            raise ValueError("reason must be non-empty string")
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read {path}: {reason}")


class AlreadyActiveError(CoverstatError, RuntimeError):
    """Collection already active, cannot start again.

    Brackets must not overlap on one store or driver.
    """

    def __init__(self) -> None:
        """Initialize with fixed message."""
        super().__init__("Coverage collection already active")


class NotActiveError(CoverstatError, RuntimeError):
    """Collection not active, nothing to stop."""

    def __init__(self) -> None:
        """Initialize with fixed message."""
        super().__init__("Coverage collection not active")


class ExpectationError(CoverstatError):
    """Base for failures of the declared-expectation checks.

    Raised from append(); the store is unchanged when one propagates.
    """


class MissingExpectationError(ExpectationError):
    """Test declares no expectation while one is required.

    Attributes:
        test_id: Test without expectation.
    """

    def __init__(self, test_id: str) -> None:
        """Initialize with test id."""
        self.test_id = test_id
        super().__init__(f"{test_id} does not declare which code it is expected to cover")


class ExpectationNotMetError(ExpectationError):
    """Declared code units were never executed.

    Attributes:
        missing: (code unit, declaration kind) pairs, kind is "covers" or "uses".
    """

    def __init__(self, missing: Sequence[tuple[str, str]]) -> None:
        """Initialize with missing units."""
        if not missing:
            raise ValueError("missing must not be empty")
        self.missing = tuple(missing)
        lines = [
            f"- {unit} is expected to be executed ({kind}) but was not executed"
            for unit, kind in self.missing
        ]
        super().__init__("\n".join(lines))


class UnintentionallyCoveredError(ExpectationError):
    """Execution touched code outside the declared expectation.

    Attributes:
        units: Sorted code units that were executed unintentionally.
    """

    def __init__(self, units: Sequence[str]) -> None:
        """Initialize with offending units."""
        if not units:
            raise ValueError("units must not be empty")
        self.units = tuple(units)
        listing = "\n".join(f"- {unit}" for unit in self.units)
        super().__init__(f"This test executed code that is not listed as code to be covered or used:\n{listing}")
