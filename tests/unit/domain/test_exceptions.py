"""Tests for domain/exceptions.py.

Tests:
- Hierarchy: every error is a CoverstatError, builtin bases where declared
- Attributes carried by each error
- FAIL-FIRST constructors
"""

import pytest

from coverstat.domain.exceptions import (
    AlreadyActiveError,
    ConfigurationError,
    CoverstatError,
    ExpectationError,
    ExpectationNotMetError,
    InvalidInputError,
    MissingExpectationError,
    NotActiveError,
    NotFoundError,
    ParsingError,
    UnintentionallyCoveredError,
)


class TestHierarchy:
    """Tests for exception base classes."""

    @pytest.mark.parametrize(
        ("error", "builtin"),
        [
            (ConfigurationError("x"), RuntimeError),
            (InvalidInputError("arg", "a dict"), TypeError),
            (NotFoundError("/missing"), FileNotFoundError),
            (AlreadyActiveError(), RuntimeError),
            (NotActiveError(), RuntimeError),
        ],
    )
    def test_builtin_base(self, error: CoverstatError, builtin: type[Exception]) -> None:
        """Errors are catchable as their builtin counterpart."""
        assert isinstance(error, CoverstatError)
        assert isinstance(error, builtin)

    def test_expectation_errors(self) -> None:
        """Expectation failures share ExpectationError."""
        assert issubclass(MissingExpectationError, ExpectationError)
        assert issubclass(ExpectationNotMetError, ExpectationError)
        assert issubclass(UnintentionallyCoveredError, ExpectationError)
        assert issubclass(ExpectationError, CoverstatError)

    def test_catch_all(self) -> None:
        """except CoverstatError catches library errors."""
        with pytest.raises(CoverstatError, match="already active"):
            raise AlreadyActiveError


class TestAttributes:
    """Tests for data carried by errors."""

    def test_invalid_input(self) -> None:
        err = InvalidInputError("covered", "a mapping")
        assert err.argument == "covered"
        assert err.expected == "a mapping"
        assert str(err) == "Argument 'covered' must be a mapping"

    def test_parsing(self) -> None:
        err = ParsingError("/a.py", "denied")
        assert (err.path, err.reason) == ("/a.py", "denied")
        assert str(err) == "Failed to read /a.py: denied"

    def test_not_found(self) -> None:
        assert NotFoundError("/missing").path == "/missing"

    def test_missing_expectation(self) -> None:
        err = MissingExpectationError("T1")
        assert err.test_id == "T1"
        assert "T1" in str(err)

    def test_expectation_not_met(self) -> None:
        err = ExpectationNotMetError([("Service::run", "covers")])
        assert err.missing == (("Service::run", "covers"),)
        assert str(err) == "- Service::run is expected to be executed (covers) but was not executed"

    def test_unintentionally_covered(self) -> None:
        err = UnintentionallyCoveredError(["a", "b"])
        assert err.units == ("a", "b")
        assert str(err).endswith("\n- a\n- b")


class TestFailFirst:
    """Tests for constructor validation."""

    def test_empty_reason(self) -> None:
        with pytest.raises(ValueError, match="reason"):
            ConfigurationError("")
        with pytest.raises(ValueError, match="reason"):
            ParsingError("/a.py", "")

    def test_empty_missing(self) -> None:
        with pytest.raises(ValueError, match="missing"):
            ExpectationNotMetError([])

    def test_empty_units(self) -> None:
        with pytest.raises(ValueError, match="units"):
            UnintentionallyCoveredError([])
