"""Declared coverage expectations of a test.

A test may declare which lines it is expected to cover and which it may
use. NO_EXPECTATION marks a test that explicitly declares nothing (its
contribution is discarded or rejected, depending on configuration).
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from coverstat.domain.exceptions import InvalidInputError


class _NoExpectation:
    """Marker type for NO_EXPECTATION."""

    _instance: _NoExpectation | None = None

    def __new__(cls) -> _NoExpectation:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_EXPECTATION"

    def __bool__(self) -> bool:
        return False


NO_EXPECTATION: Final = _NoExpectation()

type LineMap = Mapping[str, frozenset[int]]

EMPTY_LINE_MAP: Final[LineMap] = MappingProxyType({})

type Covered = LineMap | _NoExpectation


def normalize_line_map(value: object, argument: str) -> LineMap:
    """Validate a file → lines expectation and freeze it.

    Args:
        value: None (no expectation) or Mapping[str, Iterable[int]]
        argument: Argument name for error messages

    Returns:
        Read-only mapping of file path → frozenset of line numbers

    Raises:
        InvalidInputError: value is not a mapping of paths to line numbers
    """
    if value is None:
        return EMPTY_LINE_MAP
    if not isinstance(value, Mapping):
        raise InvalidInputError(argument, "a mapping of file paths to line numbers")

    result: dict[str, frozenset[int]] = {}
    for path, lines in value.items():
        if not isinstance(path, str) or isinstance(lines, str | bytes):
            raise InvalidInputError(argument, "a mapping of file paths to line numbers")
        try:
            numbers = frozenset(lines)
        except TypeError as e:
            raise InvalidInputError(argument, "a mapping of file paths to line numbers") from e
        if not all(isinstance(n, int) and n > 0 for n in numbers):
            raise InvalidInputError(argument, "a mapping of file paths to positive line numbers")
        result[path] = numbers
    return MappingProxyType(result)


def normalize_covered(value: object) -> Covered:
    """normalize_line_map() for the covered argument, passing NO_EXPECTATION through."""
    if value is NO_EXPECTATION:
        return NO_EXPECTATION
    return normalize_line_map(value, "covered")
