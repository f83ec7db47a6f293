"""coverstat domain layer.

Pure domain logic with no external dependencies.
Only imports: typing, abc, dataclasses, enum, types, collections.abc
"""

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

__all__ = [
    "AlreadyActiveError",
    "ConfigurationError",
    "CoverstatError",
    "ExpectationError",
    "ExpectationNotMetError",
    "InvalidInputError",
    "MissingExpectationError",
    "NotActiveError",
    "NotFoundError",
    "ParsingError",
    "UnintentionallyCoveredError",
]
