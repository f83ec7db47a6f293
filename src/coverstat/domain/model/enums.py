"""Domain enumerations."""

from enum import Enum, IntEnum, auto


class LineStatus(IntEnum):
    """Per-line status reported by a driver."""

    EXECUTED = 1
    NOT_EXECUTED = -1
    NOT_EXECUTABLE = -2  # dead code


class TestSize(Enum):
    """Size category of a contributing test."""

    __test__ = False

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    UNKNOWN = "unknown"


class Visibility(Enum):
    """Code element visibility by naming convention."""

    PUBLIC = auto()  # no underscore
    PROTECTED = auto()  # _name
    PRIVATE = auto()  # __name


class ClassKind(Enum):
    """Kind of class-like structural element."""

    CLASS = auto()
    TRAIT = auto()
    INTERFACE = auto()


class TokenKind(Enum):
    """Kind of a source token relevant to ignored-line computation."""

    COMMENT = auto()
    DOC_COMMENT = auto()
    CLASS = auto()
    TRAIT = auto()
    INTERFACE = auto()
    FUNCTION = auto()
    NAMESPACE = auto()
    DECLARE = auto()
    OPEN_TAG = auto()
    CLOSE_TAG = auto()
    USE = auto()
    CODE = auto()


class UnitKind(Enum):
    """Kind of code unit in a file report."""

    CLASS = auto()
    TRAIT = auto()
    METHOD = auto()
    FUNCTION = auto()
