"""Ignored lines: physical lines that never count as executable.

Derived from structural metadata of a file:
    1. Blank lines
    2. Interface bodies, class/trait skeletons
    3. Comments, ignore directives, declarations (unless disabled)
    4. Sentinel line after the last physical line (unless disabled)

Results are cached per path for the resolver lifetime.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coverstat.domain.model.enums import TokenKind

if TYPE_CHECKING:
    from coverstat.domain.model.structure import ClassLike, FileStructure, SourceToken
    from coverstat.domain.ports.structure_parser import StructureParserPort

logger = logging.getLogger(__name__)

# Comment text (stripped) → directive
_IGNORE_LINE = frozenset(
    {
        "// @codeCoverageIgnore",
        "//@codeCoverageIgnore",
        "# @codeCoverageIgnore",
        "#@codeCoverageIgnore",
        "# pragma: no cover",
        "#pragma: no cover",
    },
)
_IGNORE_START = frozenset(
    {
        "// @codeCoverageIgnoreStart",
        "//@codeCoverageIgnoreStart",
        "# @codeCoverageIgnoreStart",
        "#@codeCoverageIgnoreStart",
        "# pragma: no cover start",
        "#pragma: no cover start",
    },
)
_IGNORE_END = frozenset(
    {
        "// @codeCoverageIgnoreEnd",
        "//@codeCoverageIgnoreEnd",
        "# @codeCoverageIgnoreEnd",
        "#@codeCoverageIgnoreEnd",
        "# pragma: no cover end",
        "#pragma: no cover end",
    },
)

# Docblock markers that exclude a whole declared element
_DOCBLOCK_IGNORE = ("@codeCoverageIgnore", "pragma: no cover")
_DOCBLOCK_DEPRECATED = ("@deprecated", ".. deprecated::")

# Block comment opener → closer
_BLOCK_DELIMITERS = {'"""': '"""', "'''": "'''", "/*": "*/"}
_STRING_PREFIXES = "rRbBuUfF"

_DECLARATIONS = frozenset({TokenKind.CLASS, TokenKind.TRAIT, TokenKind.INTERFACE, TokenKind.FUNCTION})
_SINGLE_LINE_DECLARATIONS = frozenset(
    {TokenKind.DECLARE, TokenKind.OPEN_TAG, TokenKind.CLOSE_TAG, TokenKind.USE},
)


def _skeleton_lines(cls: ClassLike) -> list[int]:
    """Class/trait lines outside method bodies."""
    if not cls.methods:
        return list(range(cls.start_line, cls.end_line + 1))

    first = cls.methods[0]
    last_end = first.end_line
    # trailing closures do not delimit the class body
    for method in reversed(cls.methods[1:]):
        if not method.synthesized:
            last_end = method.end_line
            break

    lines = list(range(cls.start_line, first.start_line + 1))
    lines.extend(range(last_end + 1, cls.end_line + 1))
    return lines


def _block_closer(text: str) -> str | None:
    """Closing delimiter when text opens a block comment, else None."""
    body = text.lstrip(_STRING_PREFIXES)
    for opener, closer in _BLOCK_DELIMITERS.items():
        if body.startswith(opener):
            return closer
    return None


def _comment_lines(token: SourceToken, lines: tuple[str, ...]) -> list[int]:
    """Lines spanned by a comment outside an ignore region."""
    text = token.text.strip()
    line_text = lines[token.line - 1].strip() if token.line <= len(lines) else ""

    start = token.line
    last = token.line + token.text.count("\n")
    # code before the comment keeps its line
    if not text.startswith(line_text):
        start += 1

    closer = _block_closer(text)
    if closer is None:
        return list(range(start, last + 1))

    result = list(range(start, last))
    if last <= len(lines) and lines[last - 1].strip().endswith(closer):
        result.append(last)
    return result


def _docblock_excludes(docblock: str | None, ignore_deprecated_code: bool) -> bool:
    if not docblock:
        return False
    if any(marker in docblock for marker in _DOCBLOCK_IGNORE):
        return True
    return ignore_deprecated_code and any(marker in docblock for marker in _DOCBLOCK_DEPRECATED)


def compute_ignored_lines(
    structure: FileStructure,
    *,
    disable_ignored_lines: bool = False,
    ignore_deprecated_code: bool = False,
) -> tuple[int, ...]:
    """Excluded line numbers of one file, sorted and unique.

    Args:
        structure: Parsed file
        disable_ignored_lines: Only blank lines and interface/class skeletons
        ignore_deprecated_code: Exclude elements whose docblock marks them deprecated

    Returns:
        Ascending line numbers
    """
    lines = structure.lines
    ignored: set[int] = {index for index, text in enumerate(lines, start=1) if not text.strip()}

    for interface in structure.interfaces:
        ignored.update(range(interface.start_line, interface.end_line + 1))

    for cls in (*structure.classes, *structure.traits):
        ignored.update(_skeleton_lines(cls))

    if disable_ignored_lines:
        return tuple(sorted(ignored))

    # single flag: regions do not nest
    ignore = False
    stop = False

    for token in structure.tokens:
        kind = token.kind

        if kind in (TokenKind.COMMENT, TokenKind.DOC_COMMENT):
            text = token.text.strip()
            if text in _IGNORE_LINE:
                ignore = True
                stop = True
            elif text in _IGNORE_START:
                ignore = True
            elif text in _IGNORE_END:
                stop = True

            if not ignore:
                ignored.update(_comment_lines(token, lines))

        elif kind in _DECLARATIONS:
            ignored.add(token.line)
            if _docblock_excludes(token.docblock, ignore_deprecated_code):
                ignored.update(range(token.line, token.end_line + 1))

        elif kind is TokenKind.NAMESPACE:
            ignored.add(token.end_line)
            ignored.add(token.line)

        elif kind in _SINGLE_LINE_DECLARATIONS:
            ignored.add(token.line)

        if ignore:
            ignored.add(token.line)
            if stop:
                ignore = False
                stop = False

    ignored.add(len(lines) + 1)
    return tuple(sorted(ignored))


class IgnoredLinesResolver:
    """Per-path cache around compute_ignored_lines().

    Cache is append-only: a path is parsed at most once per resolver.
    """

    __slots__ = ("_cache", "_disable_ignored_lines", "_ignore_deprecated_code", "_parser")

    def __init__(
        self,
        parser: StructureParserPort,
        *,
        disable_ignored_lines: bool = False,
        ignore_deprecated_code: bool = False,
    ) -> None:
        self._parser = parser
        self._disable_ignored_lines = disable_ignored_lines
        self._ignore_deprecated_code = ignore_deprecated_code
        self._cache: dict[str, tuple[int, ...]] = {}

    def lines_to_ignore(self, path: str) -> tuple[int, ...]:
        """Excluded lines of path, sorted.

        Raises:
            ParsingError: File cannot be read
        """
        cached = self._cache.get(path)
        if cached is not None:
            return cached

        logger.debug("computing ignored lines for %s", path)
        result = compute_ignored_lines(
            self._parser.parse(path),
            disable_ignored_lines=self._disable_ignored_lines,
            ignore_deprecated_code=self._ignore_deprecated_code,
        )
        self._cache[path] = result
        return result

    def __contains__(self, path: str) -> bool:
        return path in self._cache
