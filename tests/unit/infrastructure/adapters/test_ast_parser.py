"""Tests for AstStructureParser.

Tests:
- Classes, interfaces, traits, methods, functions
- Namespaces of nested classes
- Synthesized class-body lambdas
- Cyclomatic complexity, visibility, signatures
- Tokens and lines of code
- Unparsable and unreadable files
"""

from __future__ import annotations

import ast
from typing import TYPE_CHECKING

import pytest

from coverstat.domain.exceptions import ParsingError
from coverstat.domain.model.enums import ClassKind, TokenKind, Visibility
from coverstat.infrastructure.adapters.ast_parser import (
    AstStructureParser,
    cyclomatic_complexity,
    get_visibility,
    physical_lines,
)

if TYPE_CHECKING:
    from pathlib import Path

_parser = AstStructureParser()


class TestUnits:
    """Tests for classes, methods and functions."""

    def test_nested_classes_and_methods(self) -> None:
        """Methods belong to their direct class; nested classes get a namespace."""
        source = (
            "class Outer:\n"
            "    class Inner:\n"
            "        def m(self):\n"
            "            return 1\n"
            "    def run(self, x):\n"
            "        if x:\n"
            "            return 1\n"
            "        return 2\n"
        )

        structure = _parser.parse_source("mod.py", source)

        outer, inner = structure.classes
        assert outer.qualified_name == "Outer"
        assert [m.name for m in outer.methods] == ["run"]
        assert (outer.methods[0].start_line, outer.methods[0].end_line, outer.methods[0].ccn) == (5, 8, 2)
        assert inner.qualified_name == "Outer.Inner"
        assert [m.name for m in inner.methods] == ["m"]

    def test_module_functions_only(self) -> None:
        """Nested functions are not module-level functions."""
        source = "def outer():\n    def inner():\n        return 1\n    return inner\n\nasync def later():\n    pass\n"

        structure = _parser.parse_source("mod.py", source)

        assert [f.name for f in structure.functions] == ["outer", "later"]
        assert structure.functions[1].signature == "async def later()"

    def test_class_kinds(self) -> None:
        """Protocol subclasses are interfaces, *Mixin classes are traits."""
        source = (
            "import typing\n"
            "class Port(typing.Protocol):\n"
            "    def call(self) -> None: ...\n"
            "class Generic(typing.Protocol[int]):\n"
            "    pass\n"
            "class LoggingMixin:\n"
            "    def log(self):\n"
            "        pass\n"
            "class Service(LoggingMixin):\n"
            "    pass\n"
        )

        structure = _parser.parse_source("mod.py", source)

        assert [c.name for c in structure.interfaces] == ["Port", "Generic"]
        assert [c.name for c in structure.traits] == ["LoggingMixin"]
        assert structure.traits[0].kind is ClassKind.TRAIT
        assert [c.name for c in structure.classes] == ["Service"]

    def test_class_body_lambda_is_synthesized(self) -> None:
        """Lambda assigned in a class body is a synthesized method."""
        source = "class A:\n    def m(self):\n        return 1\n    key = lambda self: 2\n"

        (cls,) = _parser.parse_source("mod.py", source).classes

        assert [(m.name, m.synthesized) for m in cls.methods] == [("m", False), ("<lambda>", True)]

    def test_signature_and_visibility(self) -> None:
        """Signature is printable; visibility follows naming."""
        source = "def _check(a, b=1) -> int:\n    return a\n"

        (function,) = _parser.parse_source("mod.py", source).functions

        assert function.signature == "def _check(a, b=1) -> int"
        assert function.visibility is Visibility.PROTECTED


class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("__init__", Visibility.PUBLIC),
            ("__secret", Visibility.PRIVATE),
            ("_internal", Visibility.PROTECTED),
            ("public", Visibility.PUBLIC),
        ],
    )
    def test_get_visibility(self, name: str, expected: Visibility) -> None:
        """Visibility by naming convention."""
        assert get_visibility(name) is expected

    def test_cyclomatic_complexity(self) -> None:
        """if, boolean operands, comprehension and its condition each add one."""
        source = "def f(a, b):\n    if a and b:\n        return [x for x in a if x]\n    return None\n"
        node = ast.parse(source).body[0]

        assert cyclomatic_complexity(node) == 5

    def test_nested_scopes_not_counted(self) -> None:
        """Decisions of nested functions belong to them."""
        source = "def f():\n    def g(x):\n        if x:\n            return 1\n    return g\n"
        node = ast.parse(source).body[0]

        assert cyclomatic_complexity(node) == 1

    def test_physical_lines(self) -> None:
        """Line terminators are normalized; trailing newline adds no line."""
        assert physical_lines("a\r\nb\rc\n") == ("a", "b", "c")


class TestTokens:
    """Tests for tokens and lines of code."""

    def test_lines_of_code(self) -> None:
        """Shebang, comments and docstrings are comment lines."""
        source = '#!/usr/bin/env python\n"""Doc."""\n# comment\nx = 1\n'

        structure = _parser.parse_source("mod.py", source)

        assert structure.lines_of_code is not None
        loc = structure.lines_of_code
        assert (loc.loc, loc.cloc, loc.ncloc) == (4, 3, 1)

    def test_token_kinds(self) -> None:
        """Shebang, docstring, comment, import and code tokens in line order."""
        source = '#!/usr/bin/env python\n"""Doc."""\nimport os  # os\n'

        structure = _parser.parse_source("mod.py", source)

        kinds = [(t.line, t.kind) for t in structure.tokens]
        assert kinds == [
            (1, TokenKind.OPEN_TAG),
            (2, TokenKind.DOC_COMMENT),
            (2, TokenKind.CODE),
            (3, TokenKind.USE),
            (3, TokenKind.CODE),
            (3, TokenKind.COMMENT),
        ]

    def test_imports_inside_functions_are_code(self) -> None:
        """Function-local imports produce no USE token."""
        source = "def f():\n    import os\n    return os\n"

        structure = _parser.parse_source("mod.py", source)

        assert TokenKind.USE not in {t.kind for t in structure.tokens}

    def test_function_docblock(self) -> None:
        """Docblock joins leading comments and the docstring."""
        source = '# pragma: no cover\ndef f():\n    """Doc."""\n'

        structure = _parser.parse_source("mod.py", source)

        (token,) = [t for t in structure.tokens if t.kind is TokenKind.FUNCTION]
        assert token.docblock == "# pragma: no cover\nDoc."
        assert (token.line, token.end_line) == (2, 3)


class TestFiles:
    """Tests for parse() on files."""

    def test_parse_file(self, tmp_path: Path) -> None:
        """parse() reads the file and keeps its path."""
        path = tmp_path / "mod.py"
        path.write_text("def f():\n    return 1\n")

        structure = AstStructureParser().parse(str(path))

        assert structure.path == str(path)
        assert structure.valid is True
        assert [f.name for f in structure.functions] == ["f"]

    def test_syntax_error_is_unparsable(self) -> None:
        """Invalid source gives lines only."""
        structure = _parser.parse_source("mod.py", "def broken(:\n    pass\n")

        assert structure.valid is False
        assert structure.lines == ("def broken(:", "    pass")
        assert structure.functions == ()
        assert structure.tokens == ()

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Unreadable file raises ParsingError."""
        with pytest.raises(ParsingError, match="file not found"):
            AstStructureParser().parse(str(tmp_path / "missing.py"))
