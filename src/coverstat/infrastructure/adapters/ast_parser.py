"""AST-based structure parser adapter.

Implements StructureParserPort for Python source using ast + tokenize.

Python mapping of structural elements:
    typing.Protocol subclass  → interface
    class named *Mixin        → trait
    other class               → class
    def / async def           → function (module level) or method (class body)
    lambda in class body      → synthesized method
    import                    → use
    from __future__ import    → declare
    shebang                   → open tag
    docstring                 → doc comment
"""

from __future__ import annotations

import ast
import io
import tokenize
from pathlib import Path

from coverstat.domain.exceptions import ParsingError
from coverstat.domain.model.enums import ClassKind, TokenKind, Visibility
from coverstat.domain.model.structure import (
    ClassLike,
    CodeUnit,
    FileStructure,
    LinesOfCode,
    SourceToken,
)
from coverstat.domain.ports.structure_parser import StructureParserPort

# Nodes adding one decision point each
_DECISION_NODES = (ast.If, ast.IfExp, ast.For, ast.AsyncFor, ast.While, ast.ExceptHandler, ast.match_case)
_SCOPE_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)

_NON_CODE_TOKENS = frozenset(
    {
        tokenize.COMMENT,
        tokenize.NL,
        tokenize.NEWLINE,
        tokenize.INDENT,
        tokenize.DEDENT,
        tokenize.ENCODING,
        tokenize.ENDMARKER,
    },
)

# Sort order of tokens sharing a line
_TOKEN_RANK = {
    TokenKind.OPEN_TAG: 0,
    TokenKind.DECLARE: 1,
    TokenKind.USE: 1,
    TokenKind.INTERFACE: 1,
    TokenKind.CLASS: 1,
    TokenKind.TRAIT: 1,
    TokenKind.FUNCTION: 1,
    TokenKind.DOC_COMMENT: 2,
    TokenKind.CODE: 3,
    TokenKind.COMMENT: 4,
}

type _FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


def get_visibility(name: str) -> Visibility:
    """Determine visibility from Python naming convention.

    Rules:
        __name__ (dunder) → PUBLIC (special methods)
        __name (not __name__) → PRIVATE (mangled)
        _name → PROTECTED
        name → PUBLIC
    """
    if name.startswith("__") and name.endswith("__"):
        return Visibility.PUBLIC
    if name.startswith("__"):
        return Visibility.PRIVATE
    if name.startswith("_"):
        return Visibility.PROTECTED
    return Visibility.PUBLIC


def cyclomatic_complexity(node: ast.AST) -> int:
    """McCabe complexity of a function body. Nested scopes are not counted."""
    ccn = 1
    stack = list(ast.iter_child_nodes(node))
    while stack:
        child = stack.pop()
        if isinstance(child, _SCOPE_NODES):
            continue
        if isinstance(child, _DECISION_NODES):
            ccn += 1
        elif isinstance(child, ast.BoolOp):
            ccn += len(child.values) - 1
        elif isinstance(child, ast.comprehension):
            ccn += 1 + len(child.ifs)
        stack.extend(ast.iter_child_nodes(child))
    return ccn


def physical_lines(source: str) -> tuple[str, ...]:
    """Source split into lines without terminators."""
    lines = source.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return tuple(lines)


def _class_kind(node: ast.ClassDef) -> ClassKind:
    for base in node.bases:
        name = base.attr if isinstance(base, ast.Attribute) else getattr(base, "id", "")
        if isinstance(base, ast.Subscript):
            value = base.value
            name = value.attr if isinstance(value, ast.Attribute) else getattr(value, "id", "")
        if name == "Protocol":
            return ClassKind.INTERFACE
    if node.name.endswith("Mixin"):
        return ClassKind.TRAIT
    return ClassKind.CLASS


def _signature(node: _FunctionNode) -> str:
    prefix = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
    returns = f" -> {ast.unparse(node.returns)}" if node.returns is not None else ""
    return f"{prefix} {node.name}({ast.unparse(node.args)}){returns}"


def _code_unit(node: _FunctionNode) -> CodeUnit:
    return CodeUnit(
        name=node.name,
        start_line=node.lineno,
        end_line=node.end_lineno or node.lineno,
        ccn=cyclomatic_complexity(node),
        signature=_signature(node),
        visibility=get_visibility(node.name),
    )


def _lambda_unit(node: ast.Lambda) -> CodeUnit:
    return CodeUnit(
        name="<lambda>",
        start_line=node.lineno,
        end_line=node.end_lineno or node.lineno,
        ccn=cyclomatic_complexity(node),
        signature=f"lambda {ast.unparse(node.args)}",
        synthesized=True,
    )


def _docstring_node(node: ast.Module | ast.ClassDef | _FunctionNode) -> ast.Expr | None:
    if not node.body:
        return None
    first = node.body[0]
    if isinstance(first, ast.Expr) and isinstance(first.value, ast.Constant) and isinstance(first.value.value, str):
        return first
    return None


class _StructureVisitor(ast.NodeVisitor):
    """Collects classes, functions and declaration tokens in one pass."""

    def __init__(self, source: str, lines: tuple[str, ...]) -> None:
        self._source = source
        self._lines = lines
        self._scope: list[str] = []
        self._in_function = 0
        self.interfaces: list[ClassLike] = []
        self.classes: list[ClassLike] = []
        self.traits: list[ClassLike] = []
        self.functions: list[CodeUnit] = []
        self.tokens: list[SourceToken] = []
        self.docstring_lines: set[int] = set()

    # =========================================================================
    # Docblocks
    # =========================================================================

    def _leading_comments(self, line: int) -> list[str]:
        """Contiguous comment lines directly above line."""
        comments: list[str] = []
        index = line - 2
        while index >= 0 and self._lines[index].strip().startswith("#"):
            comments.append(self._lines[index].strip())
            index -= 1
        comments.reverse()
        return comments

    def _docblock(self, node: ast.ClassDef | _FunctionNode) -> str | None:
        first_line = min([node.lineno, *(d.lineno for d in node.decorator_list)])
        parts = self._leading_comments(first_line)
        docstring = ast.get_docstring(node, clean=False)
        if docstring:
            parts.append(docstring)
        return "\n".join(parts) if parts else None

    def _add_docstring(self, node: ast.Module | ast.ClassDef | _FunctionNode) -> None:
        expr = _docstring_node(node)
        if expr is None:
            return
        end = expr.end_lineno or expr.lineno
        text = ast.get_source_segment(self._source, expr) or ""
        self.tokens.append(SourceToken(TokenKind.DOC_COMMENT, expr.lineno, end, text=text))
        self.docstring_lines.update(range(expr.lineno, end + 1))

    # =========================================================================
    # Visitors
    # =========================================================================

    def visit_Module(self, node: ast.Module) -> None:
        self._add_docstring(node)
        self.generic_visit(node)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        kind = _class_kind(node)
        token_kind = {
            ClassKind.INTERFACE: TokenKind.INTERFACE,
            ClassKind.TRAIT: TokenKind.TRAIT,
            ClassKind.CLASS: TokenKind.CLASS,
        }[kind]
        end = node.end_lineno or node.lineno
        self.tokens.append(SourceToken(token_kind, node.lineno, end, docblock=self._docblock(node)))
        self._add_docstring(node)

        methods: list[CodeUnit] = []
        for child in node.body:
            if isinstance(child, ast.FunctionDef | ast.AsyncFunctionDef):
                methods.append(_code_unit(child))
            elif isinstance(child, ast.Assign | ast.AnnAssign) and isinstance(child.value, ast.Lambda):
                methods.append(_lambda_unit(child.value))

        cls = ClassLike(
            name=node.name,
            kind=kind,
            start_line=node.lineno,
            end_line=end,
            methods=tuple(sorted(methods, key=lambda m: m.start_line)),
            namespace=".".join(self._scope),
        )
        {
            ClassKind.INTERFACE: self.interfaces,
            ClassKind.TRAIT: self.traits,
            ClassKind.CLASS: self.classes,
        }[kind].append(cls)

        self._scope.append(node.name)
        self.generic_visit(node)
        self._scope.pop()

    def _visit_function(self, node: _FunctionNode) -> None:
        end = node.end_lineno or node.lineno
        self.tokens.append(SourceToken(TokenKind.FUNCTION, node.lineno, end, docblock=self._docblock(node)))
        self._add_docstring(node)
        if not self._scope:
            self.functions.append(_code_unit(node))

        self._scope.append(node.name)
        self._in_function += 1
        self.generic_visit(node)
        self._in_function -= 1
        self._scope.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node)

    def _visit_import(self, node: ast.Import | ast.ImportFrom) -> None:
        # imports inside function bodies are ordinary statements
        if self._in_function:
            return
        kind = TokenKind.USE
        if isinstance(node, ast.ImportFrom) and node.module == "__future__":
            kind = TokenKind.DECLARE
        for line in range(node.lineno, (node.end_lineno or node.lineno) + 1):
            self.tokens.append(SourceToken(kind, line))

    def visit_Import(self, node: ast.Import) -> None:
        self._visit_import(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._visit_import(node)


def _lexical_tokens(source: str) -> tuple[list[SourceToken], set[int]]:
    """Comment, open-tag and code tokens.

    Returns:
        (tokens, comment-only lines)

    Raises:
        tokenize.TokenError, SyntaxError: Source cannot be tokenized
    """
    tokens: list[SourceToken] = []
    comment_lines: set[int] = set()
    code_lines: set[int] = set()

    for tok in tokenize.generate_tokens(io.StringIO(source).readline):
        if tok.type == tokenize.COMMENT:
            line = tok.start[0]
            if line == 1 and tok.string.startswith("#!"):
                tokens.append(SourceToken(TokenKind.OPEN_TAG, line, text=tok.string))
            else:
                tokens.append(SourceToken(TokenKind.COMMENT, line, text=tok.string))
            comment_lines.add(line)
        elif tok.type not in _NON_CODE_TOKENS:
            code_lines.update(range(tok.start[0], tok.end[0] + 1))

    tokens.extend(SourceToken(TokenKind.CODE, line) for line in sorted(code_lines))
    return tokens, comment_lines - code_lines


class AstStructureParser(StructureParserPort):
    """Parser using Python ast and tokenize to extract file structure.

    Stateless between parse() calls.

    Syntax errors are tolerated: the structure then carries lines only.
    """

    def parse(self, path: str) -> FileStructure:
        """Parse single Python file.

        Args:
            path: Path to .py file

        Returns:
            FileStructure (valid=False on syntax errors)

        Raises:
            ParsingError: If file cannot be read
        """
        try:
            source = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ParsingError(path, "file not found") from e
        except PermissionError as e:
            raise ParsingError(path, "permission denied") from e
        except UnicodeDecodeError as e:
            raise ParsingError(path, f"encoding error: {e}") from e
        except OSError as e:
            raise ParsingError(path, str(e) or type(e).__name__) from e

        return self.parse_source(path, source)

    def parse_source(self, path: str, source: str) -> FileStructure:
        """Parse already-read source text."""
        lines = physical_lines(source)

        try:
            tree = ast.parse(source, filename=path)
            lexical, comment_only = _lexical_tokens(source)
        except (SyntaxError, ValueError, tokenize.TokenError):
            return FileStructure.unparsable(path, lines)

        visitor = _StructureVisitor(source, lines)
        visitor.visit(tree)

        tokens = sorted(
            [*visitor.tokens, *lexical],
            key=lambda t: (t.line, _TOKEN_RANK[t.kind]),
        )

        comment_total = len((comment_only | visitor.docstring_lines) & set(range(1, len(lines) + 1)))
        return FileStructure(
            path=path,
            lines=lines,
            interfaces=tuple(visitor.interfaces),
            classes=tuple(visitor.classes),
            traits=tuple(visitor.traits),
            functions=tuple(visitor.functions),
            tokens=tuple(tokens),
            lines_of_code=LinesOfCode(loc=len(lines), cloc=comment_total, ncloc=len(lines) - comment_total),
        )
