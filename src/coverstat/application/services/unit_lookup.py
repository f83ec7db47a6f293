"""Code unit lookup: file line → name of the enclosing code unit."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coverstat.domain.model.structure import FileStructure
    from coverstat.domain.ports.structure_parser import StructureParserPort

METHOD_SEPARATOR = "::"


class CodeUnitLookup:
    """Names the code unit that contains a line.

    Lookup order: methods of classes and traits ("Class::method"),
    then module-level functions ("function"), else "path:line".
    Structures are parsed once per path.
    """

    __slots__ = ("_parser", "_structures")

    def __init__(self, parser: StructureParserPort) -> None:
        self._parser = parser
        self._structures: dict[str, FileStructure] = {}

    def _structure(self, path: str) -> FileStructure:
        structure = self._structures.get(path)
        if structure is None:
            structure = self._parser.parse(path)
            self._structures[path] = structure
        return structure

    def lookup(self, path: str, line: int) -> str:
        """Unit name for path:line.

        Raises:
            ParsingError: File cannot be read
        """
        structure = self._structure(path)

        for cls in (*structure.classes, *structure.traits):
            for method in cls.methods:
                if method.contains(line):
                    return f"{cls.qualified_name}{METHOD_SEPARATOR}{method.name}"

        for function in structure.functions:
            if function.contains(line):
                return function.name

        return f"{path}:{line}"


def class_of(unit: str) -> str | None:
    """Class part of a "Class::method" unit name, None for other units."""
    parts = unit.split(METHOD_SEPARATOR)
    if len(parts) != 2:
        return None
    return parts[0]
