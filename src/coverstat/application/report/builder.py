"""Report builder: flat per-file data → DirectoryNode tree.

Algorithm:
    1. Keep files that still exist on disk
    2. Root = longest common directory of all files
    3. Insert every file by its path segments relative to the root
    4. Build FileNodes (statistics), then DirectoryNodes bottom-up (sums)

Children order: directories first, then files, each sorted by name.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from coverstat.application.report.file_stats import build_file_node
from coverstat.domain.model.report import DirectoryNode, Totals

if TYPE_CHECKING:
    from collections.abc import Mapping

    from coverstat.domain.model.records import FileCoverageRecord, TestRecord
    from coverstat.domain.model.report import FileNode
    from coverstat.domain.ports.structure_parser import StructureParserPort

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Folder:
    """Directory under construction: segment → subfolder, segment → file path."""

    folders: dict[str, _Folder] = field(default_factory=dict)
    files: dict[str, str] = field(default_factory=dict)


def common_base_path(paths: list[str]) -> str:
    """Longest common directory of paths. Empty input → ""."""
    if not paths:
        return ""
    return os.path.commonpath([os.path.dirname(p) for p in paths])


class ReportBuilder:
    """Builds the report tree from accumulated coverage data."""

    __slots__ = ("_parser",)

    def __init__(self, parser: StructureParserPort) -> None:
        self._parser = parser

    def build(
        self,
        data: Mapping[str, FileCoverageRecord],
        tests: Mapping[str, TestRecord],
    ) -> DirectoryNode:
        """Build tree.

        Args:
            data: Path → accumulated record
            tests: Tests known to the store

        Returns:
            Root directory node

        Raises:
            ParsingError: A file exists but cannot be read
        """
        existing = sorted(p for p in data if Path(p).is_file())
        skipped = len(data) - len(existing)
        if skipped:
            logger.debug("skipping %d files no longer on disk", skipped)

        root = common_base_path(existing)
        tree = _Folder()
        for path in existing:
            parts = Path(path).relative_to(root).parts
            folder = tree
            for part in parts[:-1]:
                folder = folder.folders.setdefault(part, _Folder())
            folder.files[parts[-1]] = path

        frozen_tests = MappingProxyType(dict(tests))
        result = self._directory(root, (root,) if root else (), tree, data, frozen_tests)
        logger.debug("built report for %d files under %s", result.num_files, root)
        return result

    def _directory(
        self,
        name: str,
        segments: tuple[str, ...],
        tree: _Folder,
        data: Mapping[str, FileCoverageRecord],
        tests: Mapping[str, TestRecord],
    ) -> DirectoryNode:
        children: dict[str, DirectoryNode | FileNode] = {}
        totals = Totals()

        for key in sorted(tree.folders):
            child = self._directory(key, (*segments, key), tree.folders[key], data, tests)
            children[key] = child
            totals += child.totals

        for key in sorted(tree.files):
            path = tree.files[key]
            node = build_file_node(
                name=key,
                path=path,
                segments=(*segments, key),
                record=data[path],
                tests=tests,
                structure=self._parser.parse(path),
            )
            children[key] = node
            totals += node.totals

        return DirectoryNode(
            name=name,
            segments=segments,
            children=MappingProxyType(children),
            totals=totals,
        )
