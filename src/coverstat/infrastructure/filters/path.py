"""Path filter.

Decides which source files participate in coverage.
Include set ("whitelist") is flat, exclude set ("blacklist") is grouped.
All stored paths are absolute and resolved.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from coverstat.domain.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "DEFAULT"
DEFAULT_SUFFIX = ".py"

# Names the runtime gives to code that has no backing file
SYNTHETIC_NAMES = frozenset(
    {
        "eval()'d code",
        "runtime-created function",
        "assert code",
        "regexp code",
    },
)
_SYNTHETIC_PATTERN = re.compile(r"^<.*>$")


def _resolve(path: str | Path) -> str:
    return str(Path(path).expanduser().resolve())


def _existing(path: str | Path) -> Path:
    """Resolved path, FAIL-FIRST on missing."""
    resolved = Path(_resolve(path))
    if not resolved.exists():
        raise NotFoundError(str(path))
    return resolved


def _enumerate(directory: Path, suffix: str, prefix: str) -> Iterator[str]:
    """Files under directory (recursive) whose name has prefix and suffix."""
    for candidate in sorted(directory.rglob("*")):
        name = candidate.name
        if candidate.is_file() and name.endswith(suffix) and name.startswith(prefix):
            yield str(candidate)


class Filter:
    """Include/exclude policy for source files.

    Attributes:
        _whitelist: Included resolved paths
        _blacklist: Group name → excluded resolved paths
    """

    __slots__ = ("_blacklist", "_whitelist")

    def __init__(self) -> None:
        self._whitelist: set[str] = set()
        self._blacklist: dict[str, set[str]] = {}

    # =========================================================================
    # Whitelist
    # =========================================================================

    def add_file_to_whitelist(self, path: str | Path) -> None:
        """Include single file.

        Raises:
            NotFoundError: path does not exist
        """
        self._whitelist.add(str(_existing(path)))

    def add_files_to_whitelist(self, paths: Iterable[str | Path]) -> None:
        """Include several files.

        Raises:
            NotFoundError: any path does not exist (nothing is added then)
        """
        resolved = [str(_existing(p)) for p in paths]
        self._whitelist.update(resolved)

    def add_directory_to_whitelist(
        self,
        directory: str | Path,
        suffix: str = DEFAULT_SUFFIX,
        prefix: str = "",
    ) -> None:
        """Include every matching file under directory.

        Raises:
            NotFoundError: directory does not exist
        """
        root = _existing(directory)
        before = len(self._whitelist)
        self._whitelist.update(_enumerate(root, suffix, prefix))
        logger.debug("whitelisted %d files under %s", len(self._whitelist) - before, root)

    def remove_file_from_whitelist(self, path: str | Path) -> None:
        """Stop including single file. Unknown path is a no-op."""
        self._whitelist.discard(_resolve(path))

    def remove_directory_from_whitelist(
        self,
        directory: str | Path,
        suffix: str = DEFAULT_SUFFIX,
        prefix: str = "",
    ) -> None:
        """Stop including every matching file under directory.

        Raises:
            NotFoundError: directory does not exist
        """
        root = _existing(directory)
        self._whitelist.difference_update(_enumerate(root, suffix, prefix))

    @property
    def whitelist(self) -> tuple[str, ...]:
        """Included paths, sorted."""
        return tuple(sorted(self._whitelist))

    @property
    def has_whitelist(self) -> bool:
        """Include set is non-empty."""
        return bool(self._whitelist)

    @property
    def whitelisted_files(self) -> frozenset[str]:
        """Raw include set."""
        return frozenset(self._whitelist)

    def set_whitelisted_files(self, paths: Iterable[str]) -> None:
        """Replace the include set with already-resolved paths (no existence check)."""
        self._whitelist = set(paths)

    # =========================================================================
    # Blacklist
    # =========================================================================

    def add_file_to_blacklist(self, path: str | Path, group: str = DEFAULT_GROUP) -> None:
        """Exclude single file.

        Raises:
            NotFoundError: path does not exist
        """
        self._blacklist.setdefault(group, set()).add(str(_existing(path)))

    def add_files_to_blacklist(self, paths: Iterable[str | Path], group: str = DEFAULT_GROUP) -> None:
        """Exclude several files.

        Raises:
            NotFoundError: any path does not exist (nothing is added then)
        """
        resolved = [str(_existing(p)) for p in paths]
        self._blacklist.setdefault(group, set()).update(resolved)

    def add_directory_to_blacklist(
        self,
        directory: str | Path,
        suffix: str = DEFAULT_SUFFIX,
        prefix: str = "",
        group: str = DEFAULT_GROUP,
    ) -> None:
        """Exclude every matching file under directory.

        Raises:
            NotFoundError: directory does not exist
        """
        root = _existing(directory)
        self._blacklist.setdefault(group, set()).update(_enumerate(root, suffix, prefix))

    def remove_file_from_blacklist(self, path: str | Path) -> None:
        """Stop excluding single file in every group."""
        resolved = _resolve(path)
        for paths in self._blacklist.values():
            paths.discard(resolved)

    def remove_directory_from_blacklist(
        self,
        directory: str | Path,
        suffix: str = DEFAULT_SUFFIX,
        prefix: str = "",
    ) -> None:
        """Stop excluding every matching file under directory in every group.

        Raises:
            NotFoundError: directory does not exist
        """
        root = _existing(directory)
        files = set(_enumerate(root, suffix, prefix))
        for paths in self._blacklist.values():
            paths.difference_update(files)

    @property
    def blacklist(self) -> tuple[str, ...]:
        """Excluded paths of all groups, sorted."""
        merged: set[str] = set()
        for paths in self._blacklist.values():
            merged.update(paths)
        return tuple(sorted(merged))

    @property
    def blacklist_groups(self) -> tuple[str, ...]:
        """Group names, sorted."""
        return tuple(sorted(self._blacklist))

    def blacklist_group(self, group: str) -> tuple[str, ...]:
        """Excluded paths of one group, sorted. Unknown group → empty."""
        return tuple(sorted(self._blacklist.get(group, ())))

    # =========================================================================
    # Decisions
    # =========================================================================

    @staticmethod
    def normalize(path: str | Path) -> str:
        """Absolute, resolved form under which paths are compared and stored."""
        return _resolve(path)

    @staticmethod
    def is_file(path: str) -> bool:
        """Path names a real file, not runtime-synthesized code."""
        if not path or path in SYNTHETIC_NAMES:
            return False
        if _SYNTHETIC_PATTERN.match(path):
            return False
        return "eval()'d code" not in path

    def is_filtered(self, path: str) -> bool:
        """File must not participate in coverage.

        Synthetic names are always filtered. With a non-empty include set,
        anything outside it is filtered. Excluded paths are always filtered.
        """
        if not self.is_file(path):
            return True
        resolved = _resolve(path)
        if self._whitelist and resolved not in self._whitelist:
            return True
        return any(resolved in paths for paths in self._blacklist.values())
