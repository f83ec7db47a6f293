"""Tests for the path filter.

Tests:
- is_file: synthetic runtime names
- Whitelist/blacklist CRUD with resolved paths
- is_filtered decisions
- NotFoundError on missing paths
- normalize: one resolved form per file
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from coverstat.domain.exceptions import NotFoundError
from coverstat.domain.model.enums import LineStatus
from coverstat.domain.model.raw import RawFileCoverage
from coverstat.infrastructure.filters import DEFAULT_GROUP, Filter
from tests.factories import make_raw, make_store

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """src/{a.py, b.py, notes.txt, sub/c.py, sub/test_d.py}."""
    src = tmp_path / "src"
    (src / "sub").mkdir(parents=True)
    for name in ("a.py", "b.py", "notes.txt", "sub/c.py", "sub/test_d.py"):
        (src / name).write_text("x = 1\n")
    return src.resolve()


class TestIsFile:
    """Tests for Filter.is_file()."""

    @pytest.mark.parametrize(
        "name",
        ["eval()'d code", "runtime-created function", "assert code", "regexp code", "<string>", "<stdin>", ""],
    )
    def test_synthetic_names(self, name: str) -> None:
        """Runtime-synthesized code is not a file."""
        assert Filter.is_file(name) is False

    def test_eval_suffix(self) -> None:
        """Names containing eval()'d code are not files."""
        assert Filter.is_file("/a/b.src(12) : eval()'d code") is False

    def test_regular_path(self) -> None:
        """Ordinary paths are files, whether or not they exist."""
        assert Filter.is_file("/a/b.src") is True


class TestNormalize:
    """Tests for Filter.normalize()."""

    def test_symlink_resolves_to_target(self, tree: Path) -> None:
        """A file reached through a linked directory has one normal form."""
        link = tree.parent / "link"
        link.symlink_to(tree, target_is_directory=True)

        assert Filter.normalize(link / "a.py") == str(tree / "a.py")
        assert Filter.normalize(str(tree / "sub" / ".." / "a.py")) == str(tree / "a.py")


class TestWhitelist:
    """Tests for whitelist CRUD."""

    def test_add_directory_uses_suffix(self, tree: Path) -> None:
        """Directory add is recursive and matches suffix."""
        flt = Filter()
        flt.add_directory_to_whitelist(tree)

        assert flt.whitelist == tuple(
            sorted(str(tree / n) for n in ("a.py", "b.py", "sub/c.py", "sub/test_d.py")),
        )

    def test_add_directory_with_prefix(self, tree: Path) -> None:
        """prefix restricts file names."""
        flt = Filter()
        flt.add_directory_to_whitelist(tree, prefix="test_")

        assert flt.whitelist == (str(tree / "sub" / "test_d.py"),)

    def test_add_file_resolves(self, tree: Path) -> None:
        """Relative segments are resolved."""
        flt = Filter()
        flt.add_file_to_whitelist(tree / "sub" / ".." / "a.py")

        assert flt.whitelist == (str(tree / "a.py"),)
        assert flt.has_whitelist is True

    def test_add_missing_file_raises(self, tree: Path) -> None:
        """Missing file raises NotFoundError."""
        flt = Filter()

        with pytest.raises(NotFoundError):
            flt.add_file_to_whitelist(tree / "missing.py")

    def test_add_files_is_all_or_nothing(self, tree: Path) -> None:
        """One missing path adds nothing."""
        flt = Filter()

        with pytest.raises(NotFoundError):
            flt.add_files_to_whitelist([tree / "a.py", tree / "missing.py"])

        assert flt.whitelist == ()

    def test_add_missing_directory_raises(self, tree: Path) -> None:
        """Missing directory raises NotFoundError."""
        with pytest.raises(NotFoundError):
            Filter().add_directory_to_whitelist(tree / "nope")

    def test_remove_directory(self, tree: Path) -> None:
        """Removing a directory drops its matching files only."""
        flt = Filter()
        flt.add_directory_to_whitelist(tree)

        flt.remove_directory_from_whitelist(tree / "sub")

        assert flt.whitelist == (str(tree / "a.py"), str(tree / "b.py"))

    def test_remove_missing_directory_raises(self, tree: Path) -> None:
        """Removing a missing directory raises and keeps both lists."""
        flt = Filter()
        flt.add_file_to_whitelist(tree / "a.py")
        flt.add_file_to_blacklist(tree / "b.py")

        with pytest.raises(NotFoundError):
            flt.remove_directory_from_whitelist(tree / "nope")
        with pytest.raises(NotFoundError):
            flt.remove_directory_from_blacklist(tree / "nope")

        assert flt.whitelist == (str(tree / "a.py"),)
        assert flt.blacklist == (str(tree / "b.py"),)

    def test_remove_file(self, tree: Path) -> None:
        """remove_file_from_whitelist drops one file."""
        flt = Filter()
        flt.add_files_to_whitelist([tree / "a.py", tree / "b.py"])

        flt.remove_file_from_whitelist(tree / "a.py")

        assert flt.whitelist == (str(tree / "b.py"),)


class TestBlacklist:
    """Tests for blacklist groups."""

    def test_groups(self, tree: Path) -> None:
        """Paths are kept per group; blacklist merges all groups."""
        flt = Filter()
        flt.add_file_to_blacklist(tree / "a.py")
        flt.add_file_to_blacklist(tree / "b.py", group="vendor")

        assert flt.blacklist_groups == (DEFAULT_GROUP, "vendor")
        assert flt.blacklist_group("vendor") == (str(tree / "b.py"),)
        assert flt.blacklist == (str(tree / "a.py"), str(tree / "b.py"))
        assert flt.blacklist_group("unknown") == ()

    def test_remove_file_from_every_group(self, tree: Path) -> None:
        """Removal applies to all groups."""
        flt = Filter()
        flt.add_file_to_blacklist(tree / "a.py")
        flt.add_file_to_blacklist(tree / "a.py", group="other")

        flt.remove_file_from_blacklist(tree / "a.py")

        assert flt.blacklist == ()

    def test_directory_roundtrip(self, tree: Path) -> None:
        """Directory add then remove leaves the blacklist empty."""
        flt = Filter()
        flt.add_directory_to_blacklist(tree)

        flt.remove_directory_from_blacklist(tree)

        assert flt.blacklist == ()


class TestIsFiltered:
    """Tests for Filter.is_filtered()."""

    def test_empty_filter_accepts_files(self, tree: Path) -> None:
        """No lists: only synthetic names are filtered."""
        flt = Filter()

        assert flt.is_filtered(str(tree / "a.py")) is False
        assert flt.is_filtered("<string>") is True

    def test_whitelist_excludes_others(self, tree: Path) -> None:
        """With a whitelist, anything outside it is filtered."""
        flt = Filter()
        flt.add_file_to_whitelist(tree / "a.py")

        assert flt.is_filtered(str(tree / "a.py")) is False
        assert flt.is_filtered(str(tree / "b.py")) is True

    def test_blacklist_always_filters(self, tree: Path) -> None:
        """Blacklisted files are filtered even when whitelisted."""
        flt = Filter()
        flt.add_file_to_whitelist(tree / "a.py")
        flt.add_file_to_blacklist(tree / "a.py", group="generated")

        assert flt.is_filtered(str(tree / "a.py")) is True

    def test_filtered_file_never_enters_store(self, tree: Path) -> None:
        """Every filtered file stays out of the store's data."""
        flt = Filter()
        flt.add_directory_to_blacklist(tree / "sub")
        store = make_store(filter=flt)
        paths = [str(tree / n) for n in ("a.py", "b.py", "sub/c.py", "sub/test_d.py")]
        raw = make_raw({p: RawFileCoverage(lines={1: LineStatus.EXECUTED}) for p in paths})

        store.append(raw, "T1")

        for path in paths:
            assert (path in store.get_data(raw=True)) is not flt.is_filtered(path)
