"""Tests for the sys.monitoring driver.

Tests:
- executable_lines from compiled code
- function_key for functions, methods and nested classes
- branch_points: two arms per conditional jump
- run_source_file skips the __main__ block
- MonitoringDriver bracket: lines and branch arms observed, tool id released
- select_driver refuses when every tool id is taken
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from coverstat.domain.exceptions import AlreadyActiveError, ConfigurationError, NotActiveError
from coverstat.domain.model.enums import LineStatus
from coverstat.infrastructure.tracking import (
    LOADER_RUN_NAME,
    MonitoringDriver,
    branch_points,
    executable_lines,
    function_key,
    run_source_file,
    select_driver,
)

if TYPE_CHECKING:
    from pathlib import Path


def _sample(x: int) -> int:
    if x > 0:
        return x * 2
    return -x


class TestExecutableLines:
    """Tests for executable_lines()."""

    def test_lines_with_bytecode(self, tmp_path: Path) -> None:
        """Blank and comment lines carry no bytecode."""
        path = tmp_path / "mod.py"
        path.write_text("x = 1\n\n# note\ny = 2\n")

        assert executable_lines(str(path)) == frozenset({1, 4})

    def test_nested_code_objects(self, tmp_path: Path) -> None:
        """Function bodies are included."""
        path = tmp_path / "mod.py"
        path.write_text("def f():\n    return 1\n")

        assert {1, 2} <= executable_lines(str(path))

    def test_invalid_source_is_empty(self, tmp_path: Path) -> None:
        """Syntax errors and missing files give no lines."""
        path = tmp_path / "bad.py"
        path.write_text("def broken(:\n")

        assert executable_lines(str(path)) == frozenset()
        assert executable_lines(str(tmp_path / "missing.py")) == frozenset()


class TestFunctionKey:
    """Tests for function_key()."""

    @pytest.mark.parametrize(
        ("qualname", "expected"),
        [
            ("helper", "helper"),
            ("Greeter.hello", "Greeter->hello"),
            ("Outer.Inner.m", "Outer.Inner->m"),
            ("factory.<locals>.Inner.m", "factory.Inner->m"),
            ("outer.<locals>.inner", None),
            ("<module>", None),
            ("helper.<locals>.<lambda>", None),
            ("Greeter.<listcomp>", None),
        ],
    )
    def test_keys(self, qualname: str, expected: str | None) -> None:
        assert function_key(qualname) == expected


class TestBranchPoints:
    """Tests for branch_points()."""

    def test_one_point_per_condition(self, tmp_path: Path) -> None:
        """Each if gets its own index within the function."""
        path = tmp_path / "mod.py"
        path.write_text("def f(a, b):\n    if a:\n        a = 1\n    if b:\n        b = 1\n    return a, b\n")

        points = [p for p in branch_points(str(path)).values() if p.function == "f"]

        assert sorted(p.index for p in points) == [0, 1]

    def test_methods_keyed_by_class(self, tmp_path: Path) -> None:
        """Method jumps are keyed Class->method; module code is skipped."""
        path = tmp_path / "mod.py"
        source = (
            "class C:\n    def m(self, a):\n        if a:\n            return 1\n        return 2\n"
            "if C:\n    pass\n"
        )
        path.write_text(source)

        assert {p.function for p in branch_points(str(path)).values()} == {"C->m"}

    def test_invalid_source_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.py"
        path.write_text("def broken(:\n")

        assert branch_points(str(path)) == {}


class TestRunSourceFile:
    """Tests for the default priming loader."""

    def test_main_block_skipped(self, tmp_path: Path) -> None:
        """Module runs under a throwaway name."""
        path = tmp_path / "script.py"
        path.write_text("value = 42\nif __name__ == '__main__':\n    raise SystemExit(1)\nname = __name__\n")

        namespace = run_source_file(str(path))

        assert namespace["value"] == 42
        assert namespace["name"] == LOADER_RUN_NAME


class TestMonitoringDriver:
    """Tests for MonitoringDriver."""

    def test_observes_executed_lines(self) -> None:
        """Lines of called functions are reported as executed."""
        driver = MonitoringDriver()
        first_line = _sample.__code__.co_firstlineno

        driver.start()
        try:
            _sample(1)
        finally:
            raw = driver.stop()

        lines = raw[__file__].lines
        assert lines[first_line + 1] == LineStatus.EXECUTED
        assert lines[first_line + 2] == LineStatus.EXECUTED
        assert lines[first_line + 3] == LineStatus.NOT_EXECUTED

    def test_lines_observed_again_in_next_bracket(self) -> None:
        """Lines disabled during one bracket fire in the next."""
        driver = MonitoringDriver()
        first_line = _sample.__code__.co_firstlineno

        for _ in range(2):
            driver.start()
            try:
                _sample(1)
            finally:
                raw = driver.stop()

            assert raw[__file__].lines[first_line + 2] == LineStatus.EXECUTED

    def test_without_dead_code_detection(self) -> None:
        """determine_dead_and_unused=False reports executed lines only."""
        driver = MonitoringDriver()
        first_line = _sample.__code__.co_firstlineno

        driver.start(determine_dead_and_unused=False)
        try:
            _sample(1)
        finally:
            raw = driver.stop()

        assert first_line + 3 not in raw[__file__].lines

    def test_tool_id_released(self) -> None:
        """stop() frees the tool id claimed by start()."""
        driver = MonitoringDriver()

        driver.start()
        tool_id = driver.tool_id
        assert tool_id is not None
        assert sys.monitoring.get_tool(tool_id) == "coverstat"
        driver.stop()

        assert sys.monitoring.get_tool(tool_id) is None
        assert driver.is_active is False
        assert driver.tool_id is None

    def test_double_start_raises(self) -> None:
        """Overlapping start() is rejected."""
        driver = MonitoringDriver()
        driver.start()
        try:
            with pytest.raises(AlreadyActiveError):
                driver.start()
        finally:
            driver.stop()

    def test_stop_without_start_raises(self) -> None:
        """stop() before start() is rejected."""
        with pytest.raises(NotActiveError):
            MonitoringDriver().stop()

    def test_branch_arms(self) -> None:
        """One arm of the taken condition is hit, the other is not."""
        driver = MonitoringDriver()
        assert driver.supports_branch_coverage is True
        driver.set_determine_branch_coverage(True)

        driver.start()
        try:
            _sample(1)
        finally:
            raw = driver.stop()

        branches = raw[__file__].functions["_sample"].branches
        assert len(branches) == 2
        assert sorted(b.hit for b in branches.values()) == [0, 1]

    def test_no_branches_unless_enabled(self) -> None:
        """Branch collection is off by default."""
        driver = MonitoringDriver()

        driver.start()
        try:
            _sample(1)
        finally:
            raw = driver.stop()

        assert dict(raw[__file__].functions) == {}


class TestSelectDriver:
    """Tests for select_driver()."""

    def test_monitoring_driver_when_free(self) -> None:
        """A free tool id: MonitoringDriver."""
        with patch("coverstat.infrastructure.tracking.sys.monitoring.get_tool", return_value=None):
            assert isinstance(select_driver(), MonitoringDriver)

    def test_all_tool_ids_taken_raises(self) -> None:
        """Every tool id in use: ConfigurationError."""
        with (
            patch("coverstat.infrastructure.tracking.sys.monitoring.get_tool", return_value="other"),
            pytest.raises(ConfigurationError, match="tool ids"),
        ):
            select_driver()

    def test_start_raises_when_taken(self) -> None:
        """start() fails first when no tool id is free."""
        driver = MonitoringDriver()
        with (
            patch("coverstat.infrastructure.tracking.sys.monitoring.get_tool", return_value="other"),
            pytest.raises(ConfigurationError),
        ):
            driver.start()

        assert driver.is_active is False
