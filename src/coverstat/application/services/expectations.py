"""Expectation filter: checks a test's raw data against what it declares.

A test may declare the lines it covers and the lines it uses.
Depending on CoverageConfig the filter rejects, discards or restricts
the raw data of one append().
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from coverstat.application.services.unit_lookup import class_of
from coverstat.domain.exceptions import (
    ExpectationNotMetError,
    MissingExpectationError,
    UnintentionallyCoveredError,
)
from coverstat.domain.model.enums import LineStatus, TestSize
from coverstat.domain.model.expectation import NO_EXPECTATION

if TYPE_CHECKING:
    from collections.abc import Iterable

    from coverstat.application.services.unit_lookup import CodeUnitLookup
    from coverstat.domain.model.configuration import CoverageConfig
    from coverstat.domain.model.expectation import Covered, LineMap
    from coverstat.domain.model.raw import RawCoverage

_LARGER_SIZES = frozenset({TestSize.MEDIUM, TestSize.LARGE})


def _unique(items: Iterable[str]) -> list[str]:
    """Deduplicate, first occurrence wins."""
    return list(dict.fromkeys(items))


class ExpectationFilter:
    """Applies covered/used declarations to raw data.

    Contracts:
        - Never mutates its input; returns filtered copies
        - Raises ExpectationError subclasses only when the matching check is enabled
    """

    __slots__ = ("_config", "_lookup")

    def __init__(self, config: CoverageConfig, lookup: CodeUnitLookup) -> None:
        self._config = config
        self._lookup = lookup

    def apply(
        self,
        raw: RawCoverage,
        *,
        test_id: str,
        size: TestSize,
        covered: Covered,
        used: LineMap,
        ignore_force_expectation: bool = False,
    ) -> RawCoverage:
        """Filter raw data of one test.

        Args:
            raw: Data already passed through the path filter and ignored lines
            test_id: Contributing test (for error messages)
            size: Size of the test
            covered: Lines the test covers, or NO_EXPECTATION
            used: Lines the test may execute without covering them
            ignore_force_expectation: Bypass force_expectation for this test

        Returns:
            Filtered data (empty mapping = discard contribution)

        Raises:
            MissingExpectationError: Expectation required but absent
            UnintentionallyCoveredError: Lines outside the expectation executed
            ExpectationNotMetError: Expected units not executed
        """
        config = self._config

        if covered is NO_EXPECTATION or (
            config.force_expectation and not covered and not ignore_force_expectation
        ):
            if config.check_for_missing_expectation:
                raise MissingExpectationError(test_id)
            return MappingProxyType({})

        if not covered:
            return raw

        if config.check_for_unintentionally_covered_code and size not in _LARGER_SIZES:
            self._check_unintentionally_covered(raw, covered, used)

        if config.check_for_unexecuted_expected_code:
            self._check_unexecuted(raw, covered, used)

        return MappingProxyType(
            {path: data.restricted_to(covered[path]) for path, data in raw.items() if path in covered},
        )

    def _check_unintentionally_covered(self, raw: RawCoverage, covered: LineMap, used: LineMap) -> None:
        units: list[str] = []
        for path, data in raw.items():
            allowed = covered.get(path, frozenset()) | used.get(path, frozenset())
            for line in data.executed_lines:
                if line not in allowed:
                    units.append(self._lookup.lookup(path, line))

        offending = []
        for unit in sorted(set(units)):
            cls = class_of(unit)
            if cls is not None and self._config.is_allowed_unintended(cls):
                continue
            offending.append(unit)

        if offending:
            raise UnintentionallyCoveredError(offending)

    def _check_unexecuted(self, raw: RawCoverage, covered: LineMap, used: LineMap) -> None:
        executed = {
            self._lookup.lookup(path, line)
            for path, data in raw.items()
            for line in data.lines
            if data.lines[line] == LineStatus.EXECUTED
        }

        missing: list[tuple[str, str]] = []
        for kind, expectation in (("covers", covered), ("uses", used)):
            units = _unique(
                self._lookup.lookup(path, line) for path, lines in expectation.items() for line in sorted(lines)
            )
            missing.extend((unit, kind) for unit in units if unit not in executed)

        if missing:
            raise ExpectationNotMetError(missing)
