"""Coverage store: accumulates raw driver data across test brackets.

Pipeline of one append():
    1. Path filter
    2. Ignored lines
    3. Seed records of files seen for the first time
    4. Expectation filter (covered/used declarations)
    5. Record contributing test, executed lines, branches, paths

Stage-then-commit: steps 1-4 build scratch state only. Live records
change after every check has passed, so a raising append() leaves the
store untouched.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from coverstat.application.report.builder import ReportBuilder
from coverstat.application.services.expectations import ExpectationFilter
from coverstat.application.services.ignored_lines import IgnoredLinesResolver
from coverstat.application.services.unit_lookup import CodeUnitLookup
from coverstat.domain.exceptions import (
    AlreadyActiveError,
    ConfigurationError,
    InvalidInputError,
    NotActiveError,
)
from coverstat.domain.model.configuration import CoverageConfig
from coverstat.domain.model.enums import LineStatus, TestSize
from coverstat.domain.model.expectation import normalize_covered, normalize_line_map
from coverstat.domain.model.raw import RawFileCoverage
from coverstat.domain.model.records import FileCoverageRecord, LineRecord, TestRecord
from coverstat.infrastructure.adapters import AstStructureParser, CachedStructureParser
from coverstat.infrastructure.filters import Filter
from coverstat.infrastructure.tracking import executable_lines, run_source_file, select_driver

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from coverstat.domain.model.raw import RawCoverage
    from coverstat.domain.model.report import DirectoryNode
    from coverstat.domain.ports.driver import DriverPort
    from coverstat.domain.ports.structure_parser import StructureParserPort

logger = logging.getLogger(__name__)

# Reserved test id of the baseline passes
UNCOVERED_FILES_ID = "UNCOVERED_FILES_FROM_WHITELIST"

# Plain string = size unknown, status -1
type TestIdentity = str | TestRecord


def _seed(raw: RawFileCoverage) -> FileCoverageRecord:
    """Fresh record of a file seen for the first time."""
    record = FileCoverageRecord()
    for line, status in raw.lines.items():
        record.lines[line] = None if status == LineStatus.NOT_EXECUTABLE else LineRecord()

    for function, coverage in raw.functions.items():
        for path_id, path in coverage.paths.items():
            record.path(function, path_id).record_hit(path.hit)
        for branch_id, branch in coverage.branches.items():
            seeded = record.branch(function, branch_id)
            seeded.record_hit(branch.hit)
            seeded.line_start = branch.line_start
            seeded.line_end = branch.line_end
            for line in range(branch.line_start, branch.line_end):
                entry = record.lines.get(line)
                if entry is not None:
                    entry.path_covered = bool(branch.hit)
    return record


def _merge_record(mine: FileCoverageRecord, theirs: FileCoverageRecord) -> None:
    """Fold theirs into mine by line priority; max-merge branches and paths."""
    for line in sorted(mine.lines.keys() | theirs.lines.keys()):
        their_priority = theirs.line_priority(line)
        my_priority = mine.line_priority(line)
        if their_priority > my_priority:
            entry = theirs.lines[line]
            mine.lines[line] = entry.copy() if entry is not None else None
        elif their_priority == my_priority:
            entry = mine.lines.get(line)
            their_entry = theirs.lines.get(line)
            if entry is not None and their_entry is not None:
                entry.absorb(their_entry)

    for function, branches in theirs.branches.items():
        for branch_id, branch in branches.items():
            mine.branch(function, branch_id).absorb(branch)

    for function, paths in theirs.paths.items():
        for path_id, path in paths.items():
            mine.path(function, path_id).record_hit(path.hit)


def _count_lines(path: str) -> int:
    """Physical line count of a file."""
    return len(Path(path).read_bytes().splitlines())


class CoverageStore:
    """Central aggregator of coverage data.

    Owns accumulated per-file records and contributing tests.
    Collaborators are injected; defaults are the bundled adapters.

    Contracts:
        - FAIL-FIRST: AlreadyActiveError / NotActiveError on bracket misuse
        - Atomic append: a raising append() changes nothing
        - merge() mutates only the receiving store
    """

    def __init__(
        self,
        driver: DriverPort | None = None,
        filter: Filter | None = None,  # noqa: A002
        *,
        parser: StructureParserPort | None = None,
        config: CoverageConfig | None = None,
        loader: Callable[[str], object] | None = None,
    ) -> None:
        """Initialize store.

        Args:
            driver: Instrumentation driver (default: best available)
            filter: File participation filter (default: empty filter)
            parser: Structure parser (default: AstStructureParser)
            config: Policy flags (default: CoverageConfig())
            loader: Loads one whitelisted file during the priming pass
                (default: run_source_file)

        Raises:
            ConfigurationError: No driver available, or branch coverage
                requested from a driver that lacks it
        """
        self._config = config if config is not None else CoverageConfig()
        self._driver = driver if driver is not None else select_driver()
        self._filter = filter if filter is not None else Filter()
        self._loader = loader if loader is not None else run_source_file

        if parser is None:
            parser = AstStructureParser()
        if self._config.cache_structure:
            parser = CachedStructureParser(parser)
        self._parser = parser

        self._resolver = IgnoredLinesResolver(
            parser,
            disable_ignored_lines=self._config.disable_ignored_lines,
            ignore_deprecated_code=self._config.ignore_deprecated_code,
        )
        self._expectations = ExpectationFilter(self._config, CodeUnitLookup(parser))

        self._data: dict[str, FileCoverageRecord] = {}
        self._tests: dict[str, TestRecord] = {}
        self._current: TestRecord | None = None
        self._active = False
        self._initialized = False
        self._report: DirectoryNode | None = None
        self._determine_branch_coverage = False

        self.set_determine_branch_coverage(self._config.determine_branch_coverage)

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def config(self) -> CoverageConfig:
        """Policy flags."""
        return self._config

    @property
    def filter(self) -> Filter:
        """File participation filter."""
        return self._filter

    @property
    def is_active(self) -> bool:
        """A start()/stop() bracket is open."""
        return self._active

    @property
    def tests(self) -> Mapping[str, TestRecord]:
        """Contributing tests by id."""
        return MappingProxyType(self._tests)

    def set_tests(self, tests: Mapping[str, TestRecord]) -> None:
        """Replace contributing tests."""
        self._tests = dict(tests)
        self._report = None

    def get_data(self, raw: bool = False) -> Mapping[str, FileCoverageRecord]:
        """Accumulated records by path.

        Args:
            raw: Skip the add-uncovered baseline pass
        """
        if not raw and self._config.add_uncovered_files_from_whitelist:
            self._add_uncovered_files_from_whitelist()
        return MappingProxyType(self._data)

    def set_data(self, data: Mapping[str, FileCoverageRecord]) -> None:
        """Replace accumulated records (copied)."""
        self._data = {path: record.copy() for path, record in data.items()}
        self._report = None

    def clear(self) -> None:
        """Drop all data and tests. Next start() primes again.

        An open bracket is closed and its driver data discarded.
        """
        if self._active:
            self._driver.stop()
            self._active = False
            logger.debug("discarded open bracket of %s", self._current.test_id if self._current else None)
        self._initialized = False
        self._current = None
        self._data = {}
        self._tests = {}
        self._report = None

    def set_determine_branch_coverage(self, flag: bool) -> None:
        """Enable or disable branch/path collection.

        Raises:
            ConfigurationError: flag is True and the driver lacks branch support
        """
        if flag and not self._driver.supports_branch_coverage:
            raise ConfigurationError("Branch and path coverage is not supported by the active driver")
        self._determine_branch_coverage = flag

    def get_report(self) -> DirectoryNode:
        """Report tree, built lazily and cached until data changes."""
        if self._report is None:
            self._report = ReportBuilder(self._parser).build(self.get_data(), self._tests)
        return self._report

    # =========================================================================
    # Bracket
    # =========================================================================

    def start(self, test_id: TestIdentity, clear: bool = False) -> None:
        """Open a bracket for test_id.

        First call after construction or clear() runs the priming pass
        when process_uncovered_files_from_whitelist is set.
        clear=True also closes a bracket left open by a crashed test.

        Raises:
            AlreadyActiveError: Bracket already open
            InvalidInputError: test_id is empty
        """
        identity = self._identity(test_id)
        if clear:
            self.clear()
        if self._active:
            raise AlreadyActiveError

        if not self._initialized:
            self._initialize_data()

        self._current = identity
        self._driver.set_determine_branch_coverage(self._determine_branch_coverage)
        self._driver.start(determine_dead_and_unused=True)
        self._active = True
        logger.debug("started bracket for %s", identity.test_id)

    def stop(
        self,
        append: bool = True,
        covered: object = None,
        used: object = None,
        ignore_force_expectation: bool = False,
    ) -> RawCoverage:
        """Close the bracket and fold its data into the store.

        Args:
            append: Accumulate (False = only seed first-seen files)
            covered: Lines the test covers, NO_EXPECTATION, or None
            used: Lines the test may execute without covering them
            ignore_force_expectation: Bypass force_expectation for this test

        Returns:
            Raw driver data of the bracket

        Raises:
            NotActiveError: No bracket open
            InvalidInputError: covered/used malformed (bracket stays open)
            ExpectationError: An enabled expectation check failed
        """
        if not self._active:
            raise NotActiveError
        normalize_covered(covered)
        normalize_line_map(used, "used")

        raw = self._driver.stop()
        self._active = False
        current = self._current
        try:
            self.append(
                raw,
                current,
                should_accumulate=append,
                covered=covered,
                used=used,
                ignore_force_expectation=ignore_force_expectation,
            )
        finally:
            self._current = None
        logger.debug("stopped bracket, %d files reported", len(raw))
        return raw

    @contextmanager
    def track(
        self,
        test_id: TestIdentity,
        *,
        covered: object = None,
        used: object = None,
        ignore_force_expectation: bool = False,
    ) -> Iterator[None]:
        """Context manager around start()/stop().

        Usage:
            with store.track("test_login"):
                login()

        Raises:
            AlreadyActiveError: Bracket already open
        """
        self.start(test_id)
        try:
            yield
        finally:
            self.stop(covered=covered, used=used, ignore_force_expectation=ignore_force_expectation)

    # =========================================================================
    # Accumulation
    # =========================================================================

    def append(
        self,
        raw: RawCoverage,
        test_id: TestIdentity | None = None,
        *,
        should_accumulate: bool = True,
        covered: object = None,
        used: object = None,
        ignore_force_expectation: bool = False,
    ) -> None:
        """Fold raw driver data into the store.

        Args:
            raw: Path → raw file coverage
            test_id: Contributing test (default: the open bracket's)
            should_accumulate: False = only seed first-seen files
            covered: Lines the test covers, NO_EXPECTATION, or None
            used: Lines the test may execute without covering them
            ignore_force_expectation: Bypass force_expectation for this test

        Raises:
            InvalidInputError: No test id, or covered/used malformed
            ExpectationError: An enabled expectation check failed
            ParsingError: A file cannot be read for ignored lines
        """
        if test_id is None:
            if self._current is None:
                raise InvalidInputError("test_id", "given when no bracket is open")
            identity = self._current
        else:
            identity = self._identity(test_id)
        expected = normalize_covered(covered)
        allowed = normalize_line_map(used, "used")

        data: dict[str, RawFileCoverage] = {}
        for reported, coverage in raw.items():
            if self._filter.is_filtered(reported):
                continue
            path = self._filter.normalize(reported)
            data[path] = coverage.without_lines(self._resolver.lines_to_ignore(path))

        fresh = {path: _seed(coverage) for path, coverage in data.items() if path not in self._data}

        if not should_accumulate:
            self._commit(fresh)
            return

        if identity.test_id != UNCOVERED_FILES_ID:
            data = dict(
                self._expectations.apply(
                    data,
                    test_id=identity.test_id,
                    size=identity.size,
                    covered=expected,
                    used=allowed,
                    ignore_force_expectation=ignore_force_expectation,
                ),
            )

        self._commit(fresh)
        if not data:
            return

        test = identity.test_id
        self._tests[test] = identity

        for path, coverage in data.items():
            record = self._data[path]
            for line in coverage.executed_lines:
                entry = record.line(line)
                entry.path_covered = True
                entry.add_test(test)

            for function, function_coverage in coverage.functions.items():
                for branch_id, branch in function_coverage.branches.items():
                    if branch.hit == 1:
                        recorded = record.branch(function, branch_id)
                        recorded.record_hit(branch.hit)
                        recorded.add_test(test)
                for path_id, path_coverage in function_coverage.paths.items():
                    record.path(function, path_id).record_hit(path_coverage.hit)

        self._report = None

    def merge(self, other: CoverageStore) -> None:
        """Fold another store into this one.

        Line priority: absent < recorded-but-empty < not executable < covered.
        Higher priority from other wins; equal priority records are unioned.
        Tests are unioned, other wins on id collision. other is not modified.
        """
        if other is self:
            return

        self._filter.set_whitelisted_files(self._filter.whitelisted_files | other.filter.whitelisted_files)

        their_data = other.get_data(raw=True)
        for path, theirs in their_data.items():
            mine = self._data.get(path)
            if mine is None:
                if not self._filter.is_filtered(path):
                    self._data[path] = theirs.copy()
                continue
            _merge_record(mine, theirs)

        self._tests.update(other.tests)
        self._report = None
        logger.debug("merged store with %d files, now %d files", len(their_data), len(self._data))

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _identity(test_id: TestIdentity) -> TestRecord:
        if isinstance(test_id, TestRecord):
            return test_id
        if not isinstance(test_id, str) or not test_id:
            raise InvalidInputError("test_id", "a non-empty string or TestRecord")
        return TestRecord(test_id=test_id, size=TestSize.UNKNOWN, status=-1)

    def _commit(self, fresh: Mapping[str, FileCoverageRecord]) -> None:
        if fresh:
            self._data.update(fresh)
            self._report = None

    def _initialize_data(self) -> None:
        """Priming pass: load every whitelisted file under the driver."""
        self._initialized = True
        if not self._config.process_uncovered_files_from_whitelist:
            return

        logger.debug("priming %d whitelisted files", len(self._filter.whitelist))
        self._driver.start(determine_dead_and_unused=False)
        try:
            for path in self._filter.whitelist:
                if self._filter.is_file(path):
                    self._loader(path)
        finally:
            raw = self._driver.stop()

        data = {path: coverage.downgraded() for path, coverage in raw.items() if not self._filter.is_filtered(path)}
        self.append(data, UNCOVERED_FILES_ID)

    def _add_uncovered_files_from_whitelist(self) -> None:
        """Report whitelisted files nobody executed, every executable line NOT_EXECUTED."""
        data: dict[str, RawFileCoverage] = {}
        for path in self._filter.whitelist:
            if path in self._data or not Path(path).is_file():
                continue
            # invalid source carries no bytecode: fall back to every physical line
            executable = executable_lines(path) or range(1, _count_lines(path) + 1)
            lines = dict.fromkeys(sorted(executable), LineStatus.NOT_EXECUTED)
            data[path] = RawFileCoverage(lines=MappingProxyType(lines))

        if data:
            logger.debug("adding %d uncovered whitelisted files", len(data))
            self.append(data, UNCOVERED_FILES_ID)
