"""Coverage collection configuration.

Every policy of CoverageStore in one immutable object.
False/empty = feature disabled.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class CoverageConfig:
    """Configuration DTO for CoverageStore.

    Immutable configuration object with FAIL-FIRST validation.

    Attributes:
        # Expectations (declared covered/used lines of a test)
        check_for_unintentionally_covered_code: Fail when a small/unknown-size
            test executes lines outside its expectation.
        force_expectation: A test without expectation contributes nothing.
        check_for_missing_expectation: Fail instead of discarding when
            force_expectation rejects a test.
        check_for_unexecuted_expected_code: Fail when an expected unit was
            not executed.
        allowed_unintended_ancestors: Classes whose subclasses may be
            executed unintentionally.
        class_ancestors: Class name → names of all its ancestors. Supplied by
            the caller; coverstat never inspects live objects.

        # Baseline (files never touched by a test)
        add_uncovered_files_from_whitelist: get_data() adds whitelisted files
            nobody executed, at 0%.
        process_uncovered_files_from_whitelist: First start() loads every
            whitelisted file under the driver to learn executable lines.

        # Ignored lines
        disable_ignored_lines: Skip comment/directive/declaration exclusions.
        ignore_deprecated_code: Exclude elements documented as deprecated.

        # Structure parsing
        cache_structure: Cache parsed structures by content hash.

        # Driver
        determine_branch_coverage: Ask the driver for branch/path data.
    """

    # Expectations
    check_for_unintentionally_covered_code: bool = False
    force_expectation: bool = False
    check_for_missing_expectation: bool = False
    check_for_unexecuted_expected_code: bool = False
    allowed_unintended_ancestors: frozenset[str] = frozenset()
    class_ancestors: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))

    # Baseline
    add_uncovered_files_from_whitelist: bool = True
    process_uncovered_files_from_whitelist: bool = False

    # Ignored lines
    disable_ignored_lines: bool = False
    ignore_deprecated_code: bool = False

    # Structure parsing
    cache_structure: bool = False

    # Driver
    determine_branch_coverage: bool = False

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST."""
        # missing-expectation check is meaningless without forcing
        if self.check_for_missing_expectation and not self.force_expectation:
            raise ValueError("check_for_missing_expectation requires force_expectation")

        for name, ancestors in self.class_ancestors.items():
            if not name:
                raise ValueError("class_ancestors keys must be non-empty")
            if name in ancestors:
                raise ValueError(f"class {name!r} must not list itself as ancestor")

    def is_allowed_unintended(self, class_name: str) -> bool:
        """Class has an ancestor whose subclasses may be covered unintentionally."""
        ancestors = self.class_ancestors.get(class_name, frozenset())
        return not ancestors.isdisjoint(self.allowed_unintended_ancestors)
