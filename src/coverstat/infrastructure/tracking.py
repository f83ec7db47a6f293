"""Infrastructure layer: sys.monitoring (PEP 669) driver.

Observes executed lines, and optionally branch arms, between start() and
stop() and converts them to RawCoverage.

Branch arms:
    Every conditional jump (POP_JUMP_IF_*, FOR_ITER) of a function has two
    arms: 2k falls through, 2k+1 jumps, k counting the function's jumps in
    bytecode order. Functions are keyed "name" or "Class->method", the keys
    the report looks up. Path coverage is not observed.
"""

from __future__ import annotations

import dis
import logging
import runpy
import sys
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from types import CodeType, MappingProxyType
from typing import Any, Final

from coverstat.domain.exceptions import AlreadyActiveError, ConfigurationError, NotActiveError
from coverstat.domain.model.enums import LineStatus
from coverstat.domain.model.raw import (
    METHOD_KEY_SEPARATOR,
    RawBranch,
    RawCoverage,
    RawFileCoverage,
    RawFunctionCoverage,
)
from coverstat.domain.ports.driver import DriverPort

logger = logging.getLogger(__name__)

# run_name for files loaded by the priming pass: skips `if __name__ == "__main__"`
LOADER_RUN_NAME = "__coverstat_load__"

# sys.monitoring tool ids tried in order: the coverage slot, then the two free ones
TOOL_IDS: Final = (sys.monitoring.COVERAGE_ID, 3, 4)

# Tool name registered with sys.monitoring
TOOL_NAME: Final = "coverstat"

_EVENTS = sys.monitoring.events

# 3.14 reports the two arms as BRANCH_LEFT / BRANCH_RIGHT, earlier versions as BRANCH
_BRANCH_EVENTS: Final = tuple(
    getattr(_EVENTS, name) for name in ("BRANCH_LEFT", "BRANCH_RIGHT") if hasattr(_EVENTS, name)
) or (_EVENTS.BRANCH,)


# =============================================================================
# Static analysis of compiled source
# =============================================================================


def _compile(path: str) -> CodeType | None:
    """Module code of path. Unreadable/invalid file → None."""
    try:
        source = Path(path).read_text(encoding="utf-8")
        return compile(source, path, "exec", dont_inherit=True)
    except (OSError, UnicodeDecodeError, SyntaxError, ValueError):
        return None


def _walk_code(code: CodeType) -> list[CodeType]:
    """Code object plus all nested code objects."""
    result = [code]
    for const in code.co_consts:
        if isinstance(const, CodeType):
            result.extend(_walk_code(const))
    return result


def executable_lines(path: str) -> frozenset[int]:
    """Line numbers that carry bytecode. Unreadable/invalid file → empty."""
    code = _compile(path)
    if code is None:
        return frozenset()

    lines: set[int] = set()
    for nested in _walk_code(code):
        for _start, _end, line in nested.co_lines():
            if line is not None and line > 0:
                lines.add(line)
    return frozenset(lines)


def function_key(qualname: str) -> str | None:
    """Report key of a code object's qualified name.

    "helper" → "helper", "Greeter.hello" → "Greeter->hello",
    "factory.<locals>.Inner.m" → "factory.Inner->m". Nested functions,
    lambdas, comprehensions and module code → None.
    """
    parts = qualname.split(".")
    if parts[-1].startswith("<"):
        return None
    if "<locals>" in parts:
        cut = len(parts) - 1 - parts[::-1].index("<locals>")
        head = [p for p in parts[:cut] if p != "<locals>"]
        tail = parts[cut + 1 :]
    else:
        head, tail = [], parts
    if len(tail) == 1:
        return None if head else tail[0]
    return ".".join([*head, *tail[:-1]]) + METHOD_KEY_SEPARATOR + tail[-1]


@dataclass(frozen=True, slots=True)
class BranchPoint:
    """One conditional jump.

    Attributes:
        function: Report key of the enclosing function
        index: Jump number k within the function (arms 2k and 2k+1)
        fall_offsets: Offsets the fall-through arm lands on
        fall_line: First line of the fall-through arm
        jump_line: First line of the jump arm
    """

    function: str
    index: int
    fall_offsets: frozenset[int]
    fall_line: int
    jump_line: int


def _is_conditional_jump(instruction: dis.Instruction) -> bool:
    return instruction.opname.startswith("POP_JUMP_IF") or instruction.opname == "FOR_ITER"


def _fall_offsets(instructions: list[dis.Instruction], position: int) -> frozenset[int]:
    """Next instruction, plus the one after a NOT_TAKEN marker."""
    following = instructions[position + 1]
    offsets = {following.offset}
    if following.opname == "NOT_TAKEN" and position + 2 < len(instructions):
        offsets.add(instructions[position + 2].offset)
    return frozenset(offsets)


def _line_of(instruction: dis.Instruction | None, default: int) -> int:
    if instruction is None or instruction.positions is None or not instruction.positions.lineno:
        return default
    return instruction.positions.lineno


def branch_points(path: str) -> dict[tuple[str, int, int], BranchPoint]:
    """Conditional jumps of every function in path.

    Returns:
        (co_qualname, co_firstlineno, offset) → BranchPoint.
        Unreadable/invalid file → empty.
    """
    code = _compile(path)
    if code is None:
        return {}

    counters: defaultdict[str, int] = defaultdict(int)
    points: dict[tuple[str, int, int], BranchPoint] = {}
    for nested in _walk_code(code):
        key = function_key(nested.co_qualname)
        if key is None:
            continue
        instructions = list(dis.get_instructions(nested))
        by_offset = {i.offset: i for i in instructions}
        for position, instruction in enumerate(instructions[:-1]):
            if not _is_conditional_jump(instruction):
                continue
            line = _line_of(instruction, nested.co_firstlineno)
            fall_offsets = _fall_offsets(instructions, position)
            points[(nested.co_qualname, nested.co_firstlineno, instruction.offset)] = BranchPoint(
                function=key,
                index=counters[key],
                fall_offsets=fall_offsets,
                fall_line=_line_of(by_offset.get(max(fall_offsets)), line),
                jump_line=_line_of(by_offset.get(instruction.argval), line),
            )
            counters[key] += 1
    return points


def run_source_file(path: str) -> dict[str, Any]:
    """Execute a source file as a throwaway module. Default priming loader."""
    return runpy.run_path(path, run_name=LOADER_RUN_NAME)


def _free_tool_id() -> int | None:
    for tool_id in TOOL_IDS:
        if sys.monitoring.get_tool(tool_id) is None:
            return tool_id
    return None


# =============================================================================
# Driver
# =============================================================================


class MonitoringDriver(DriverPort):
    """Line and branch driver built on sys.monitoring.

    Coexists with debuggers and other tools: it claims the first free tool
    id of TOOL_IDS for the duration of a bracket.

    Contracts:
        - FAIL-FIRST: AlreadyActiveError / NotActiveError on bracket misuse
        - Tool id released on stop()
        - Events of every thread are observed
    """

    def __init__(self) -> None:
        self._tool_id: int | None = None
        self._determine_dead_and_unused = True
        self._determine_branch_coverage = False
        self._hits: defaultdict[str, set[int]] = defaultdict(set)
        # filename → (co_qualname, co_firstlineno, source offset, destination offset)
        self._arms: defaultdict[str, set[tuple[str, int, int, int]]] = defaultdict(set)

    @property
    def supports_branch_coverage(self) -> bool:
        """Branch arms are observed through BRANCH events."""
        return True

    @property
    def is_active(self) -> bool:
        """Monitoring in progress."""
        return self._tool_id is not None

    @property
    def tool_id(self) -> int | None:
        """sys.monitoring tool id held by the open bracket."""
        return self._tool_id

    def set_determine_branch_coverage(self, flag: bool) -> None:
        """Enable or disable branch collection for the next bracket."""
        self._determine_branch_coverage = flag

    def start(self, determine_dead_and_unused: bool = True) -> None:
        """Claim a tool id and enable LINE (and branch) events.

        Raises:
            AlreadyActiveError: Already started
            ConfigurationError: Every tool id of TOOL_IDS is in use
        """
        if self._tool_id is not None:
            raise AlreadyActiveError
        tool_id = _free_tool_id()
        if tool_id is None:
            raise ConfigurationError(f"No code coverage driver available: sys.monitoring tool ids {TOOL_IDS} in use")

        self._hits = defaultdict(set)
        self._arms = defaultdict(set)
        self._determine_dead_and_unused = determine_dead_and_unused

        sys.monitoring.use_tool_id(tool_id, TOOL_NAME)
        self._tool_id = tool_id

        events = _EVENTS.LINE
        sys.monitoring.register_callback(tool_id, _EVENTS.LINE, self._on_line)
        if self._determine_branch_coverage:
            for event in _BRANCH_EVENTS:
                sys.monitoring.register_callback(tool_id, event, self._on_branch)
                events |= event
        # lines disabled during an earlier bracket must fire again
        sys.monitoring.restart_events()
        sys.monitoring.set_events(tool_id, events)
        logger.debug("monitoring started with tool id %d", tool_id)

    def stop(self) -> RawCoverage:
        """Disable events, release the tool id and report.

        Raises:
            NotActiveError: Not started
        """
        tool_id = self._tool_id
        if tool_id is None:
            raise NotActiveError

        sys.monitoring.set_events(tool_id, 0)
        for event in (_EVENTS.LINE, *_BRANCH_EVENTS):
            sys.monitoring.register_callback(tool_id, event, None)
        sys.monitoring.free_tool_id(tool_id)
        self._tool_id = None

        return self._collect()

    # =========================================================================
    # Callbacks
    # =========================================================================

    def _on_line(self, code: CodeType, line_number: int) -> object:
        filename = code.co_filename
        if not filename.startswith("<"):
            self._hits[filename].add(line_number)
        # one event per line and bracket is enough
        return sys.monitoring.DISABLE

    def _on_branch(self, code: CodeType, instruction_offset: int, destination_offset: int) -> object:
        self._arms[code.co_filename].add(
            (code.co_qualname, code.co_firstlineno, instruction_offset, destination_offset),
        )
        return None

    # =========================================================================
    # Conversion (events → domain)
    # =========================================================================

    def _functions(self, filename: str) -> dict[str, RawFunctionCoverage]:
        """Branch arms of filename, hit = 1 for arms taken in this bracket."""
        observed: defaultdict[tuple[str, int, int], set[int]] = defaultdict(set)
        for qualname, first_line, source, destination in self._arms.get(filename, ()):
            observed[(qualname, first_line, source)].add(destination)

        branches: defaultdict[str, dict[int, RawBranch]] = defaultdict(dict)
        for location, point in branch_points(filename).items():
            destinations = observed.get(location, set())
            fell = not destinations.isdisjoint(point.fall_offsets)
            jumped = any(d not in point.fall_offsets for d in destinations)
            branches[point.function][2 * point.index] = RawBranch(
                hit=int(fell),
                line_start=point.fall_line,
                line_end=point.fall_line + 1,
            )
            branches[point.function][2 * point.index + 1] = RawBranch(
                hit=int(jumped),
                line_start=point.jump_line,
                line_end=point.jump_line + 1,
            )
        return {
            function: RawFunctionCoverage(branches=MappingProxyType(arms)) for function, arms in branches.items()
        }

    def _collect(self) -> RawCoverage:
        result: dict[str, RawFileCoverage] = {}
        for filename, hits in self._hits.items():
            lines = {line: LineStatus.EXECUTED for line in hits if line > 0}
            if self._determine_dead_and_unused:
                for line in executable_lines(filename):
                    lines.setdefault(line, LineStatus.NOT_EXECUTED)
            functions = self._functions(filename) if self._determine_branch_coverage else {}
            result[filename] = RawFileCoverage(
                lines=MappingProxyType(lines),
                functions=MappingProxyType(functions),
            )
        logger.debug("monitoring observed %d files", len(result))
        return MappingProxyType(result)


def select_driver() -> DriverPort:
    """Best available driver.

    Raises:
        ConfigurationError: Every sys.monitoring tool id of TOOL_IDS is in use
    """
    if _free_tool_id() is None:
        raise ConfigurationError(f"No code coverage driver available: sys.monitoring tool ids {TOOL_IDS} in use")
    return MonitoringDriver()
