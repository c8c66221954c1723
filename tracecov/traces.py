"""Coverage traces: per-line statistics mapped to source files."""

from __future__ import annotations

import copy
import enum
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_ADDRESS_ALIGN_MASK = ~0x7


@dataclass(frozen=True)
class LogicState:
    """Tracks whether a logical condition has been seen true and/or false."""

    been_true: bool = False
    been_false: bool = False

    def __add__(self, other: LogicState) -> LogicState:
        if not isinstance(other, LogicState):
            return NotImplemented
        return LogicState(
            been_true=self.been_true or other.been_true,
            been_false=self.been_false or other.been_false,
        )


class StatKind(enum.Enum):
    """The kind of coverage data a trace collects."""

    LINE = "line"
    BRANCH = "branch"
    CONDITION = "condition"


@dataclass(frozen=True)
class CoverageStat:
    """Coverage data for a trace: line hits, a branch state or condition states."""

    kind: StatKind
    value: Union[int, LogicState, tuple[LogicState, ...]]

    @classmethod
    def line(cls, hits: int = 0) -> CoverageStat:
        return cls(StatKind.LINE, hits)

    @classmethod
    def branch(cls, state: LogicState) -> CoverageStat:
        return cls(StatKind.BRANCH, state)

    @classmethod
    def condition(cls, states: Iterable[LogicState]) -> CoverageStat:
        return cls(StatKind.CONDITION, tuple(states))

    def __add__(self, other: CoverageStat) -> CoverageStat:
        """Combine two stats of the same kind; otherwise keep the left-hand one."""
        if not isinstance(other, CoverageStat):
            return NotImplemented
        if self.kind is StatKind.LINE and other.kind is StatKind.LINE:
            return CoverageStat.line(self.value + other.value)
        if self.kind is StatKind.BRANCH and other.kind is StatKind.BRANCH:
            return CoverageStat.branch(self.value + other.value)
        return self

    def __str__(self) -> str:
        if self.kind is StatKind.LINE:
            return f"hits: {self.value}"
        return ""


@dataclass
class Trace:
    """An instrumentation point on a source line."""

    line: int
    address: set[int] = field(default_factory=set)
    length: int = 0
    stats: CoverageStat = field(default_factory=CoverageStat.line)
    fn_name: str | None = None

    @classmethod
    def stub(cls, line: int) -> Trace:
        """A trace with no addresses, used for lines known only from analysis."""
        return cls(line=line)

    def __lt__(self, other: Trace) -> bool:
        if not isinstance(other, Trace):
            return NotImplemented
        return self.line < other.line


@dataclass(frozen=True, order=True)
class Location:
    """A line in a source file."""

    file: Path
    line: int


def amount_coverable(traces: Iterable[Trace]) -> int:
    """Number of coverable points in the given traces."""
    total = 0
    for trace in traces:
        if trace.stats.kind is StatKind.BRANCH:
            total += 2
        elif trace.stats.kind is StatKind.CONDITION:
            total += 2 * len(trace.stats.value)
        else:
            total += 1
    return total


def _covered_in_state(state: LogicState) -> int:
    return int(state.been_true) + int(state.been_false)


def amount_covered(traces: Iterable[Trace]) -> int:
    """Number of covered points in the given traces."""
    total = 0
    for trace in traces:
        stats = trace.stats
        if stats.kind is StatKind.BRANCH:
            total += _covered_in_state(stats.value)
        elif stats.kind is StatKind.CONDITION:
            total += sum(_covered_in_state(s) for s in stats.value)
        else:
            total += int(stats.value > 0)
    return total


def coverage_percentage(traces: Iterable[Trace]) -> float:
    """Covered over coverable, in the range 0.0-1.0 (NaN when nothing is coverable)."""
    collected = list(traces)
    coverable = amount_coverable(collected)
    covered = amount_covered(collected)
    if coverable == 0:
        return math.nan
    return covered / coverable


class TraceMap:
    """Program traces mapped to source files."""

    def __init__(self) -> None:
        self._traces: dict[Path, list[Trace]] = {}

    def _items(self) -> list[tuple[Path, list[Trace]]]:
        return sorted(self._traces.items(), key=lambda item: item[0])

    def is_empty(self) -> bool:
        return not self._traces

    def __iter__(self) -> Iterator[tuple[Path, list[Trace]]]:
        return iter(self._items())

    def merge(self, other: TraceMap) -> None:
        """Add missing records from ``other`` and combine stats of matching ones."""
        for path, values in other:
            existing = self._traces.get(path)
            if existing is None:
                self._traces[path] = copy.deepcopy(values)
                continue
            for value in values:
                match = next(
                    (
                        t
                        for t in existing
                        if t.line == value.line and t.address == value.address
                    ),
                    None,
                )
                if match is not None:
                    match.stats = match.stats + value.stats
                else:
                    existing.append(copy.deepcopy(value))
                    existing.sort()

    def dedup(self) -> None:
        """Collapse traces on the same line into one, summing their stats.

        Addresses of the dropped duplicates are lost.
        """
        for path, values in self._traces.items():
            merged: dict[int, CoverageStat] = {}
            dirty: set[int] = set()
            for trace in values:
                if trace.line in merged:
                    dirty.add(trace.line)
                    merged[trace.line] = merged[trace.line] + trace.stats
                else:
                    merged[trace.line] = trace.stats
            if not dirty:
                continue
            kept_lines: set[int] = set()
            result: list[Trace] = []
            for trace in values:
                if trace.line in dirty:
                    if trace.line in kept_lines:
                        continue
                    kept_lines.add(trace.line)
                    trace.stats = merged[trace.line]
                result.append(trace)
            self._traces[path] = result

    def add_trace(self, file: PathLike, trace: Trace) -> None:
        traces = self._traces.setdefault(Path(file), [])
        traces.append(trace)
        traces.sort()

    def add_file(self, file: PathLike) -> None:
        self._traces.setdefault(Path(file), [])

    def get_trace(self, address: int) -> Trace | None:
        """The first trace holding ``address``, or None."""
        return next((t for t in self.all_traces() if address in t.address), None)

    def increment_hit(self, address: int) -> None:
        for trace in self.all_traces():
            if address in trace.address and trace.stats.kind is StatKind.LINE:
                logger.debug("Incrementing hit count for trace")
                trace.stats = CoverageStat.line(trace.stats.value + 1)

    def get_location(self, address: int) -> Location | None:
        """The location of a trace whose 8-byte-aligned address equals ``address``."""
        for path, values in self._items():
            for trace in values:
                if any((a & _ADDRESS_ALIGN_MASK) == address for a in trace.address):
                    return Location(file=path, line=trace.line)
        return None

    def contains_location(self, file: PathLike, line: int) -> bool:
        traces = self._traces.get(Path(file))
        return traces is not None and any(t.line == line for t in traces)

    def contains_file(self, file: PathLike) -> bool:
        return Path(file) in self._traces

    def get_child_traces(self, root: PathLike) -> Iterator[Trace]:
        """All traces in files at or below ``root``."""
        root_path = Path(root)
        for path, values in self._items():
            if path == root_path or root_path in path.parents:
                yield from values

    def get_traces(self, root: PathLike) -> Iterator[Trace]:
        """Traces for a file, or for files directly inside a folder."""
        root_path = Path(root)
        if root_path.is_file():
            yield from self.get_child_traces(root_path)
            return
        for path, values in self._items():
            if path != path.parent and path.parent == root_path:
                yield from values

    def all_traces(self) -> Iterator[Trace]:
        for _, values in self._items():
            yield from values

    def files(self) -> list[Path]:
        return sorted(self._traces)

    def coverable_in_path(self, path: PathLike) -> int:
        return amount_coverable(self.get_child_traces(path))

    def covered_in_path(self, path: PathLike) -> int:
        return amount_covered(self.get_child_traces(path))

    def total_coverable(self) -> int:
        return amount_coverable(self.all_traces())

    def total_covered(self) -> int:
        return amount_covered(self.all_traces())

    def coverage_percentage(self) -> float:
        return coverage_percentage(self.all_traces())