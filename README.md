# tracecov

Bookkeeping for code coverage data, plus a small state machine that drives
a test run while coverage is being collected.

## Installing

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Traces

`tracecov.traces` records coverage per source file:

- `LogicState` tracks whether a condition has been seen true and false.
  Adding two states gives a state that has seen everything either one has seen.
- `CoverageStat` is one of three kinds (`StatKind.LINE`, `StatKind.BRANCH`,
  `StatKind.CONDITION`). Build them with `CoverageStat.line(hits)`,
  `CoverageStat.branch(state)` and `CoverageStat.condition(states)`. Adding two
  line stats sums the hits, adding two branch stats combines their states;
  any other pair keeps the left-hand stat. `str()` of a line stat is
  `"hits: N"`, and empty for the other kinds.
- `Trace` is a coverable point: a line, the set of addresses it is at, a
  length, its stats (zero line hits by default) and an optional function name.
  `Trace.stub(line)` gives a trace with no addresses. Traces sort by line.
- `Location` is a file and a line.
- `TraceMap` maps files to their traces, kept sorted by line. Iterating over it
  yields `(path, traces)` pairs in path order. It offers:
  - `add_trace(file, trace)`, `add_file(file)`, `files()`, `is_empty()`,
    `contains_file(file)`, `contains_location(file, line)`;
  - `merge(other)`: copies files it lacks and, for traces with the same line
    and the same address set, adds the stats together; other traces are added;
  - `dedup()`: collapses traces on the same line into the first one, summing
    stats (the other traces' addresses are dropped);
  - `get_trace(address)`, `increment_hit(address)` (line stats only) and
    `get_location(address)`, which matches addresses rounded down to a
    multiple of 8;
  - `all_traces()`, `get_child_traces(root)` (files at or below `root`) and
    `get_traces(root)` (the file itself, or files directly inside a folder);
  - `coverable_in_path(path)`, `covered_in_path(path)`, `total_coverable()`,
    `total_covered()` and `coverage_percentage()`.

```python
from pathlib import Path
from tracecov.traces import Trace, TraceMap

tm = TraceMap()
tm.add_trace(Path("src/lib.rs"), Trace(line=4, address={0x1000}))
tm.add_trace(Path("src/lib.rs"), Trace.stub(5))
tm.increment_hit(0x1000)

print(tm.total_covered(), "/", tm.total_coverable())   # 1 / 2
print(tm.coverage_percentage())                        # 0.5
```

The functions `amount_coverable`, `amount_covered` and `coverage_percentage`
work on any iterable of traces. A line counts once; a branch counts twice;
a condition counts twice per subcondition. `coverage_percentage` returns a
value from 0.0 to 1.0, or NaN when nothing is coverable.

## The state machine

`tracecov.statemachine` defines `TestState` and the abstract `StateData`
interface (`start`, `init`, `wait`, `last_wait_attempt`, `stop`).

A `TestState` has a `kind` (`StateKind.START`, `INITIALISE`, `WAITING`,
`STOPPED` or `END`), a `start_time` for the start and waiting states and an
`exit_code` for the end state. A run begins in `TestState.start_state()` and
is advanced with `state.step(data, test_timeout)` until `state.is_finished()`.
The timeout is in seconds, or a `datetime.timedelta`. When a start or wait
times out, `TestRuntimeError` is raised (after `last_wait_attempt()` has had a
chance to finish the run, in the waiting state).

Errors derive from `RunError`: `StateMachineError`, `TestRuntimeError` and
`TestCoverageError`. `NullStateData` stands in where no coverage collector is
available and raises `StateMachineError` on every call.

`TracerAction` pairs an `ActionKind` (`TRY_CONTINUE`, `CONTINUE`, `STEP`,
`DETACH`, `NOTHING`) with the handle it applies to; `get_data()` returns the
handle, or None for `NOTHING`.

## Instrumented test binaries

`tracecov.instrumented` handles binaries that write their own profiling data.
Wrap the launched process in a `RunningProcess`, together with the binary's
path and the `.profraw` files that were already present, then call
`create_state_machine(test, traces, root)`. `LlvmInstrumentedData.wait()`
waits for the process to exit, records the new `.profraw` files in `root` in
its `profraws` attribute, logs them, and ends the run with the process's exit
code (1 if it was killed by a signal). Passing anything other than a
`RunningProcess` gives an end state with code 1, and its `wait()` raises
`TestCoverageError`.

```python
import subprocess
from pathlib import Path
from tracecov.instrumented import RunningProcess, create_state_machine
from tracecov.traces import TraceMap

root = Path(".")
existing = set(root.glob("*.profraw"))
binary = Path("./target/debug/my-tests")
proc = RunningProcess(subprocess.Popen([binary]), binary, existing)

state, data = create_state_machine(proc, TraceMap(), root)
while not state.is_finished():
    state = state.step(data, test_timeout=60.0)
print("exit code:", state.exit_code)
print("profiles:", data.profraws)
```

## What this package does not do

It has no command-line tool. It does not build or launch tests, does not read
debug information from binaries to place traces, does not trace processes
through breakpoints, and does not turn `.profraw` files into hit counts:
a `TraceMap` is filled through its own methods, and the instrumented state
machine only reports which profile files a run produced.