"""State machine data for tests built with compiler instrumentation."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tracecov.statemachine import (
    RunError,
    StateData,
    StateMachineError,
    TestCoverageError,
    TestState,
)
from tracecov.traces import TraceMap

logger = logging.getLogger(__name__)


@dataclass
class RunningProcess:
    """A launched test binary and the profile files present before it ran."""

    child: subprocess.Popen
    path: Path
    existing_profraws: set[Path] = field(default_factory=set)


def _strip_base(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


class LlvmInstrumentedData(StateData):
    """Tracks an instrumented test process, which runs like a normal process."""

    def __init__(self, process: RunningProcess | None, traces: TraceMap, root) -> None:
        self.process = process
        self.traces = traces
        self.root = Path(root)
        self.profraws: list[Path] = []

    def start(self) -> TestState | None:
        return TestState.wait_state()

    def init(self) -> TestState:
        raise StateMachineError("Instrumented tests have no initialise state")

    def last_wait_attempt(self) -> TestState | None:
        raise StateMachineError("Instrumented tests have no last wait attempt")

    def wait(self) -> TestState | None:
        """Wait for the process to exit and note the profile files it wrote."""
        process = self.process
        if process is None:
            raise TestCoverageError("Test was not launched")
        try:
            returncode = process.child.wait()
            self.profraws = sorted(
                entry
                for entry in self.root.iterdir()
                if entry.is_file()
                and entry.suffix == ".profraw"
                and entry not in process.existing_profraws
            )
        except OSError as exc:
            raise RunError(str(exc)) from exc

        logger.info("For binary: %s", _strip_base(Path(process.path), self.root))
        for prof in self.profraws:
            logger.info("Generated: %s", _strip_base(prof, self.root))
        self.process = None
        code = returncode if returncode is not None and returncode >= 0 else 1
        return TestState.end(code)

    def stop(self) -> TestState:
        raise StateMachineError("Instrumented tests have no stopped state")


def create_state_machine(
    test: Any, traces: TraceMap, root
) -> tuple[TestState, LlvmInstrumentedData]:
    """Initial state and data for tracing an instrumented test process."""
    if isinstance(test, RunningProcess):
        return TestState.start_state(), LlvmInstrumentedData(test, traces, root)
    logger.error("The instrumented state machine requires a running process")
    return TestState.end(1), LlvmInstrumentedData(None, traces, root)