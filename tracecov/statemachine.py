"""Generic test-tracing state machine: states, tracer actions and state data."""

from __future__ import annotations

import abc
import enum
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

Timeout = Union[float, int, timedelta]


class RunError(Exception):
    """Base error raised while running and tracing a test."""


class StateMachineError(RunError):
    """The state machine was driven in a way it cannot handle."""


class TestRuntimeError(RunError):
    """The test failed or misbehaved while it was being traced."""

    __test__ = False


class TestCoverageError(RunError):
    """Coverage could not be collected from the test."""

    __test__ = False


class StateKind(enum.Enum):
    """The phases a traced test goes through."""

    START = "start"
    INITIALISE = "initialise"
    WAITING = "waiting"
    STOPPED = "stopped"
    END = "end"


def _seconds(timeout: Timeout) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


@dataclass(frozen=True)
class TestState:
    """State of a traced test.

    ``start_time`` is set for START and WAITING states and is used for
    timeouts; ``exit_code`` is set for the END state.
    """

    __test__ = False

    kind: StateKind
    start_time: float | None = None
    exit_code: int | None = None

    @classmethod
    def start_state(cls) -> TestState:
        return cls(StateKind.START, start_time=time.monotonic())

    @classmethod
    def wait_state(cls) -> TestState:
        return cls(StateKind.WAITING, start_time=time.monotonic())

    @classmethod
    def end(cls, code: int) -> TestState:
        return cls(StateKind.END, exit_code=code)

    def is_finished(self) -> bool:
        """True once the test has ended."""
        return self.kind is StateKind.END

    def _elapsed(self) -> float:
        return time.monotonic() - (self.start_time or 0.0)

    def step(self, data: StateData, test_timeout: Timeout) -> TestState:
        """Advance the state machine by one step and return the next state."""
        timeout = _seconds(test_timeout)
        if self.kind is StateKind.START:
            next_state = data.start()
            if next_state is not None:
                return next_state
            if self._elapsed() >= timeout:
                raise TestRuntimeError("Error: Timed out when starting test")
            return self
        if self.kind is StateKind.INITIALISE:
            return data.init()
        if self.kind is StateKind.WAITING:
            next_state = data.wait()
            if next_state is not None:
                return next_state
            if self._elapsed() >= timeout:
                final = data.last_wait_attempt()
                if final is not None:
                    return final
                raise TestRuntimeError("Error: Timed out waiting for test response")
            return self
        if self.kind is StateKind.STOPPED:
            return data.stop()
        return self


class ActionKind(enum.Enum):
    """What the process tracer should do next."""

    TRY_CONTINUE = "try_continue"
    CONTINUE = "continue"
    STEP = "step"
    DETACH = "detach"
    NOTHING = "nothing"


@dataclass(frozen=True)
class TracerAction(Generic[T]):
    """An action for the tracer together with the handle it applies to."""

    kind: ActionKind
    data: Any = None

    def get_data(self) -> T | None:
        """The handle this action targets, or None for NOTHING."""
        if self.kind is ActionKind.NOTHING:
            return None
        return self.data


class StateData(abc.ABC):
    """Platform-specific handling of each state of a traced test."""

    @abc.abstractmethod
    def start(self) -> TestState | None:
        """Start tracing; None while still waiting for the test to appear."""

    @abc.abstractmethod
    def init(self) -> TestState:
        """Prepare the test for tracing and return the next state."""

    @abc.abstractmethod
    def wait(self) -> TestState | None:
        """Wait for the test; None if there is nothing to do yet."""

    @abc.abstractmethod
    def last_wait_attempt(self) -> TestState | None:
        """Final check before a wait timeout is reported as a failure."""

    @abc.abstractmethod
    def stop(self) -> TestState:
        """Handle a stop in the test, collecting coverage."""


class NullStateData(StateData):
    """State data used when no coverage collector is available."""

    _MESSAGE = "No valid coverage collector"

    def start(self) -> TestState | None:
        raise StateMachineError(self._MESSAGE)

    def init(self) -> TestState:
        raise StateMachineError(self._MESSAGE)

    def wait(self) -> TestState | None:
        raise StateMachineError(self._MESSAGE)

    def last_wait_attempt(self) -> TestState | None:
        raise StateMachineError(self._MESSAGE)

    def stop(self) -> TestState:
        raise StateMachineError(self._MESSAGE)