from datetime import timedelta

import pytest

from tracecov.statemachine import (
    ActionKind,
    NullStateData,
    RunError,
    StateData,
    StateKind,
    StateMachineError,
    TestRuntimeError,
    TestState,
    TracerAction,
)


class _Scripted(StateData):
    def __init__(self, start=None, init=None, wait=None, last=None, stop=None):
        self._start = start
        self._init = init
        self._wait = wait
        self._last = last
        self._stop = stop
        self.calls = []

    def start(self):
        self.calls.append("start")
        return self._start

    def init(self):
        self.calls.append("init")
        return self._init

    def wait(self):
        self.calls.append("wait")
        return self._wait

    def last_wait_attempt(self):
        self.calls.append("last")
        return self._last

    def stop(self):
        self.calls.append("stop")
        return self._stop


def test_is_finished():
    assert TestState.end(0).is_finished()
    assert not TestState.start_state().is_finished()
    assert not TestState.wait_state().is_finished()


def test_end_keeps_exit_code():
    assert TestState.end(42).exit_code == 42
    assert TestState.end(42).kind is StateKind.END


def test_start_transitions_when_data_ready():
    target = TestState(StateKind.INITIALISE)
    data = _Scripted(start=target)
    assert TestState.start_state().step(data, 10) == target


def test_start_times_out():
    data = _Scripted()
    with pytest.raises(TestRuntimeError, match="Timed out when starting test"):
        TestState.start_state().step(data, 0)


def test_start_keeps_waiting_within_timeout():
    state = TestState.start_state()
    assert state.step(_Scripted(), timedelta(hours=1)) == state


def test_initialise_calls_init():
    data = _Scripted(init=TestState.end(3))
    assert TestState(StateKind.INITIALISE).step(data, 1) == TestState.end(3)
    assert data.calls == ["init"]


def test_waiting_returns_wait_result():
    data = _Scripted(wait=TestState(StateKind.STOPPED))
    result = TestState.wait_state().step(data, 0)
    assert result.kind is StateKind.STOPPED
    assert data.calls == ["wait"]


def test_waiting_timeout_uses_last_wait_attempt():
    data = _Scripted(last=TestState.end(5))
    assert TestState.wait_state().step(data, 0) == TestState.end(5)
    assert data.calls == ["wait", "last"]


def test_waiting_timeout_without_result_raises():
    data = _Scripted()
    with pytest.raises(RunError, match="Timed out waiting for test response"):
        TestState.wait_state().step(data, 0)


def test_waiting_within_timeout_keeps_state():
    state = TestState.wait_state()
    assert state.step(_Scripted(), 3600) == state


def test_stopped_calls_stop():
    data = _Scripted(stop=TestState.end(0))
    assert TestState(StateKind.STOPPED).step(data, 1) == TestState.end(0)


def test_end_is_terminal():
    data = _Scripted()
    assert TestState.end(7).step(data, 1) == TestState.end(7)
    assert data.calls == []


def test_tracer_action_data():
    assert TracerAction(ActionKind.CONTINUE, 7).get_data() == 7
    assert TracerAction(ActionKind.DETACH, 8).get_data() == 8
    assert TracerAction(ActionKind.NOTHING).get_data() is None


@pytest.mark.parametrize("method", ["start", "init", "wait", "last_wait_attempt", "stop"])
def test_null_state_data_raises(method):
    with pytest.raises(StateMachineError, match="No valid coverage collector"):
        getattr(NullStateData(), method)()


def test_step_with_null_data_raises():
    with pytest.raises(StateMachineError):
        TestState.start_state().step(NullStateData(), 1)