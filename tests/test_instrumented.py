import subprocess
import sys

import pytest

from tracecov.instrumented import (
    LlvmInstrumentedData,
    RunningProcess,
    create_state_machine,
)
from tracecov.statemachine import (
    StateKind,
    StateMachineError,
    TestCoverageError,
    TestState,
)
from tracecov.traces import TraceMap


def _launch(code, tmp_path):
    child = subprocess.Popen([sys.executable, "-c", code])
    return RunningProcess(child=child, path=tmp_path / "test-bin")


def test_create_with_process_starts(tmp_path):
    proc = _launch("pass", tmp_path)
    state, data = create_state_machine(proc, TraceMap(), tmp_path)
    assert state.kind is StateKind.START
    assert data.process is proc
    proc.child.wait()


def test_create_without_process_ends(tmp_path):
    state, data = create_state_machine(1234, TraceMap(), tmp_path)
    assert state == TestState.end(1)
    with pytest.raises(TestCoverageError, match="Test was not launched"):
        data.wait()


def test_wait_returns_exit_code(tmp_path):
    proc = _launch("import sys; sys.exit(3)", tmp_path)
    data = LlvmInstrumentedData(proc, TraceMap(), tmp_path)
    assert data.start().kind is StateKind.WAITING
    assert data.wait() == TestState.end(3)
    assert data.process is None


def test_wait_collects_new_profraws(tmp_path):
    old = tmp_path / "old.profraw"
    old.write_bytes(b"")
    new = tmp_path / "new.profraw"
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "dir.profraw").mkdir()
    proc = _launch(f"open({str(new)!r}, 'wb').close()", tmp_path)
    proc.existing_profraws.add(old)
    data = LlvmInstrumentedData(proc, TraceMap(), tmp_path)
    assert data.wait() == TestState.end(0)
    assert data.profraws == [new]


def test_killed_process_reports_failure(tmp_path):
    proc = _launch("import time; time.sleep(60)", tmp_path)
    proc.child.kill()
    data = LlvmInstrumentedData(proc, TraceMap(), tmp_path)
    assert data.wait() == TestState.end(1)


def test_step_through_to_end(tmp_path):
    proc = _launch("import sys; sys.exit(2)", tmp_path)
    state, data = create_state_machine(proc, TraceMap(), tmp_path)
    state = state.step(data, 60)
    assert state.kind is StateKind.WAITING
    state = state.step(data, 60)
    assert state.is_finished()
    assert state.exit_code == 2


@pytest.mark.parametrize("method", ["init", "last_wait_attempt", "stop"])
def test_unused_states_raise(tmp_path, method):
    data = LlvmInstrumentedData(None, TraceMap(), tmp_path)
    with pytest.raises(StateMachineError) as excinfo:
        getattr(data, method)()
    assert not isinstance(excinfo.value, TestCoverageError)
    assert data.process is None