import sys
import time
import threading

import psutil
import pytest

from rstrtr import control
from rstrtr.errors import ControlChannelError, SpawnError, WatchError
from rstrtr.supervisor import Supervisor, SupervisorState, process_utils
from rstrtr.supervisor.process_utils import ChildProcess
from rstrtr.watch import WatchEvent

from conftest import QUICK_EXIT, SLEEPER, FakeWatchStream, wait_for


class FakeProc:
    """A child process stand-in whose failures can be scripted."""

    def __init__(self, pid, poll_error=None, terminate_error=None):
        self.pid = pid
        self.returncode = None
        self.poll_calls = 0
        self.terminate_calls = 0
        self.poll_error = poll_error
        self.terminate_error = terminate_error

    def poll(self):
        self.poll_calls += 1
        if self.poll_error is not None and self.poll_calls == 1:
            raise self.poll_error
        return self.returncode

    def terminate(self):
        self.terminate_calls += 1
        if self.terminate_error is not None:
            raise self.terminate_error


@pytest.fixture()
def spawned(monkeypatch):
    children = []
    real_spawn = process_utils.spawn

    def recording_spawn(command, generation):
        child = real_spawn(command, generation)
        children.append(child)
        return child

    monkeypatch.setattr(process_utils, "spawn", recording_spawn)
    yield children
    for child in children:
        if child.returncode is None:
            try:
                child.proc.kill()
                child.proc.wait(timeout=10)
            except psutil.Error:
                pass


class FakeChildren(list):
    """Children created by the fake spawn; `options` configures the next FakeProc."""
    options = {}


@pytest.fixture()
def fake_children(monkeypatch):
    children = FakeChildren()

    def fake_spawn(command, generation):
        child = ChildProcess(FakeProc(1000 + generation, **children.options), generation)
        children.append(child)
        return child

    monkeypatch.setattr(process_utils, "spawn", fake_spawn)
    return children


def make_supervisor(command, control_path, stream, **kwargs):
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("terminate_timeout", 5)
    return Supervisor(command, control_path, stream_factory=lambda path, debounce: stream, **kwargs)


def test_command_is_required(control_path):
    with pytest.raises(ValueError):
        Supervisor([], control_path)


def test_spawn_failure_is_fatal(control_path):
    stream = FakeWatchStream()
    supervisor = make_supervisor(["/nonexistent/rstrtr-test-binary"], control_path, stream)

    with pytest.raises(SpawnError):
        supervisor.run()

    assert stream.polls == 0
    assert stream.closed
    assert supervisor.state is SupervisorState.SPAWNING


def test_quit_terminates_child_and_leaves_control_file(control_path, spawned, status_lines):
    stream = FakeWatchStream([WatchEvent.REMOVED])
    supervisor = make_supervisor(SLEEPER, control_path, stream)

    assert supervisor.run() == 0

    assert len(spawned) == 1
    assert spawned[0].returncode is not None
    assert supervisor.state is SupervisorState.TERMINATED
    assert control_path.read_text() == "\n"
    assert stream.closed
    assert "Restarting..." not in status_lines()
    assert status_lines()[-1] == "Quitting..."


def test_write_restarts_child(control_path, spawned, status_lines):
    stream = FakeWatchStream()
    stream.when(lambda: len(spawned) == 1, WatchEvent.MODIFIED)
    stream.when(lambda: len(spawned) == 2, WatchEvent.REMOVED)
    supervisor = make_supervisor(SLEEPER, control_path, stream)

    assert supervisor.run() == 0

    assert [child.generation for child in spawned] == [1, 2]
    assert spawned[0].pid != spawned[1].pid
    assert all(child.returncode is not None for child in spawned)
    assert status_lines().count("Restarting...") == 1
    assert status_lines()[-1] == "Quitting..."


def test_removal_beats_write_in_same_cycle(control_path, spawned, status_lines):
    stream = FakeWatchStream([WatchEvent.MODIFIED, WatchEvent.REMOVED])
    supervisor = make_supervisor(SLEEPER, control_path, stream)

    assert supervisor.run() == 0

    assert len(spawned) == 1
    assert "Restarting..." not in status_lines()


def test_no_restart_after_removal(control_path, spawned):
    stream = FakeWatchStream([WatchEvent.REMOVED, WatchEvent.MODIFIED])
    supervisor = make_supervisor(SLEEPER, control_path, stream)

    assert supervisor.run() == 0

    assert len(spawned) == 1


def test_child_exiting_on_its_own_is_restarted(control_path, spawned, status_lines):
    stream = FakeWatchStream()
    stream.when(lambda: len(spawned) >= 3, WatchEvent.REMOVED)
    supervisor = make_supervisor(QUICK_EXIT, control_path, stream)

    assert supervisor.run() == 0

    assert len(spawned) >= 3
    assert status_lines().count("Exit status 0") >= 2
    assert status_lines().count("Restarting...") >= 2


def test_status_check_error_is_not_fatal(control_path, fake_children, caplog):
    fake_children.options = {"poll_error": OSError("interrupted")}
    stream = FakeWatchStream()
    stream.when(lambda: fake_children and fake_children[0].proc.poll_calls >= 2, WatchEvent.REMOVED)
    supervisor = make_supervisor(["child"], control_path, stream, terminate_timeout=0)

    assert supervisor.run() == 0

    assert len(fake_children) == 1
    assert "Error checking status of child PID 1001" in caplog.text
    assert fake_children[0].proc.terminate_calls == 1


def test_terminate_failure_is_not_fatal(control_path, fake_children, caplog):
    fake_children.options = {"terminate_error": psutil.AccessDenied(1001)}
    stream = FakeWatchStream()
    stream.when(lambda: len(fake_children) == 1, WatchEvent.MODIFIED)
    stream.when(lambda: len(fake_children) == 2, WatchEvent.REMOVED)
    supervisor = make_supervisor(["child"], control_path, stream)

    assert supervisor.run() == 0

    assert len(fake_children) == 2
    assert "Failed to terminate child PID 1001" in caplog.text


def test_keyboard_interrupt_quits(control_path, spawned, status_lines):
    class InterruptingStream(FakeWatchStream):
        def poll(self, timeout):
            super().poll(timeout)
            raise KeyboardInterrupt

    stream = InterruptingStream()
    supervisor = make_supervisor(SLEEPER, control_path, stream)

    assert supervisor.run() == 0

    assert spawned[0].returncode is not None
    assert stream.closed
    assert status_lines()[-1] == "Quitting..."


@pytest.mark.skipif(sys.platform == "darwin", reason="FSEvents delivery latency is too variable")
def test_restart_and_quit_through_control_file(control_path, spawned, status_lines):
    supervisor = Supervisor(SLEEPER, control_path, poll_interval=0.05, debounce_seconds=0.1, terminate_timeout=5)
    result = []
    thread = threading.Thread(target=lambda: result.append(supervisor.run()), daemon=True)
    thread.start()

    try:
        assert wait_for(lambda: len(spawned) == 1 and supervisor.state is SupervisorState.RUNNING)

        for _ in range(5):
            control.signal_restart(control_path)
        assert wait_for(lambda: len(spawned) == 2)
        time.sleep(0.5)
        assert len(spawned) == 2
        assert spawned[0].returncode is not None

        control.signal_quit(control_path)
        thread.join(timeout=15)
    finally:
        if thread.is_alive() and control_path.exists():
            control.signal_quit(control_path)
            thread.join(timeout=15)

    assert result == [0]
    assert len(spawned) == 2
    assert spawned[1].returncode is not None
    assert status_lines().count("Restarting...") == 1
    assert status_lines()[-1] == "Quitting..."


def test_missing_control_directory_is_fatal(tmp_path, spawned):
    stream = FakeWatchStream()
    supervisor = make_supervisor(SLEEPER, tmp_path / "missing" / ".rstrtr", stream)

    with pytest.raises(ControlChannelError):
        supervisor.run()

    assert spawned == []
    assert stream.polls == 0


def test_watch_failure_is_fatal(control_path, spawned):
    def failing_factory(path, debounce):
        raise WatchError(f"Cannot watch '{path}'")

    supervisor = Supervisor(SLEEPER, control_path, stream_factory=failing_factory)

    with pytest.raises(WatchError):
        supervisor.run()

    assert spawned == []
    assert supervisor.child is None
