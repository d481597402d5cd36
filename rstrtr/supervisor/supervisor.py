import logging
from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from rstrtr import control
from rstrtr.settings import POLL_INTERVAL_SECONDS, TERMINATE_TIMEOUT_SECONDS, WATCH_DEBOUNCE_SECONDS
from rstrtr.supervisor import process_utils
from rstrtr.supervisor.process_utils import ChildProcess
from rstrtr.watch import WatchEvent, WatchStream
from rstrtr.watch.events import coalesce

log = logging.getLogger(__name__)
status = logging.getLogger("status")


class SupervisorState(Enum):
    SPAWNING = "spawning"
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"


@dataclass
class RunState:
    """Mutable control state of one supervisor run. Once keep_going is False nothing is spawned again."""
    keep_going: bool = True
    generation: int = 0


class Supervisor:
    """
    Keeps a command running and restarts or stops it on request.

    A write to the control file restarts the command, removing the control
    file stops it and ends the run. A command that exits on its own is
    restarted, whatever its exit status.
    """

    def __init__(
        self,
        command: Sequence[str],
        control_path: Union[str, Path],
        poll_interval: float = POLL_INTERVAL_SECONDS,
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        terminate_timeout: float = TERMINATE_TIMEOUT_SECONDS,
        stream_factory: Callable[..., WatchStream] = WatchStream.open,
    ) -> None:
        if not command:
            raise ValueError("A command to supervise is required.")
        self.command: List[str] = list(command)
        self.control_path = Path(control_path)
        self.poll_interval = poll_interval
        self.debounce_seconds = debounce_seconds
        self.terminate_timeout = terminate_timeout
        self.stream_factory = stream_factory

        self.state = SupervisorState.SPAWNING
        self.child: Optional[ChildProcess] = None

    def run(self) -> int:
        """
        Runs the supervision loop until a quit is requested.

        :return: The process exit code, 0 after a requested quit.
        :raises ControlChannelError: If the control file cannot be created.
        :raises WatchError: If the control file cannot be watched.
        :raises SpawnError: If the command cannot be launched.
        """
        control.initialize(self.control_path)
        stream = self.stream_factory(self.control_path, self.debounce_seconds)
        run_state = RunState()
        log.info(f"Supervising {self.command} with control file '{self.control_path}'.")

        try:
            while run_state.keep_going:
                self.state = SupervisorState.SPAWNING
                run_state.generation += 1
                self.child = process_utils.spawn(self.command, run_state.generation)
                self._supervise(self.child, stream, run_state)
                if run_state.keep_going:
                    status.info("Restarting...")
        except KeyboardInterrupt:
            log.info("Supervisor loop interrupted by user.")
            run_state.keep_going = False
            if self.child is not None and self.child.returncode is None:
                self._stop_child(self.child)
        finally:
            stream.close()

        self.state = SupervisorState.TERMINATED
        status.info("Quitting...")
        return 0

    def _supervise(self, child: ChildProcess, stream: WatchStream, run_state: RunState) -> None:
        """Polls for control events and child exit until this generation ends."""
        self.state = SupervisorState.RUNNING
        while True:
            restart = False
            event = self._next_event(stream)
            if event is WatchEvent.REMOVED:
                log.info("Control file removed. Stopping.")
                run_state.keep_going = False
            elif event is WatchEvent.MODIFIED:
                log.info("Control file written. Restarting command.")
                restart = True

            if restart or not run_state.keep_going:
                self._stop_child(child)
                return

            returncode = self._check_exit(child)
            if returncode is not None:
                self._report_exit(returncode)
                return

    def _next_event(self, stream: WatchStream) -> Optional[WatchEvent]:
        """Waits for one event, then drains whatever else is queued so a removal always wins."""
        event = stream.poll(self.poll_interval)
        if event is None:
            return None
        burst = [event]
        while True:
            more = stream.poll(0)
            if more is None:
                break
            burst.append(more)
        return coalesce(burst)

    def _check_exit(self, child: ChildProcess) -> Optional[int]:
        try:
            return child.poll()
        except OSError as e:
            log.error(f"Error checking status of child PID {child.pid}: {e}")
            return None

    def _stop_child(self, child: ChildProcess) -> None:
        self.state = SupervisorState.STOPPING
        returncode = process_utils.terminate(child, self.terminate_timeout)
        if returncode is not None:
            self._report_exit(returncode)

    def _report_exit(self, returncode: int) -> None:
        status.info(f"Exit {process_utils.describe_exit(returncode)}")
