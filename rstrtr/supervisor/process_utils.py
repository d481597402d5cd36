import signal
import logging
from typing import Optional, Sequence

import psutil

from rstrtr.errors import SpawnError

log = logging.getLogger(__name__)

# Time allowed for the kernel to reap a child after SIGKILL.
KILL_WAIT_TIMEOUT = 1.0


class ChildProcess:
    """One generation of the supervised command."""

    def __init__(self, proc: psutil.Popen, generation: int):
        self.proc = proc
        self.generation = generation

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.proc.returncode

    def poll(self) -> Optional[int]:
        """Non-blocking exit check. Returns the exit code, or None while the child runs."""
        return self.proc.poll()

    def __repr__(self) -> str:
        return f"<ChildProcess generation={self.generation} pid={self.pid} returncode={self.returncode}>"


#* --- Process Creation ---
def spawn(command: Sequence[str], generation: int) -> ChildProcess:
    """
    Launches the command, inheriting the supervisor's stdio.

    :param command: The executable followed by its arguments.
    :param generation: The generation number of the new child.
    :raises SpawnError: If the command cannot be executed.
    """
    if not command:
        raise SpawnError(command, "empty command")
    try:
        proc = psutil.Popen(list(command))
    except (OSError, ValueError, psutil.Error) as e:
        raise SpawnError(command, str(e)) from e
    log.info(f"Started generation {generation} of '{command[0]}' with PID: {proc.pid}")
    return ChildProcess(proc, generation)


#* --- Process Termination ---
def _forceful_kill(child: ChildProcess) -> None:
    """Kills a child that did not terminate gracefully."""
    log.warning(f"Child PID {child.pid} did not terminate gracefully. Killing it.")
    try:
        child.proc.kill()
        psutil.wait_procs([child.proc], timeout=KILL_WAIT_TIMEOUT)
    except psutil.NoSuchProcess:
        pass
    except psutil.Error as e:
        log.error(f"Failed to kill child PID {child.pid}: {e}")


def terminate(child: ChildProcess, timeout: float) -> Optional[int]:
    """
    Terminates a child, best-effort. Failures are logged, never raised.

    Sends SIGTERM, waits up to `timeout` seconds for the child to be reaped and
    kills it if it is still alive. With a timeout of 0 the signal is sent and
    the function returns without waiting.

    :return: The child's exit code if it has been reaped, else None.
    """
    log.debug(f"Sending SIGTERM to child PID {child.pid}")
    try:
        child.proc.terminate()
    except psutil.NoSuchProcess:
        log.debug(f"Child PID {child.pid} no longer exists, skipping termination.")
    except psutil.Error as e:
        log.error(f"Failed to terminate child PID {child.pid}: {e}")
        return None

    if timeout <= 0:
        try:
            return child.poll()
        except OSError as e:
            log.error(f"Error checking status of child PID {child.pid}: {e}")
            return None

    try:
        _, alive = psutil.wait_procs([child.proc], timeout=timeout)
    except psutil.Error as e:
        log.error(f"Failed waiting for child PID {child.pid}: {e}")
        return None

    if alive:
        _forceful_kill(child)
    return child.returncode


def describe_exit(returncode: Optional[int]) -> str:
    """Renders an exit code the way it is shown on the console."""
    if returncode is None:
        return "status unknown"
    returncode = int(returncode)
    if returncode < 0:
        try:
            return f"signal {-returncode} ({signal.Signals(-returncode).name})"
        except ValueError:
            return f"signal {-returncode}"
    return f"status {returncode}"
