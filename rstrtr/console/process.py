import logging
from pathlib import Path
from typing import List

import setproctitle

from rstrtr import control
from rstrtr.config import MergedSettings
from rstrtr.errors import RstrtrError
from rstrtr.supervisor import Supervisor

log = logging.getLogger(__name__)


def _run(args: List[str], control_path: Path, settings: MergedSettings) -> int:
    """Starts the supervisor and blocks until it is told to quit."""
    setproctitle.setproctitle(settings.PROCESS_TITLE)
    supervisor = Supervisor(
        args,
        control_path,
        poll_interval=settings.POLL_INTERVAL_SECONDS,
        debounce_seconds=settings.WATCH_DEBOUNCE_SECONDS,
        terminate_timeout=settings.TERMINATE_TIMEOUT_SECONDS,
    )
    return supervisor.run()


def _restart(control_path: Path) -> int:
    control.signal_restart(control_path)
    return 0


def _quit(control_path: Path) -> int:
    control.signal_quit(control_path)
    return 0


def execute_command(command: str, args: List[str], control_path: Path, settings: MergedSettings) -> int:
    """
    Executes a single command.

    :param command: The command name ('run', 'restart' or 'quit').
    :param args: The supervised command line, for 'run'.
    :param control_path: The resolved control file path.
    :param settings: The effective settings.
    :return int: The process exit code.
    """
    log.debug(f"Executing command: {command}, args: {args}, control file: {control_path}")
    command_map = {
        "run": lambda: _run(args, control_path, settings),
        "restart": lambda: _restart(control_path),
        "quit": lambda: _quit(control_path),
    }

    if command not in command_map:
        log.error(f"Unknown command: '{command}'.")
        return 2

    try:
        return command_map[command]()
    except RstrtrError as e:
        log.critical(str(e))
        return 1
