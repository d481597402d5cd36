import os
import hashlib
import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

from rstrtr.errors import ControlChannelError
from rstrtr.settings import CONTROL_FILE_CONTENT, CONTROL_FILE_PREFIX

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


#* --- Path Derivation ---
def cwd_digest(cwd: Optional[PathLike] = None) -> str:
    """
    Returns a stable hash of a working directory.

    Python's built-in hash() is salted per interpreter, so a truncated SHA-256
    digest is used instead; every invocation from the same directory agrees on it.
    """
    directory = Path(cwd) if cwd is not None else Path.cwd()
    return hashlib.sha256(str(directory.resolve()).encode("utf-8")).hexdigest()[:16]


def resolve_control_path(control_path: PathLike, use_temp_dir: bool = False, cwd: Optional[PathLike] = None) -> Path:
    """
    Determines the control file location for this invocation.

    :param control_path: The configured control file path.
    :param use_temp_dir: If True, derive the path from the temp dir and the working directory instead.
    :param cwd: The working directory to hash. Defaults to the current one.
    :return: The control file path.
    """
    if not use_temp_dir:
        return Path(control_path)
    return Path(tempfile.gettempdir()) / f"{CONTROL_FILE_PREFIX}.{cwd_digest(cwd)}"


#* --- Channel Lifecycle ---
def _write(path: Path, action: str) -> None:
    try:
        path.write_text(CONTROL_FILE_CONTENT)
    except OSError as e:
        raise ControlChannelError(f"Failed to {action} control file '{path}': {e}") from e


def initialize(path: PathLike) -> Path:
    """
    Creates or truncates the control file.

    :param path: The control file path.
    :return: The control file path as a Path.
    :raises ControlChannelError: If the parent directory is missing or unwritable.
    """
    path = Path(path)
    _write(path, "create")
    log.debug(f"Control file initialized at '{path}'.")
    return path


def signal_restart(path: PathLike) -> None:
    """Asks the supervisor watching `path` to restart its command."""
    path = Path(path)
    _write(path, "write")
    log.debug(f"Restart signal written to '{path}'.")


def signal_quit(path: PathLike) -> None:
    """Asks the supervisor watching `path` to stop its command and exit."""
    path = Path(path)
    try:
        path.unlink()
    except OSError as e:
        raise ControlChannelError(f"Failed to remove control file '{path}': {e}") from e
    log.debug(f"Quit signal sent by removing '{path}'.")
