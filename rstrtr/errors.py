"""Exceptions raised by rstrtr. All of them are fatal at startup."""


class RstrtrError(Exception):
    """Base class for all rstrtr errors."""


class ControlChannelError(RstrtrError, OSError):
    """The control file could not be created, written or removed."""


class WatchError(RstrtrError):
    """The filesystem watcher could not be attached to the control file."""


class SpawnError(RstrtrError):
    """The supervised command could not be launched."""

    def __init__(self, command, reason: str):
        self.command = list(command)
        self.reason = reason
        super().__init__(f"Failed to execute {self.command!r}: {reason}")
