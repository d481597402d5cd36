"""
The control channel package.

The control file is a mailbox shared between one running supervisor and any
number of short-lived `restart`/`quit` invocations: writing it requests a
restart, deleting it requests a quit.
"""
from .channel import initialize, resolve_control_path, signal_quit, signal_restart

__all__ = ['initialize', 'resolve_control_path', 'signal_quit', 'signal_restart']
