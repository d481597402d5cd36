"""
The Supervisor package.
Manages the lifecycle of the supervised command.

This package contains the Supervisor state machine and the helpers that
spawn, poll and terminate each generation of the child process.
"""
from .supervisor import RunState, Supervisor, SupervisorState

__all__ = ['RunState', 'Supervisor', 'SupervisorState']
