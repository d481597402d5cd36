"""
This module initializes the console package, exposing command execution.
"""

from .process import execute_command

__all__ = ["execute_command"]
