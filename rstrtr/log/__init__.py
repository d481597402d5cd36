"""
Logging module for rstrtr.
This module provides the root logger setup shared by every command.
"""

from .setup import setup_logging

__all__ = ["setup_logging"]
