"""
rstrtr: run a command, keep it alive, and restart or stop it through a control file.
"""

__version__ = "0.1.0"
