"""
The watch package.
Turns raw filesystem notifications about the control file into a debounced
stream of WatchEvents.
"""
from .events import WatchEvent
from .stream import Debouncer, WatchStream

__all__ = ['WatchEvent', 'Debouncer', 'WatchStream']
