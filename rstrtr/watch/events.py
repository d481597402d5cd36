import os
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from watchdog.events import EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED, FileSystemEvent


class WatchEvent(Enum):
    """A classified notification about the control file."""
    MODIFIED = "modified"
    REMOVED = "removed"
    OTHER = "other"


def _as_str(path) -> str:
    """Handles both string and bytes paths."""
    if isinstance(path, bytes):
        path = path.decode("utf-8", errors="replace")
    return os.path.normpath(path)


def classify(event: FileSystemEvent, control_path: Path) -> Optional[WatchEvent]:
    """
    Maps a raw watchdog event to a WatchEvent.

    :param event: The event reported by the observer.
    :param control_path: Absolute path of the control file.
    :return: The classification, or None if the event does not concern the control file.
    """
    if event.is_directory:
        return None

    target = os.path.normpath(str(control_path))
    src_path = _as_str(event.src_path)
    dest_path = _as_str(getattr(event, "dest_path", "") or "")

    if event.event_type == EVENT_TYPE_MOVED:
        # Replacing the file atomically counts as a write, moving it away as a removal.
        if dest_path == target:
            return WatchEvent.MODIFIED
        if src_path == target:
            return WatchEvent.REMOVED
        return None

    if src_path != target:
        return None
    if event.event_type == EVENT_TYPE_MODIFIED:
        return WatchEvent.MODIFIED
    if event.event_type == EVENT_TYPE_DELETED:
        return WatchEvent.REMOVED
    return WatchEvent.OTHER


def coalesce(kinds: Iterable[WatchEvent]) -> Optional[WatchEvent]:
    """Collapses a burst of events into one. Removal wins over modification."""
    kinds = set(kinds)
    if WatchEvent.REMOVED in kinds:
        return WatchEvent.REMOVED
    if WatchEvent.MODIFIED in kinds:
        return WatchEvent.MODIFIED
    return None
