import sys
import time
import logging
from collections import deque
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from rstrtr.watch import WatchEvent

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]
QUICK_EXIT = [sys.executable, "-c", "pass"]


class FakeWatchStream:
    """Stands in for WatchStream; each queued event is returned by exactly one poll."""

    def __init__(self, events: Iterable[WatchEvent] = ()):
        self.queue = deque(events)
        self.triggers = []
        self.polls = 0
        self.closed = False

    def when(self, predicate: Callable[[], bool], *events: WatchEvent) -> None:
        """Queues `events` once `predicate` becomes true."""
        self.triggers.append((predicate, events))

    def poll(self, timeout: float) -> Optional[WatchEvent]:
        self.polls += 1
        for trigger in list(self.triggers):
            predicate, events = trigger
            if predicate():
                self.queue.extend(events)
                self.triggers.remove(trigger)
        if self.queue:
            return self.queue.popleft()
        if timeout:
            time.sleep(min(timeout, 0.01))
        return None

    def close(self) -> None:
        self.closed = True


def wait_for(predicate: Callable[[], bool], timeout: float = 10.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture()
def control_path(tmp_path: Path) -> Path:
    return tmp_path / ".rstrtr"


@pytest.fixture()
def status_lines(caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.DEBUG)

    def lines():
        return [record.getMessage() for record in caplog.records if record.name == "status"]

    return lines
