import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float: ...

    def sleep(self, seconds: float, cancel_event: threading.Event | None = None) -> bool:
        """Wait up to `seconds`. Returns True if woken by cancellation."""
        ...


class SystemClock:
    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel_event: threading.Event | None = None) -> bool:
        if cancel_event is None:
            time.sleep(seconds)
            return False
        return cancel_event.wait(seconds)
