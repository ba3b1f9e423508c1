"""Confirmation polling for a submitted transaction"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from .errors import PollingInProgressError, StatusQueryError
from .timing import Clock, SystemClock
from .types import ConfirmationStatus, TransactionHandle

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    def get_transaction_status(self, handle: TransactionHandle) -> ConfirmationStatus: ...


class PollState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollResult:
    state: PollState
    status: ConfirmationStatus | None
    polls: int
    elapsed: float


class ConfirmationPoller:
    """
    Polls a transaction until it is confirmed, fails, or the deadline passes.

    The first query goes out immediately, then one every `interval` seconds.
    Failed queries are logged and do not end the session; only the wall-clock
    deadline does. Cancelling stops the loop quietly. The settlement service
    is never told, since a submitted transaction cannot be withdrawn.
    """

    def __init__(
        self,
        source: StatusSource,
        interval: float = 2.0,
        timeout: float = 60.0,
        min_confirmations: int = 1,
        clock: Clock | None = None,
    ):
        self.source = source
        self.interval = interval
        self.timeout = timeout
        self.min_confirmations = min_confirmations
        self.clock = clock or SystemClock()
        self._active: set[TransactionHandle] = set()
        self._lock = threading.Lock()

    def is_polling(self, handle: TransactionHandle) -> bool:
        with self._lock:
            return handle in self._active

    def wait_for_confirmation(
        self,
        handle: TransactionHandle,
        cancel_event: threading.Event | None = None,
        on_status: Callable[[ConfirmationStatus], None] | None = None,
    ) -> PollResult:
        with self._lock:
            if handle in self._active:
                raise PollingInProgressError(handle)
            self._active.add(handle)
        try:
            return self._poll(handle, cancel_event, on_status)
        finally:
            with self._lock:
                self._active.discard(handle)

    def _poll(self, handle, cancel_event, on_status) -> PollResult:
        started = self.clock.now()
        polls = 0
        status = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return PollResult(PollState.CANCELLED, status, polls, self.clock.now() - started)

            try:
                snapshot = self.source.get_transaction_status(handle)
            except StatusQueryError as e:
                logger.warning("Error checking transaction status for %s: %s", handle, e)
            except Exception:
                logger.warning("Unexpected error checking transaction status for %s", handle, exc_info=True)
            else:
                polls += 1
                status = snapshot
                if on_status:
                    on_status(snapshot)
                if snapshot.failed:
                    return PollResult(PollState.FAILED, snapshot, polls, self.clock.now() - started)
                if snapshot.confirmed and snapshot.confirmation_count >= self.min_confirmations:
                    return PollResult(PollState.CONFIRMED, snapshot, polls, self.clock.now() - started)

            elapsed = self.clock.now() - started
            if elapsed >= self.timeout:
                logger.warning("Transaction %s not confirmed after %.0fs", handle, elapsed)
                return PollResult(PollState.TIMED_OUT, status, polls, elapsed)

            if self.clock.sleep(min(self.interval, self.timeout - elapsed), cancel_event):
                return PollResult(PollState.CANCELLED, status, polls, self.clock.now() - started)
