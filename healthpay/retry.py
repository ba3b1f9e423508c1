import logging
import threading
from dataclasses import dataclass
from typing import Callable

from .errors import SubmissionError
from .signer import SignerContext
from .submitters import Submitter
from .timing import Clock, SystemClock
from .types import PaymentRequest, TransactionHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_before_retry(self, retry_number: int) -> float:
        """Linear backoff: 1 * base before the first retry, 2 * base before the second..."""
        return retry_number * self.base_delay


@dataclass(frozen=True)
class SubmissionResult:
    attempts: int
    handle: TransactionHandle | None = None
    error: SubmissionError | None = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.handle is not None


class RetryCoordinator:
    def __init__(self, submitter: Submitter, policy: RetryPolicy | None = None, clock: Clock | None = None):
        self.submitter = submitter
        self.policy = policy or RetryPolicy()
        self.clock = clock or SystemClock()

    def submit(
        self,
        request: PaymentRequest,
        signer: SignerContext,
        cancel_event: threading.Event | None = None,
        on_attempt: Callable[[int], None] | None = None,
    ) -> SubmissionResult:
        """
        Submit with bounded retries on transient errors.

        Permanent errors stop immediately. Errors the submitter did not
        classify are treated as permanent so they never burn retries.
        """
        last_error = None

        for attempt in range(1, self.policy.max_attempts + 1):
            if on_attempt:
                on_attempt(attempt)

            try:
                handle = self.submitter.submit(request, signer)
            except SubmissionError as e:
                last_error = e
            except Exception as e:
                logger.exception("Unclassified submission error on attempt %d", attempt)
                return SubmissionResult(attempts=attempt, error=SubmissionError.permanent_error(str(e)))
            else:
                logger.info("Submitted %s on attempt %d", handle, attempt)
                return SubmissionResult(attempts=attempt, handle=handle)

            if not last_error.transient:
                logger.warning("Permanent submission error on attempt %d: %s", attempt, last_error)
                return SubmissionResult(attempts=attempt, error=last_error)

            if attempt == self.policy.max_attempts:
                break

            delay = self.policy.delay_before_retry(attempt)
            logger.warning(
                "Transient submission error on attempt %d/%d, retrying in %.1fs: %s",
                attempt, self.policy.max_attempts, delay, last_error,
            )
            if self.clock.sleep(delay, cancel_event):
                logger.info("Payment cancelled while waiting to retry")
                return SubmissionResult(attempts=attempt, error=last_error, cancelled=True)

        logger.error("Payment failed after %d attempts: %s", self.policy.max_attempts, last_error)
        return SubmissionResult(attempts=self.policy.max_attempts, error=last_error)
