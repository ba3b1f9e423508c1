import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from typing import Callable

from .chain import ChainClient
from .config import Settings, get_settings
from .errors import InvalidRequest, PaymentError
from .log import configure_logging
from .poller import ConfirmationPoller, PollState, StatusSource
from .retry import RetryCoordinator, RetryPolicy
from .settlement import HttpSettlementClient
from .signer import LocalAccountSigner, SignerContext
from .submitters import DirectSubmitter, GatewaySubmitter, Submitter
from .timing import Clock, SystemClock
from .types import (
    ConfirmationStatus,
    FailureKind,
    PaymentFailure,
    PaymentOutcome,
    PaymentProgress,
    PaymentRequest,
    PaymentStage,
    PaymentSuccess,
)
from .validation import validate

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PaymentProgress], None]


class PaymentTask:
    """Handle on a payment running in the background."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """
        Stop submitting/polling at the next wait. Never raises.

        A transaction already handed to the settlement service may still settle.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> PaymentOutcome:
        return self._future.result(timeout)

    def add_done_callback(self, fn: Callable[[PaymentOutcome], None]) -> None:
        self._future.add_done_callback(lambda f: fn(f.result()))


class _ProgressReporter:
    """Forwards progress to the caller's callback; a failing callback never breaks the payment."""

    def __init__(self, callback: ProgressCallback | None):
        self.callback = callback
        self.terminal_sent = False

    def emit(self, progress: PaymentProgress) -> None:
        if self.terminal_sent:
            return
        self.terminal_sent = progress.terminal
        if self.callback is None:
            return
        try:
            self.callback(progress)
        except Exception:
            logger.exception("Progress callback raised on %s", progress.stage.value)


class PaymentEngine:
    """
    Validates, submits (with retries) and confirms stablecoin payments.

    Every collaborator is injectable so each can be stubbed on its own.
    """

    def __init__(
        self,
        submitter: Submitter,
        status_source: StatusSource,
        balance_source=None,
        *,
        retry_policy: RetryPolicy | None = None,
        poll_interval: float = 2.0,
        confirmation_timeout: float = 60.0,
        min_confirmations: int = 1,
        decimals: int = 6,
        clock: Clock | None = None,
        max_workers: int = 4,
        debug: bool = False,
    ):
        self.clock = clock or SystemClock()
        self.decimals = decimals
        self.balance_source = balance_source if balance_source is not None else status_source
        self.retry = RetryCoordinator(submitter, retry_policy, self.clock)
        self.poller = ConfirmationPoller(
            status_source,
            interval=poll_interval,
            timeout=confirmation_timeout,
            min_confirmations=min_confirmations,
            clock=self.clock,
        )
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
        self._closeables: list = []
        self.chain: ChainClient | None = None

        if debug:
            configure_logging(logging.DEBUG)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, clock: Clock | None = None) -> "PaymentEngine":
        """Wire the configured strategy, settlement client and chain client."""
        settings = settings or get_settings()
        configure_logging(logging.DEBUG if settings.debug else settings.log_level)

        network = settings.network_config
        token = settings.token_config
        client = HttpSettlementClient(
            settings.settlement_url,
            chain_id=network.chain_id,
            token=token,
            timeout=settings.request_timeout,
        )
        chain = ChainClient.from_rpc_url(
            settings.resolved_rpc_url, token, network.chain_id, timeout=settings.request_timeout
        )

        if settings.strategy == "direct":
            submitter = DirectSubmitter(chain)
        else:
            submitter = GatewaySubmitter(
                client,
                network,
                token,
                timeout_seconds=settings.payment_timeout_seconds,
                chain=chain,
                auto_approve=settings.auto_approve,
            )

        source = chain if settings.confirmation_source == "chain" else client
        engine = cls(
            submitter,
            source,
            retry_policy=RetryPolicy(settings.max_attempts, settings.retry_base_delay),
            poll_interval=settings.poll_interval,
            confirmation_timeout=settings.confirmation_timeout,
            min_confirmations=settings.min_confirmations,
            decimals=token.decimals,
            clock=clock,
            max_workers=settings.max_workers,
        )
        engine.chain = chain
        engine._closeables.append(client)
        return engine

    def validate(self, request: PaymentRequest) -> InvalidRequest | None:
        return validate(request, self.decimals)

    def pay(
        self,
        request: PaymentRequest,
        signer: SignerContext,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PaymentOutcome:
        """
        Run one payment to its terminal outcome. Blocks the calling thread.

        Args:
            request: What to pay
            signer: Wallet identity authorizing the transfer
            on_progress: Receives submitting / awaiting_confirmation / confirmed / failed
            cancel_event: Set it to abandon the payment at the next wait

        Returns:
            PaymentSuccess or PaymentFailure; never raises for payment errors
        """
        reporter = _ProgressReporter(on_progress)
        try:
            outcome = self._pay(request, signer, reporter, cancel_event)
        except Exception as e:
            logger.exception("Payment processing failed")
            outcome = PaymentFailure(
                reason=str(e) or "Payment processing failed",
                attempts_made=0,
                kind=FailureKind.INTERNAL,
            )

        if isinstance(outcome, PaymentFailure):
            reporter.emit(PaymentProgress(
                PaymentStage.FAILED,
                outcome.reason,
                attempt=outcome.attempts_made,
                transaction_handle=outcome.transaction_handle,
            ))
        return outcome

    def _pay(self, request, signer, reporter: _ProgressReporter, cancel_event) -> PaymentOutcome:
        problem = self.validate(request)
        if problem is not None:
            logger.info("Rejected payment request: %s", problem)
            return PaymentFailure(reason=str(problem), attempts_made=0, kind=FailureKind.VALIDATION)

        if cancel_event is not None and cancel_event.is_set():
            return PaymentFailure(reason="payment cancelled", attempts_made=0, kind=FailureKind.CANCELLED)

        max_attempts = self.retry.policy.max_attempts
        submission = self.retry.submit(
            request,
            signer,
            cancel_event=cancel_event,
            on_attempt=lambda n: reporter.emit(PaymentProgress(
                PaymentStage.SUBMITTING,
                "Processing payment..." if n == 1 else f"Processing payment (attempt {n}/{max_attempts})...",
                attempt=n,
            )),
        )

        if submission.cancelled:
            return PaymentFailure(
                reason="payment cancelled", attempts_made=submission.attempts, kind=FailureKind.CANCELLED
            )
        if not submission.success:
            error = submission.error
            kind = FailureKind.TRANSIENT_EXHAUSTED if error.transient else FailureKind.PERMANENT
            return PaymentFailure(reason=error.message, attempts_made=submission.attempts, kind=kind)

        handle = submission.handle
        attempts = submission.attempts
        try:
            return self._confirm(handle, attempts, reporter, cancel_event)
        except Exception as e:
            # The transfer may still land, so keep the handle for reconciliation
            logger.exception("Error awaiting confirmation of %s", handle)
            return PaymentFailure(
                reason=str(e) or "Error awaiting confirmation",
                attempts_made=attempts,
                kind=FailureKind.INTERNAL,
                transaction_handle=handle,
            )

    def _confirm(self, handle, attempts: int, reporter: _ProgressReporter, cancel_event) -> PaymentOutcome:
        reporter.emit(PaymentProgress(
            PaymentStage.AWAITING_CONFIRMATION,
            "Awaiting confirmation...",
            attempt=attempts,
            transaction_handle=handle,
        ))

        def on_status(status: ConfirmationStatus) -> None:
            if status.confirmation_count:
                reporter.emit(PaymentProgress(
                    PaymentStage.AWAITING_CONFIRMATION,
                    f"{status.confirmation_count} confirmations...",
                    attempt=attempts,
                    confirmations=status.confirmation_count,
                    transaction_handle=handle,
                ))

        result = self.poller.wait_for_confirmation(handle, cancel_event, on_status)

        if result.state is PollState.CONFIRMED:
            logger.info("Payment %s confirmed after %d polls", handle, result.polls)
            reporter.emit(PaymentProgress(
                PaymentStage.CONFIRMED,
                "Payment confirmed",
                attempt=attempts,
                confirmations=result.status.confirmation_count,
                transaction_handle=handle,
            ))
            return PaymentSuccess(transaction_handle=handle, receipt=result.status.receipt, attempts_made=attempts)

        if result.state is PollState.FAILED:
            return PaymentFailure(
                reason="transaction failed on-chain",
                attempts_made=attempts,
                kind=FailureKind.REVERTED,
                transaction_handle=handle,
            )
        if result.state is PollState.CANCELLED:
            return PaymentFailure(
                reason="payment cancelled while awaiting confirmation",
                attempts_made=attempts,
                kind=FailureKind.CANCELLED,
                transaction_handle=handle,
            )
        return PaymentFailure(
            reason="confirmation timeout",
            attempts_made=attempts,
            kind=FailureKind.CONFIRMATION_TIMEOUT,
            transaction_handle=handle,
        )

    def start_payment(
        self,
        request: PaymentRequest,
        signer: SignerContext,
        on_progress: ProgressCallback | None = None,
    ) -> PaymentTask:
        """Run pay() on the engine's worker pool and return immediately."""
        cancel_event = threading.Event()
        future = self._get_executor().submit(self.pay, request, signer, on_progress, cancel_event)
        return PaymentTask(future, cancel_event)

    def get_balance(self, address: str) -> Decimal:
        """Advisory balance for display; 0 on any error."""
        try:
            return self.balance_source.get_balance(address)
        except PaymentError as e:
            logger.warning("Failed to get balance for %s: %s", address, e)
        except Exception:
            logger.exception("Unexpected error getting balance for %s", address)
        return Decimal("0")

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="healthpay"
                )
            return self._executor

    def close(self, wait: bool = True) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None
        for resource in self._closeables:
            resource.close()

    def __enter__(self) -> "PaymentEngine":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


# Factory function for one-line usage
def pay(
    amount: str,
    recipient: str,
    description: str,
    metadata: dict | None = None,
    settings: Settings | None = None,
    debug: bool = False,
) -> PaymentOutcome:
    """
    One-line payment using environment settings and PRIVATE_KEY.

    Usage:
        from healthpay import pay

        outcome = pay(amount="2.99", recipient="0x...", description="Unlock insights")
        if outcome.success:
            print(outcome.transaction_handle)

    Returns:
        PaymentSuccess or PaymentFailure
    """
    try:
        settings = settings or get_settings()
    except ValueError as e:
        logger.error("Invalid payment settings: %s", e)
        return PaymentFailure(reason=f"Invalid settings: {e}", attempts_made=0, kind=FailureKind.VALIDATION)
    if debug:
        settings = settings.model_copy(update={"debug": True})

    request = PaymentRequest(amount=amount, recipient=recipient, description=description, metadata=metadata or {})
    with PaymentEngine.from_settings(settings) as engine:
        try:
            signer = LocalAccountSigner.from_env(engine.chain.w3 if engine.chain else None)
        except ValueError as e:
            return PaymentFailure(reason=str(e), attempts_made=0, kind=FailureKind.VALIDATION)
        return engine.pay(request, signer)
