"""Tests for the bounded linear-backoff retry coordinator."""

import threading

from healthpay.errors import SubmissionError
from healthpay.retry import RetryCoordinator, RetryPolicy
from tests.fixtures.fakes import StubSubmitter, make_request, permanent, transient


class TestRetryPolicy:
    def test_linear_backoff(self) -> None:
        policy = RetryPolicy(max_attempts=3, base_delay=1.0)
        assert [policy.delay_before_retry(i) for i in (1, 2)] == [1.0, 2.0]


class TestRetryCoordinator:
    def test_first_attempt_succeeds(self, clock, signer) -> None:
        submitter = StubSubmitter(["tx-1"])
        result = RetryCoordinator(submitter, clock=clock).submit(make_request(), signer)

        assert result.success
        assert result.handle == "tx-1"
        assert result.attempts == 1
        assert clock.sleeps == []

    def test_transient_twice_then_success(self, clock, signer) -> None:
        submitter = StubSubmitter([transient(), transient(), "tx-3"])
        result = RetryCoordinator(submitter, clock=clock).submit(make_request(), signer)

        assert result.handle == "tx-3"
        assert result.attempts == 3
        assert clock.sleeps == [1.0, 2.0]

    def test_always_transient_exhausts_attempts(self, clock, signer) -> None:
        submitter = StubSubmitter([transient("timeout")])
        result = RetryCoordinator(submitter, clock=clock).submit(make_request(), signer)

        assert not result.success
        assert result.attempts == 3
        assert len(submitter.calls) == 3
        assert result.error.message == "timeout"
        assert clock.total_slept >= 3.0
        # No wait after the final attempt
        assert clock.sleeps == [1.0, 2.0]

    def test_permanent_error_not_retried(self, clock, signer) -> None:
        submitter = StubSubmitter([permanent("insufficient funds"), "tx-2"])
        result = RetryCoordinator(submitter, clock=clock).submit(make_request(), signer)

        assert result.attempts == 1
        assert len(submitter.calls) == 1
        assert not result.error.transient
        assert clock.sleeps == []

    def test_transient_then_permanent_stops(self, clock, signer) -> None:
        submitter = StubSubmitter([transient(), permanent("recipient rejected")])
        result = RetryCoordinator(submitter, clock=clock).submit(make_request(), signer)

        assert result.attempts == 2
        assert result.error.message == "recipient rejected"

    def test_unclassified_exception_is_permanent(self, clock, signer) -> None:
        submitter = StubSubmitter([RuntimeError("boom"), "tx-2"])
        result = RetryCoordinator(submitter, clock=clock).submit(make_request(), signer)

        assert result.attempts == 1
        assert isinstance(result.error, SubmissionError)
        assert not result.error.transient

    def test_custom_policy(self, clock, signer) -> None:
        submitter = StubSubmitter([transient()])
        policy = RetryPolicy(max_attempts=5, base_delay=0.5)
        result = RetryCoordinator(submitter, policy, clock).submit(make_request(), signer)

        assert result.attempts == 5
        assert clock.sleeps == [0.5, 1.0, 1.5, 2.0]

    def test_cancel_during_backoff(self, clock, signer) -> None:
        cancel = threading.Event()
        submitter = StubSubmitter([transient()])
        attempts = []

        def on_attempt(n: int) -> None:
            attempts.append(n)
            cancel.set()

        result = RetryCoordinator(submitter, clock=clock).submit(
            make_request(), signer, cancel_event=cancel, on_attempt=on_attempt
        )

        assert result.cancelled
        assert result.attempts == 1
        assert attempts == [1]
