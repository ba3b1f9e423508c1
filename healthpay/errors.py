"""Error taxonomy for payment submission and confirmation"""

from dataclasses import dataclass
from enum import Enum

import requests


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class InvalidRequest:
    """Returned by the validator; never raised."""

    field: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


class PaymentError(Exception):
    pass


class SubmissionError(PaymentError):
    """Submission failed. Only TRANSIENT errors are worth retrying."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.PERMANENT):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    @classmethod
    def transient_error(cls, message: str) -> "SubmissionError":
        return cls(message, ErrorKind.TRANSIENT)

    @classmethod
    def permanent_error(cls, message: str) -> "SubmissionError":
        return cls(message, ErrorKind.PERMANENT)

    def __repr__(self) -> str:
        return f"SubmissionError({self.message!r}, kind={self.kind.value})"


class SignerRefusedError(PaymentError):
    """The wallet declined to sign or send."""


class StatusQueryError(PaymentError):
    """A single status poll failed; the poll loop carries on."""


class BalanceQueryError(PaymentError):
    pass


class PollingInProgressError(PaymentError):
    def __init__(self, handle: str):
        super().__init__(f"Transaction {handle} is already being polled")
        self.handle = handle


TRANSIENT_HTTP_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


def classify_http_status(status_code: int) -> ErrorKind:
    if status_code in TRANSIENT_HTTP_STATUSES:
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def classify_request_exception(exc: requests.RequestException) -> ErrorKind:
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return classify_http_status(exc.response.status_code)
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT
