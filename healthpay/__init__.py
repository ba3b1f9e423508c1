"""healthpay - stablecoin payment and confirmation engine for premium feature unlocks"""

from .engine import PaymentEngine, PaymentTask, pay
from .errors import InvalidRequest, SubmissionError, ErrorKind
from .features import PREMIUM_FEATURES, build_unlock_request
from .signer import LocalAccountSigner, SignerContext
from .types import PaymentRequest, PaymentSuccess, PaymentFailure, PaymentProgress, PaymentStage, FailureKind
from .validation import validate

__version__ = "1.0.0"
__all__ = [
    "PaymentEngine",
    "PaymentTask",
    "pay",
    "validate",
    "PaymentRequest",
    "PaymentSuccess",
    "PaymentFailure",
    "PaymentProgress",
    "PaymentStage",
    "FailureKind",
    "InvalidRequest",
    "SubmissionError",
    "ErrorKind",
    "LocalAccountSigner",
    "SignerContext",
    "PREMIUM_FEATURES",
    "build_unlock_request",
]
