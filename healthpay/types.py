from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping, Union

TransactionHandle = str
NetworkType = Literal["base", "base-sepolia", "bsc", "bsc-testnet"]
StrategyType = Literal["gateway", "direct"]


@dataclass(frozen=True)
class PaymentRequest:
    amount: Union[str, int, Decimal]
    recipient: str
    description: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the caller's mapping so the request stays immutable
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))


@dataclass(frozen=True)
class ConfirmationStatus:
    confirmed: bool = False
    confirmation_count: int = 0
    receipt: Any = None
    failed: bool = False


class FailureKind(str, Enum):
    VALIDATION = "validation"
    PERMANENT = "permanent"
    TRANSIENT_EXHAUSTED = "transient_exhausted"
    REVERTED = "reverted"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


# Failures after which the transaction may still settle on-chain
UNKNOWN_RESULT_KINDS = frozenset({FailureKind.CONFIRMATION_TIMEOUT, FailureKind.CANCELLED})


@dataclass(frozen=True)
class PaymentSuccess:
    transaction_handle: TransactionHandle
    receipt: Any
    attempts_made: int = 1

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class PaymentFailure:
    reason: str
    attempts_made: int
    kind: FailureKind = FailureKind.PERMANENT
    transaction_handle: TransactionHandle | None = None

    @property
    def success(self) -> bool:
        return False

    @property
    def definitive(self) -> bool:
        """False when the transfer may still land; reconcile later instead of assuming no charge."""
        if self.kind in (FailureKind.CANCELLED, FailureKind.INTERNAL):
            return self.transaction_handle is None
        return self.kind not in UNKNOWN_RESULT_KINDS


PaymentOutcome = Union[PaymentSuccess, PaymentFailure]


class PaymentStage(str, Enum):
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentProgress:
    stage: PaymentStage
    message: str
    attempt: int = 0
    confirmations: int = 0
    transaction_handle: TransactionHandle | None = None

    @property
    def terminal(self) -> bool:
        return self.stage in (PaymentStage.CONFIRMED, PaymentStage.FAILED)
