"""Request validation run before any network access"""

import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation

from eth_utils import is_hex_address

from .errors import InvalidRequest
from .types import PaymentRequest

FIXED_POINT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
SCALAR_TYPES = (str, int, float, bool, Decimal, type(None))


def parse_amount(value) -> Decimal:
    """
    Parse a fixed-point amount.

    Accepts strings like "2.99", ints and finite Decimals. Floats, booleans and
    exponent notation are rejected since they don't round-trip exactly.

    Raises:
        ValueError: if the value isn't a fixed-point decimal
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"amount must be a decimal string, got {type(value).__name__}")

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError("amount must be finite")
        return value

    if isinstance(value, str):
        text = value.strip()
        if not FIXED_POINT.match(text):
            raise ValueError(f"amount {value!r} is not a fixed-point decimal")
        try:
            return Decimal(text)
        except InvalidOperation:
            raise ValueError(f"amount {value!r} is not a fixed-point decimal") from None

    raise ValueError(f"amount must be a decimal string, got {type(value).__name__}")


def decimal_places(amount: Decimal) -> int:
    # Counted from the tuple since normalize() rounds to context precision
    _, digits, exponent = amount.as_tuple()
    if not any(digits):
        return 0
    trailing_zeros = len(digits) - len("".join(map(str, digits)).rstrip("0"))
    return max(0, -(exponent + trailing_zeros))


def is_valid_recipient(recipient) -> bool:
    return isinstance(recipient, str) and recipient.startswith("0x") and is_hex_address(recipient)


def validate(request: PaymentRequest, decimals: int = 6) -> InvalidRequest | None:
    """
    Check a payment request is well-formed.

    Args:
        request: The request to check
        decimals: Fractional digits supported by the payment token (USDC: 6)

    Returns:
        None when valid, otherwise InvalidRequest naming the offending field

    Example:
        problem = validate(PaymentRequest("0", "0x...", "Unlock insights"))
        if problem:
            print(problem)  # amount: amount must be greater than zero
    """
    try:
        amount = parse_amount(request.amount)
    except ValueError as e:
        return InvalidRequest("amount", str(e))

    if amount <= 0:
        return InvalidRequest("amount", "amount must be greater than zero")

    if decimal_places(amount) > decimals:
        return InvalidRequest("amount", f"amount has more than {decimals} decimal places")

    if not is_valid_recipient(request.recipient):
        return InvalidRequest("recipient", f"invalid recipient address {request.recipient!r}")

    if not isinstance(request.description, str) or not request.description.strip():
        return InvalidRequest("description", "payment description is required")

    if not isinstance(request.metadata, Mapping):
        return InvalidRequest("metadata", "metadata must be a mapping")

    for key, value in request.metadata.items():
        if not isinstance(key, str):
            return InvalidRequest("metadata", f"metadata key {key!r} is not a string")
        if not isinstance(value, SCALAR_TYPES):
            return InvalidRequest("metadata", f"metadata value for {key!r} is not a scalar")

    return None
