"""Relayer allowance checks for gateway payments"""

import logging

from .chain import ChainClient, classify_chain_exception
from .errors import SubmissionError
from .signer import SignerContext

logger = logging.getLogger(__name__)

# Reasonable cap, not infinite
DEFAULT_APPROVAL_TOKENS = 10_000


def check_allowance(chain: ChainClient, owner: str, spender: str, min_amount: int = 0) -> tuple[bool, int]:
    """
    Check if token is approved for spender.

    Returns:
        (is_approved, current_allowance)
    """
    allowance = chain.allowance(owner, spender)
    return (allowance >= min_amount, allowance)


def approve(chain: ChainClient, signer: SignerContext, spender: str, amount: int | None = None) -> str:
    """
    Approve spender and wait for the approval to be mined.

    Args:
        amount: Allowance in base units (defaults to 10,000 tokens)

    Returns:
        Approval transaction hash
    """
    if amount is None:
        amount = DEFAULT_APPROVAL_TOKENS * 10**chain.token.decimals

    tx = chain.build_approval(signer.address, spender, amount)
    tx_hash = signer.send_transaction(tx)

    # Wait for confirmation
    chain.wait_for_receipt(tx_hash)
    return tx_hash


def ensure_allowance(
    chain: ChainClient,
    signer: SignerContext,
    spender: str,
    amount: int,
    auto_approve: bool = True,
) -> str | None:
    """
    Make sure `spender` may move `amount` of the signer's tokens.

    Returns:
        Approval tx hash if an approval was sent, None if already approved

    Raises:
        SubmissionError: permanent when allowance is short and auto_approve is off;
            classified like any RPC failure when the approval itself fails
    """
    is_approved, current = check_allowance(chain, signer.address, spender, min_amount=amount)
    if is_approved:
        return None

    symbol = chain.token.symbol
    have = chain.token.from_base_units(current)
    need = chain.token.from_base_units(amount)
    if not auto_approve:
        raise SubmissionError.permanent_error(
            f"Insufficient allowance. Have: {have:.4f} {symbol}, Need: {need:.4f} {symbol}"
        )

    approval_amount = max(amount, DEFAULT_APPROVAL_TOKENS * 10**chain.token.decimals)
    logger.info("Insufficient allowance (%s %s), approving %s for relayer", have, symbol, approval_amount)
    try:
        tx_hash = approve(chain, signer, spender, approval_amount)
    except Exception as approve_error:
        raise SubmissionError(
            f"Auto-approval failed: {approve_error}", classify_chain_exception(approve_error)
        ) from approve_error

    logger.info("Approved relayer allowance, tx %s", tx_hash)
    return tx_hash
