"""Submission strategies. Both raise SubmissionError tagged transient or permanent."""

import logging
from typing import Protocol

import requests
from web3.exceptions import Web3Exception

from .approval import ensure_allowance
from .authorization import build_payment_payload, build_requirements
from .chain import ChainClient, classify_chain_exception
from .errors import SignerRefusedError, SubmissionError
from .networks import NetworkConfig, TokenConfig
from .settlement import HttpSettlementClient
from .signer import SignerContext
from .types import PaymentRequest, TransactionHandle
from .validation import parse_amount

logger = logging.getLogger(__name__)

CHAIN_ERRORS = (requests.RequestException, Web3Exception, ValueError)


class Submitter(Protocol):
    def submit(self, request: PaymentRequest, signer: SignerContext) -> TransactionHandle: ...


class GatewaySubmitter:
    """Signs a transfer authorization and hands it to the facilitation service."""

    def __init__(
        self,
        client: HttpSettlementClient,
        network: NetworkConfig,
        token: TokenConfig,
        timeout_seconds: int = 3600,
        chain: ChainClient | None = None,
        auto_approve: bool = True,
    ):
        self.client = client
        self.network = network
        self.token = token
        self.timeout_seconds = timeout_seconds
        self.chain = chain
        self.auto_approve = auto_approve

    def submit(self, request: PaymentRequest, signer: SignerContext) -> TransactionHandle:
        amount_units = self.token.to_base_units(parse_amount(request.amount))

        # Relayer networks pull funds through an allowance
        if self.network.relayer and self.chain is not None:
            try:
                ensure_allowance(self.chain, signer, self.network.relayer, amount_units, self.auto_approve)
            except CHAIN_ERRORS as e:
                raise SubmissionError(f"Allowance check failed: {e}", classify_chain_exception(e)) from e

        requirements = build_requirements(request, self.network, self.token, amount_units, self.timeout_seconds)
        try:
            payload = build_payment_payload(requirements, signer, self.network, self.token)
        except SignerRefusedError as e:
            raise SubmissionError.permanent_error(f"Signer refused: {e}") from e

        logger.debug("Requirements: %s", requirements)
        return self.client.submit_transfer(payload, requirements)


class DirectSubmitter:
    """Builds an ERC-20 transfer and has the signer broadcast it."""

    def __init__(self, chain: ChainClient):
        self.chain = chain

    def submit(self, request: PaymentRequest, signer: SignerContext) -> TransactionHandle:
        amount_units = self.chain.token.to_base_units(parse_amount(request.amount))
        try:
            tx = self.chain.build_transfer(signer.address, request.recipient, amount_units)
            return signer.send_transaction(tx)
        except SignerRefusedError as e:
            raise SubmissionError.permanent_error(f"Signer refused: {e}") from e
        except CHAIN_ERRORS as e:
            raise SubmissionError(f"Transfer failed: {e}", classify_chain_exception(e)) from e
