"""HTTP client for the settlement / payment-facilitation service"""

import logging
from decimal import Decimal, InvalidOperation

import requests

from .errors import (
    BalanceQueryError,
    ErrorKind,
    StatusQueryError,
    SubmissionError,
    classify_http_status,
    classify_request_exception,
)
from .networks import TokenConfig
from .types import ConfirmationStatus, TransactionHandle

logger = logging.getLogger(__name__)


class HttpSettlementClient:
    """
    Settlement service transport.

    One instance is shared by every in-flight payment; the underlying
    requests.Session pools connections and holds no per-payment state.
    """

    def __init__(
        self,
        base_url: str,
        chain_id: int,
        token: TokenConfig,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"X-Chain-ID": str(chain_id)})

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _post(self, path: str, body: dict, step: str) -> dict:
        try:
            response = self.session.post(self._url(path), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise SubmissionError(f"{step} request failed: {e}", classify_request_exception(e)) from e

        if response.status_code != 200:
            raise SubmissionError(
                f"{step} request failed: HTTP {response.status_code} - {response.text}",
                classify_http_status(response.status_code),
            )

        try:
            return response.json()
        except ValueError as e:
            raise SubmissionError(f"{step} returned invalid JSON", ErrorKind.TRANSIENT) from e

    def submit_transfer(self, payment_payload: dict, requirements: dict) -> TransactionHandle:
        """
        Verify then settle a signed transfer.

        Args:
            payment_payload: Signed authorization (see authorization.build_payment_payload)
            requirements: Payment requirements the payload was signed against

        Returns:
            Transaction hash reported by the settlement service

        Raises:
            SubmissionError: classified transient or permanent
        """
        body = {"paymentPayload": payment_payload, "paymentRequirements": requirements}

        verify_data = self._post("/verify", body, "Verify")
        logger.debug("Verify response: %s", verify_data)

        if not verify_data.get("isValid"):
            reason = verify_data.get("invalidReason", "Invalid signature")
            raise SubmissionError.permanent_error(f"{reason} | Response: {verify_data}")

        settle_data = self._post("/settle", body, "Settle")
        logger.debug("Settle response: %s", settle_data)

        if not settle_data.get("success", False):
            reason = settle_data.get("errorReason", "Unknown error")
            raise SubmissionError.permanent_error(f"{reason} | Response: {settle_data}")

        transaction = settle_data.get("transaction")
        if not transaction:
            raise SubmissionError.permanent_error(f"Settlement returned no transaction | Response: {settle_data}")
        return transaction

    def get_transaction_status(self, handle: TransactionHandle) -> ConfirmationStatus:
        try:
            response = self.session.get(self._url(f"/payments/status/{handle}"), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            confirmations = max(0, int(data.get("confirmations") or 0))
        except (requests.RequestException, ValueError, TypeError, AttributeError) as e:
            raise StatusQueryError(f"Failed to check payment status for {handle}: {e}") from e

        confirmed = bool(data.get("confirmed", False))
        status = str(data.get("status", "")).lower()
        return ConfirmationStatus(
            confirmed=confirmed,
            confirmation_count=confirmations,
            # Some deployments omit the receipt; keep the status body so success always has one
            receipt=(data.get("receipt") or data) if confirmed else None,
            failed=bool(data.get("failed", False)) or status in ("failed", "reverted"),
        )

    def get_balance(self, address: str) -> Decimal:
        """Spendable token balance of `address`. Raises BalanceQueryError."""
        try:
            response = self.session.get(
                self._url(f"/balances/{self.token.symbol.lower()}/{address}"),
                timeout=self.timeout,
            )
            response.raise_for_status()
            raw = response.json().get("balance") or "0"
            return self.token.from_base_units(raw)
        except (requests.RequestException, ValueError, TypeError, AttributeError, InvalidOperation) as e:
            raise BalanceQueryError(f"Failed to get {self.token.symbol} balance: {e}") from e

    def close(self) -> None:
        self.session.close()
