"""JSON-RPC access to the settlement network through web3"""

from decimal import Decimal

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound, Web3Exception

from .errors import BalanceQueryError, ErrorKind, StatusQueryError, classify_request_exception
from .networks import TokenConfig
from .types import ConfirmationStatus, TransactionHandle

# Minimal ERC-20 ABI
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
]

TRANSFER_GAS_LIMIT = 100000

TRANSIENT_RPC_MESSAGES = (
    "nonce too low",
    "replacement transaction underpriced",
    "rate limit",
    "timeout",
    "header not found",
)


def classify_chain_exception(exc: Exception) -> ErrorKind:
    """Decide whether a failed RPC interaction is worth repeating."""
    if isinstance(exc, ContractLogicError):
        return ErrorKind.PERMANENT
    if isinstance(exc, TimeExhausted):
        return ErrorKind.TRANSIENT
    if isinstance(exc, requests.RequestException):
        return classify_request_exception(exc)

    message = str(exc).lower()
    if "insufficient funds" in message:
        return ErrorKind.PERMANENT
    if any(fragment in message for fragment in TRANSIENT_RPC_MESSAGES):
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


class ChainClient:
    def __init__(self, w3: Web3, token: TokenConfig, chain_id: int):
        self.w3 = w3
        self.token = token
        self.chain_id = chain_id
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(token.address),
            abi=ERC20_ABI
        )

    @classmethod
    def from_rpc_url(cls, rpc_url: str, token: TokenConfig, chain_id: int, timeout: float = 30.0) -> "ChainClient":
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        return cls(w3, token, chain_id)

    def _base_transaction(self, sender: str) -> dict:
        sender = Web3.to_checksum_address(sender)
        return {
            "from": sender,
            "chainId": self.chain_id,
            "nonce": self.w3.eth.get_transaction_count(sender),
            "gas": TRANSFER_GAS_LIMIT,
            "gasPrice": self.w3.eth.gas_price,
        }

    def build_transfer(self, sender: str, recipient: str, amount: int) -> dict:
        """Unsigned ERC-20 transfer(recipient, amount) from `sender`."""
        return self.contract.functions.transfer(
            Web3.to_checksum_address(recipient),
            amount
        ).build_transaction(self._base_transaction(sender))

    def build_approval(self, owner: str, spender: str, amount: int) -> dict:
        return self.contract.functions.approve(
            Web3.to_checksum_address(spender),
            amount
        ).build_transaction(self._base_transaction(owner))

    def allowance(self, owner: str, spender: str) -> int:
        return self.contract.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender)
        ).call()

    def wait_for_receipt(self, handle: TransactionHandle, timeout: float = 120) -> dict:
        return dict(self.w3.eth.wait_for_transaction_receipt(handle, timeout=timeout))

    def get_transaction_status(self, handle: TransactionHandle) -> ConfirmationStatus:
        try:
            receipt = self.w3.eth.get_transaction_receipt(handle)
        except TransactionNotFound:
            # Not mined yet
            return ConfirmationStatus()
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise StatusQueryError(f"Failed to fetch receipt for {handle}: {e}") from e

        if receipt.get("status") == 0:
            return ConfirmationStatus(failed=True, receipt=dict(receipt))

        try:
            head = self.w3.eth.block_number
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise StatusQueryError(f"Failed to fetch block number: {e}") from e

        confirmations = max(0, head - receipt["blockNumber"] + 1)
        confirmed = confirmations > 0
        return ConfirmationStatus(
            confirmed=confirmed,
            confirmation_count=confirmations,
            receipt=dict(receipt) if confirmed else None,
        )

    def get_balance(self, address: str) -> Decimal:
        try:
            raw = self.contract.functions.balanceOf(Web3.to_checksum_address(address)).call()
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise BalanceQueryError(f"Failed to get {self.token.symbol} balance: {e}") from e
        return self.token.from_base_units(raw)
