"""Signer context supplied by the wallet-connection flow"""

import os
from typing import Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from .errors import SignerRefusedError


@runtime_checkable
class SignerContext(Protocol):
    address: str

    def sign_typed_data(self, domain: dict, types: dict, message: dict) -> str:
        """Sign EIP-712 typed data, returning a 0x-prefixed signature."""
        ...

    def send_transaction(self, transaction: dict) -> str:
        """Sign and broadcast a transaction, returning its hash."""
        ...


class LocalAccountSigner:
    """Signs with a locally held private key. Sending needs a Web3 connection."""

    def __init__(self, private_key: str, w3: Web3 | None = None):
        self._account = Account.from_key(private_key)
        self.w3 = w3

    @classmethod
    def from_env(cls, w3: Web3 | None = None) -> "LocalAccountSigner":
        """Build a signer from the PRIVATE_KEY environment variable."""
        private_key = os.environ.get("PRIVATE_KEY")
        if not private_key:
            raise ValueError("PRIVATE_KEY environment variable not set")
        return cls(private_key, w3=w3)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_typed_data(self, domain: dict, types: dict, message: dict) -> str:
        encoded = encode_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message,
        )
        signed = self._account.sign_message(encoded)
        return Web3.to_hex(signed.signature)

    def send_transaction(self, transaction: dict) -> str:
        if self.w3 is None:
            raise SignerRefusedError("Signer has no RPC connection to send transactions")

        tx = dict(transaction)
        tx.setdefault("from", self.address)
        if tx.get("to"):
            tx["to"] = Web3.to_checksum_address(tx["to"])
        if "nonce" not in tx:
            tx["nonce"] = self.w3.eth.get_transaction_count(self.address)
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = self.w3.eth.gas_price

        if Web3.to_checksum_address(tx["from"]) != self.address:
            raise SignerRefusedError(f"Refusing to sign for {tx['from']}; signer is {self.address}")

        # Sign and send
        signed = self._account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)
