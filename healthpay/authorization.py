import secrets
import time

from eth_utils import to_checksum_address

from .networks import NetworkConfig, TokenConfig
from .signer import SignerContext
from .types import PaymentRequest

TRANSFER_WITH_AUTHORIZATION_TYPES = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ]
}


def build_requirements(
    request: PaymentRequest,
    network: NetworkConfig,
    token: TokenConfig,
    amount_units: int,
    timeout_seconds: int = 3600,
) -> dict:
    requirements = {
        "scheme": "exact",
        "asset": token.address,
        "payTo": request.recipient,
        "maxAmountRequired": str(amount_units),
        "maxTimeoutSeconds": timeout_seconds,
        "network": network.name,
        "description": request.description,
        "extra": {"metadata": dict(request.metadata)},
    }
    if network.relayer:
        requirements["relayerContract"] = network.relayer
    return requirements


def signing_domain(network: NetworkConfig, token: TokenConfig) -> dict:
    if network.relayer:
        return {
            "name": "B402",
            "version": "1",
            "chainId": network.chain_id,
            "verifyingContract": to_checksum_address(network.relayer),
        }
    return {
        "name": token.eip712_name,
        "version": token.eip712_version,
        "chainId": network.chain_id,
        "verifyingContract": to_checksum_address(token.address),
    }


def build_payment_payload(
    requirements: dict,
    signer: SignerContext,
    network: NetworkConfig,
    token: TokenConfig,
) -> dict:
    """Sign payment authorization with EIP-712"""

    now = int(time.time())
    valid_before = now + requirements["maxTimeoutSeconds"]
    nonce = "0x" + secrets.token_hex(32)

    authorization = {
        "from": to_checksum_address(signer.address),
        "to": to_checksum_address(requirements["payTo"]),
        "value": int(requirements["maxAmountRequired"]),
        "validAfter": 0,
        "validBefore": valid_before,
        "nonce": bytes.fromhex(nonce[2:]),
    }

    signature = signer.sign_typed_data(
        signing_domain(network, token),
        TRANSFER_WITH_AUTHORIZATION_TYPES,
        authorization,
    )

    return {
        "x402Version": 1,
        "scheme": "exact",
        "network": requirements["network"],
        "token": requirements["asset"],
        "payload": {
            "authorization": {
                "from": authorization["from"],
                "to": authorization["to"],
                "value": str(authorization["value"]),
                "validAfter": str(authorization["validAfter"]),
                "validBefore": str(authorization["validBefore"]),
                "nonce": nonce,
            },
            "signature": signature,
        },
    }
