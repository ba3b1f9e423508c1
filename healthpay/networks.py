"""Supported settlement networks and stablecoins"""

from dataclasses import dataclass, field
from decimal import Decimal, localcontext

from .types import NetworkType


@dataclass(frozen=True)
class TokenConfig:
    symbol: str
    address: str
    decimals: int
    # EIP-712 domain of the token's own transferWithAuthorization
    eip712_name: str = ""
    eip712_version: str = "2"

    def to_base_units(self, amount: Decimal) -> int:
        """Convert a decimal token amount to integer base units (e.g. 2.99 USDC -> 2990000)."""
        scaled = _exact_scaleb(Decimal(amount), self.decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"{amount} has more than {self.decimals} decimal places")
        return int(scaled)

    def from_base_units(self, value: int | str) -> Decimal:
        return _exact_scaleb(Decimal(int(value)), -self.decimals)


def _exact_scaleb(value: Decimal, places: int) -> Decimal:
    # scaleb rounds to the context precision (28 digits by default)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 1)
        return value.scaleb(places)


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    rpc_url: str
    tokens: dict[str, TokenConfig] = field(default_factory=dict)
    # Networks settling through the B402 relayer sign against the relayer's domain
    relayer: str | None = None

    def token(self, symbol: str) -> TokenConfig:
        token = self.tokens.get(symbol.upper())
        if token is None:
            raise ValueError(f"Token {symbol} not supported on {self.name}")
        return token

    def supported_tokens(self) -> list[str]:
        return list(self.tokens.keys())


NETWORKS: dict[str, NetworkConfig] = {
    "base": NetworkConfig(
        name="base",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        tokens={
            "USDC": TokenConfig("USDC", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6, "USD Coin", "2"),
        },
    ),
    "base-sepolia": NetworkConfig(
        name="base-sepolia",
        chain_id=84532,
        rpc_url="https://sepolia.base.org",
        tokens={
            "USDC": TokenConfig("USDC", "0x036CbD53842c5426634e7929541eC2318f3dCF7e", 6, "USDC", "2"),
        },
    ),
    "bsc": NetworkConfig(
        name="bsc",
        chain_id=56,
        rpc_url="https://bsc-dataseed1.binance.org",
        tokens={
            "USD1": TokenConfig("USD1", "0x8d0d000ee44948fc98c9b98a4fa4921476f08b0d", 18),
            "USDT": TokenConfig("USDT", "0x55d398326f99059fF775485246999027B3197955", 18),
            "USDC": TokenConfig("USDC", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18),
        },
        relayer="0xE1C2830d5DDd6B49E9c46EbE03a98Cb44CD8eA5a",
    ),
    "bsc-testnet": NetworkConfig(
        name="bsc-testnet",
        chain_id=97,
        rpc_url="https://data-seed-prebsc-1-s1.binance.org:8545",
        tokens={
            "USDT": TokenConfig("USDT", "0x337610d27c682E347C9cD60BD4b3b107C9d34dDd", 18),
        },
        relayer="0x62150F2c3A29fDA8bCf22c0F22Eb17270FCBb78A",
    ),
}


def get_network(name: NetworkType | str) -> NetworkConfig:
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(f"Unknown network {name!r}; expected one of {sorted(NETWORKS)}") from None
