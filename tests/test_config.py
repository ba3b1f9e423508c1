"""Tests for typed settings."""

import pytest
from pydantic import ValidationError

from healthpay import pay
from healthpay.config import Settings, get_settings
from healthpay.engine import PaymentEngine
from healthpay.chain import ChainClient
from healthpay.settlement import HttpSettlementClient
from healthpay.submitters import DirectSubmitter, GatewaySubmitter
from healthpay.types import FailureKind, PaymentFailure


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.network == "base"
        assert settings.token_config.decimals == 6
        assert settings.max_attempts == 3
        assert settings.retry_base_delay == 1.0
        assert settings.poll_interval == 2.0
        assert settings.confirmation_timeout == 60.0
        assert settings.resolved_rpc_url == "https://mainnet.base.org"

    def test_token_is_normalized(self) -> None:
        assert Settings(token="usdc").token == "USDC"

    def test_unsupported_token_rejected(self) -> None:
        with pytest.raises(ValidationError, match="not supported"):
            Settings(network="base", token="USDT")

    def test_bad_url_rejected(self) -> None:
        with pytest.raises(ValidationError, match="http"):
            Settings(settlement_url="ftp://example.com")

    def test_zero_attempts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(max_attempts=0)

    def test_get_settings_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("HEALTHPAY_NETWORK", "bsc")
        monkeypatch.setenv("HEALTHPAY_TOKEN", "usdt")
        monkeypatch.setenv("HEALTHPAY_STRATEGY", "direct")
        monkeypatch.setenv("HEALTHPAY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("HEALTHPAY_AUTO_APPROVE", "false")

        settings = get_settings()

        assert settings.network == "bsc"
        assert settings.token == "USDT"
        assert settings.strategy == "direct"
        assert settings.max_attempts == 5
        assert settings.auto_approve is False
        assert settings.token_config.decimals == 18


class TestEngineFromSettings:
    def test_gateway_wiring(self) -> None:
        with PaymentEngine.from_settings(Settings()) as engine:
            assert isinstance(engine.retry.submitter, GatewaySubmitter)
            assert isinstance(engine.poller.source, HttpSettlementClient)
            assert engine.decimals == 6
            assert engine.retry.policy.max_attempts == 3

    def test_direct_wiring_with_chain_confirmations(self) -> None:
        settings = Settings(strategy="direct", confirmation_source="chain", network="bsc", token="USDT")
        with PaymentEngine.from_settings(settings) as engine:
            assert isinstance(engine.retry.submitter, DirectSubmitter)
            assert isinstance(engine.poller.source, ChainClient)
            assert engine.decimals == 18


class TestModulePay:
    RECIPIENT = "0x742d35Cc6634C0532925a3b8D4C9db96C4b4d8b6"

    @pytest.mark.parametrize(
        "name, value",
        [("HEALTHPAY_NETWORK", "solana"), ("HEALTHPAY_MAX_ATTEMPTS", "three")],
    )
    def test_malformed_env_returns_failure(self, monkeypatch, name, value) -> None:
        monkeypatch.setenv(name, value)

        outcome = pay(amount="2.99", recipient=self.RECIPIENT, description="Unlock insights")

        assert isinstance(outcome, PaymentFailure)
        assert outcome.kind is FailureKind.VALIDATION
        assert outcome.reason.startswith("Invalid settings")
        assert outcome.attempts_made == 0

    def test_missing_private_key_returns_failure(self, monkeypatch) -> None:
        monkeypatch.delenv("PRIVATE_KEY", raising=False)

        outcome = pay(amount="2.99", recipient=self.RECIPIENT, description="Unlock insights", settings=Settings())

        assert outcome.kind is FailureKind.VALIDATION
        assert "PRIVATE_KEY" in outcome.reason
