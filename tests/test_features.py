"""Tests for the premium feature catalog."""

import pytest

from healthpay.features import PREMIUM_FEATURES, build_unlock_request
from healthpay.validation import validate
from tests.fixtures.fakes import RECIPIENT


class TestBuildUnlockRequest:
    def test_ai_insights_request(self) -> None:
        request = build_unlock_request("ai_insights", RECIPIENT, "demo-user", timestamp_ms=1700000000000)

        assert request.amount == "2.99"
        assert request.description == "HealthSync Premium: AI Health Insights"
        assert dict(request.metadata) == {
            "featureId": "ai_insights",
            "userId": "demo-user",
            "timestamp": 1700000000000,
        }

    @pytest.mark.parametrize("feature_id", sorted(PREMIUM_FEATURES))
    def test_every_feature_builds_a_valid_request(self, feature_id) -> None:
        assert validate(build_unlock_request(feature_id, RECIPIENT, "u-1")) is None

    def test_unknown_feature(self) -> None:
        with pytest.raises(ValueError, match="Unknown premium feature"):
            build_unlock_request("teleportation", RECIPIENT, "u-1")
