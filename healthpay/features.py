"""Premium features unlocked by a one-time payment"""

import time
from dataclasses import dataclass

from .types import PaymentRequest


@dataclass(frozen=True)
class PremiumFeature:
    id: str
    name: str
    description: str
    price: str


PREMIUM_FEATURES: dict[str, PremiumFeature] = {
    "ai_insights": PremiumFeature(
        id="ai_insights",
        name="AI Health Insights",
        description="Get personalized health insights powered by AI",
        price="2.99",
    ),
    "advanced_analytics": PremiumFeature(
        id="advanced_analytics",
        name="Advanced Analytics",
        description="Detailed health trends and predictive analytics",
        price="4.99",
    ),
    "telemedicine": PremiumFeature(
        id="telemedicine",
        name="Telemedicine Integration",
        description="Connect with healthcare providers directly",
        price="9.99",
    ),
    "premium_storage": PremiumFeature(
        id="premium_storage",
        name="Premium Storage",
        description="Unlimited health record storage",
        price="1.99",
    ),
}


def get_feature(feature_id: str) -> PremiumFeature:
    try:
        return PREMIUM_FEATURES[feature_id]
    except KeyError:
        raise ValueError(f"Unknown premium feature {feature_id!r}") from None


def build_unlock_request(
    feature_id: str,
    recipient: str,
    user_id: str,
    timestamp_ms: int | None = None,
) -> PaymentRequest:
    """
    Payment request that unlocks one premium feature.

    Example:
        request = build_unlock_request("ai_insights", recipient="0x...", user_id="u-1")
        outcome = engine.pay(request, signer)
    """
    feature = get_feature(feature_id)
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return PaymentRequest(
        amount=feature.price,
        recipient=recipient,
        description=f"HealthSync Premium: {feature.name}",
        metadata={
            "featureId": feature.id,
            "userId": user_id,
            "timestamp": timestamp_ms,
        },
    )
