"""
Billing Configuration

Module-level defaults for the shipping menu, promo allow-list and fee policy.
Deployments override the fee policy through environment variables.
"""

import json
import os
from decimal import Decimal

from .models import FeePolicy, FeeRule, PromoCode, ShippingOption, to_decimal

BRAND = os.environ.get("BILLING_BRAND", "Procur")

CURRENCY = os.environ.get("BILLING_CURRENCY", "USD")

DEFAULT_SHIPPING_OPTIONS = (
    ShippingOption("free", "Free Shipping", Decimal("0.00"), "5-7 business days"),
    ShippingOption("standard", "Standard Shipping", Decimal("12.50"), "3-5 business days"),
    ShippingOption("express", "Express Shipping", Decimal("25.00"), "1-2 business days"),
)

DEFAULT_PROMO_CODES = (
    PromoCode("SAVE10", Decimal("0.10"), active=True),
)

DEFAULT_PAYMENT_INSTRUCTIONS = (
    "Bank transfer to Procur Settlement Account within 14 days.",
    "Include invoice number as payment reference.",
)

DEFAULT_FOOTER_NOTE = (
    "Thank you for sourcing fresh produce through Procur. Payments help us keep "
    "farmers on the land and buyers fully supplied."
)


def _fee_rule_from_env(name: str) -> FeeRule:
    """
    Parse a fee rule from the environment.

    Accepts a bare number (flat fee) or JSON such as
    '{"type": "percent", "value": 0.05}'.
    """
    raw = os.environ.get(name)
    if not raw:
        return FeeRule()
    try:
        return FeeRule.from_dict(json.loads(raw))
    except json.JSONDecodeError:
        return FeeRule.flat(raw)


def load_fee_policy() -> FeePolicy:
    """Build the default fee policy from the environment."""
    return FeePolicy(
        platform_fee=_fee_rule_from_env("BILLING_PLATFORM_FEE"),
        processing_fee=_fee_rule_from_env("BILLING_PROCESSING_FEE"),
        tax_rate=to_decimal(os.environ.get("BILLING_TAX_RATE", "0")),
        currency=CURRENCY,
    )
