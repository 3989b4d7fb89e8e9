"""
Fee Schedule Resolver

Resolves shipping fee, promo discount rate, platform fee and processing
fee from the configured menus and the order's fee policy.
All use Decimal for precision.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .. import config
from ..errors import UnknownShippingOption
from ..models import FeePolicy, PromoCode, ShippingOption
from .promo import UNAPPLIED, PromoState

logger = logging.getLogger(__name__)


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class FeeScheduleResolver:
    """Looks up fees and promo rates. Holds no per-order state."""

    def __init__(
        self,
        shipping_options: Iterable[ShippingOption] = config.DEFAULT_SHIPPING_OPTIONS,
        promo_codes: Iterable[PromoCode] = config.DEFAULT_PROMO_CODES,
    ):
        self.shipping_options = {option.option_id: option for option in shipping_options}
        self.promo_codes = tuple(promo_codes)

    # -------------------------------------------------------------------------
    # Shipping
    # -------------------------------------------------------------------------

    def shipping_option(self, option_id: str) -> ShippingOption:
        """Return the menu entry for `option_id`. There is no default option."""
        try:
            return self.shipping_options[option_id]
        except KeyError:
            raise UnknownShippingOption(option_id, list(self.shipping_options)) from None

    def shipping(self, option_id: str) -> Decimal:
        return self.shipping_option(option_id).fee

    # -------------------------------------------------------------------------
    # Promo codes
    # -------------------------------------------------------------------------

    def find_promo(self, code: str) -> PromoCode | None:
        """Case-insensitive lookup against the active allow-list."""
        if not code or not code.strip():
            return None
        for promo in self.promo_codes:
            if promo.active and promo.matches(code):
                return promo
        return None

    def apply_promo(self, state: PromoState, code: str) -> PromoState:
        """
        Apply `code` to `state`.

        Unknown or inactive codes leave the state unchanged; entry is
        best-effort and never blocks checkout.
        """
        promo = self.find_promo(code)
        if promo is None:
            logger.info(f"Ignoring unknown promo code: {code!r}")
            return state
        return state.apply(promo)

    def apply_promos(self, codes: Iterable[str], state: PromoState = UNAPPLIED) -> PromoState:
        for code in codes:
            state = self.apply_promo(state, code)
        return state

    # -------------------------------------------------------------------------
    # Platform / processing fees
    # -------------------------------------------------------------------------

    def platform_fee(self, policy: FeePolicy, subtotal: Decimal) -> Decimal:
        """Platform fee: flat, or a fraction of the subtotal."""
        return policy.platform_fee.amount(subtotal)

    def processing_fee(self, policy: FeePolicy, gross_amount: Decimal) -> Decimal:
        """Payment processing fee: flat, or a fraction of the gross amount."""
        return policy.processing_fee.amount(gross_amount)
