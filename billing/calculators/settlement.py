"""
Settlement Projector

Calculates the seller's net payout after platform and processing fees.
"""

import logging
from decimal import Decimal

from ..errors import NegativeSettlementError
from ..models import Settlement
from .fees import quantize_money

logger = logging.getLogger(__name__)


class SettlementProjector:
    """Derives seller net payout from a gross amount."""

    def project(self, gross_amount: Decimal, platform_fee: Decimal, processing_fee: Decimal) -> Settlement:
        """
        Calculate net payout.

        Net Payout = Gross Amount
                   - Platform Fee
                   - Payment Processing Fee

        Amounts are posted in cents before subtracting, so
        net + platform + processing == gross exactly.
        Fees are clamped at zero; a negative net is never clamped.
        """
        gross = quantize_money(gross_amount)
        platform = quantize_money(max(Decimal('0'), platform_fee))
        processing = quantize_money(max(Decimal('0'), processing_fee))

        net = gross
        net -= platform
        net -= processing

        if net < 0:
            error = NegativeSettlementError(gross, platform, processing)
            logger.error(f"Negative settlement flagged for review: {error}")
            raise error

        return Settlement(
            gross_amount=gross,
            platform_fee=platform,
            processing_fee=processing,
            net_amount=net,
        )
