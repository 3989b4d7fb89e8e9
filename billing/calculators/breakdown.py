"""
Monetary Breakdown Calculator

Composes aggregator, fee resolver and settlement projector into the
canonical breakdown. The operation order is fixed and must not change:
every surface that shows an order's totals depends on it.
"""

from decimal import Decimal

from ..errors import InvalidRateError
from ..models import FeePolicy, LineItem, MonetaryBreakdown
from .aggregator import LineItemAggregator
from .fees import FeeScheduleResolver
from .promo import UNAPPLIED, PromoState
from .settlement import SettlementProjector


class MonetaryBreakdownCalculator:
    """Builds a MonetaryBreakdown. Pure: inputs are never mutated."""

    def __init__(
        self,
        aggregator: LineItemAggregator | None = None,
        resolver: FeeScheduleResolver | None = None,
        settlement: SettlementProjector | None = None,
    ):
        self.aggregator = aggregator or LineItemAggregator()
        self.resolver = resolver or FeeScheduleResolver()
        self.settlement = settlement or SettlementProjector()

    def calculate(
        self,
        items: list[LineItem],
        shipping_option_id: str,
        policy: FeePolicy,
        promo: PromoState = UNAPPLIED,
    ) -> MonetaryBreakdown:
        """
        Calculate the breakdown.

        Order of operations:
        1. subtotal       = Σ(unit_price × quantity)
        2. shipping_fee   = menu lookup
        3. discount       = subtotal × promo_rate
        4. taxable_base   = subtotal + shipping_fee   (discount NOT subtracted)
        5. tax_amount     = taxable_base × tax_rate
        6. total_amount   = subtotal + shipping_fee + tax_amount - discount
        7. gross_amount   = total_amount, fed to the settlement projector
        """
        self._check_rate("tax_rate", policy.tax_rate)
        self._check_rate("promo_rate", promo.rate)

        # Step 1
        subtotal = self.aggregator.subtotal(items)

        # Step 2
        shipping_fee = self.resolver.shipping(shipping_option_id)

        # Step 3
        discount_amount = subtotal * promo.rate

        # Step 4: tax base is pre-discount
        taxable_base = subtotal + shipping_fee

        # Step 5
        tax_amount = taxable_base * policy.tax_rate

        # Step 6
        total_amount = subtotal + shipping_fee + tax_amount - discount_amount

        # Step 7
        gross_amount = total_amount
        settlement = self.settlement.project(
            gross_amount,
            self.resolver.platform_fee(policy, subtotal),
            self.resolver.processing_fee(policy, gross_amount),
        )

        return MonetaryBreakdown(
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            discount_amount=discount_amount,
            taxable_base=taxable_base,
            tax_amount=tax_amount,
            total_amount=total_amount,
            gross_amount=gross_amount,
            platform_fee=settlement.platform_fee,
            processing_fee=settlement.processing_fee,
            net_amount=settlement.net_amount,
            tax_rate=policy.tax_rate,
            promo_rate=promo.rate,
            promo_code=promo.code,
            shipping_option_id=shipping_option_id,
            currency=policy.currency,
        )

    @staticmethod
    def _check_rate(name: str, rate: Decimal) -> None:
        if not (0 <= rate <= 1):
            raise InvalidRateError(name, rate)
