"""
Unit Tests for Monetary Breakdown Calculator

Tests verify calculations against known expected values.
"""

from decimal import Decimal

import pytest

from billing.calculators import FeeScheduleResolver, MonetaryBreakdownCalculator, PromoState
from billing.calculators.fees import quantize_money
from billing.errors import InvalidRateError, NegativeSettlementError, UnknownShippingOption
from billing.models import FeePolicy, FeeRule, LineItem, PromoCode
from billing.output import format_currency

TAX_8 = FeePolicy(tax_rate=Decimal("0.08"))
SAVE10 = PromoState(applied=PromoCode("SAVE10", Decimal("0.10")))


@pytest.fixture
def calculator():
    return MonetaryBreakdownCalculator()


@pytest.fixture
def items():
    return [
        LineItem("tomatoes", "Roma tomatoes", Decimal("24.99"), 2, unit="crate"),
        LineItem("peppers", "Scotch bonnet peppers", Decimal("18.50"), 3, unit="kg"),
    ]


class TestReferenceCart:
    """Items [{24.99, 2}, {18.50, 3}], standard shipping, tax 8%."""

    def test_without_promo(self, calculator, items):
        b = calculator.calculate(items, "standard", TAX_8)
        assert b.subtotal == Decimal("105.48")
        assert b.shipping_fee == Decimal("12.50")
        assert b.discount_amount == Decimal("0")
        assert b.taxable_base == Decimal("117.98")
        assert b.tax_amount == Decimal("9.4384")
        assert b.total_amount == Decimal("127.4184")
        assert format_currency(b.total_amount) == "$127.42"

    def test_with_save10(self, calculator, items):
        b = calculator.calculate(items, "standard", TAX_8, SAVE10)
        assert b.discount_amount == Decimal("10.548")
        # Tax base is pre-discount
        assert b.taxable_base == Decimal("117.98")
        assert b.tax_amount == Decimal("9.4384")
        assert b.total_amount == Decimal("116.8704")
        assert format_currency(b.total_amount) == "$116.87"
        assert b.promo_code == "SAVE10"

    def test_gross_is_total(self, calculator, items):
        b = calculator.calculate(items, "standard", TAX_8)
        assert b.gross_amount == b.total_amount

    def test_free_shipping(self, calculator, items):
        b = calculator.calculate(items, "free", TAX_8)
        assert b.taxable_base == Decimal("105.48")
        assert b.tax_amount == Decimal("8.4384")


class TestInvariants:
    def test_total_identity(self, calculator, items):
        b = calculator.calculate(items, "express", TAX_8, SAVE10)
        assert b.total_amount == b.subtotal + b.shipping_fee + b.tax_amount - b.discount_amount

    def test_no_drift_across_repeated_calls(self, calculator, items):
        results = [calculator.calculate(items, "standard", TAX_8, SAVE10) for _ in range(50)]
        assert all(r == results[0] for r in results)

    def test_inputs_not_mutated(self, calculator, items):
        snapshot = list(items)
        calculator.calculate(items, "standard", TAX_8, SAVE10)
        assert items == snapshot

    def test_settlement_identity(self, calculator, items):
        policy = FeePolicy(
            tax_rate=Decimal("0.08"),
            platform_fee=FeeRule.percent("0.05"),
            processing_fee=FeeRule.percent("0.029"),
        )
        b = calculator.calculate(items, "standard", policy, SAVE10)
        assert b.net_amount + b.platform_fee + b.processing_fee == quantize_money(b.gross_amount)

    def test_zero_quantity_line_equals_removed_line(self, calculator, items):
        zeroed = [items[0], LineItem("peppers", "Scotch bonnet peppers", Decimal("18.50"), 0)]
        assert calculator.calculate(zeroed, "standard", TAX_8) == calculator.calculate(
            [items[0]], "standard", TAX_8
        )


class TestRates:
    def test_tax_rate_above_one(self, calculator, items):
        with pytest.raises(InvalidRateError, match="tax_rate"):
            calculator.calculate(items, "standard", FeePolicy(tax_rate=Decimal("1.5")))

    def test_negative_tax_rate(self, calculator, items):
        with pytest.raises(InvalidRateError):
            calculator.calculate(items, "standard", FeePolicy(tax_rate=Decimal("-0.01")))

    def test_promo_rate_out_of_range(self, calculator, items):
        bad = PromoState(applied=PromoCode("BROKEN", Decimal("1.2")))
        with pytest.raises(InvalidRateError, match="promo_rate"):
            calculator.calculate(items, "standard", TAX_8, bad)

    def test_boundary_rates_allowed(self, calculator, items):
        b = calculator.calculate(items, "free", FeePolicy(tax_rate=Decimal("1")))
        assert b.tax_amount == b.subtotal


class TestFailures:
    def test_unknown_shipping(self, calculator, items):
        with pytest.raises(UnknownShippingOption):
            calculator.calculate(items, "overnight", TAX_8)

    def test_fees_exceeding_gross(self, calculator, items):
        policy = FeePolicy(platform_fee=FeeRule.flat("500"))
        with pytest.raises(NegativeSettlementError):
            calculator.calculate(items, "standard", policy)

    def test_custom_resolver(self, items):
        resolver = FeeScheduleResolver(promo_codes=[])
        calculator = MonetaryBreakdownCalculator(resolver=resolver)
        b = calculator.calculate(items, "express", FeePolicy())
        assert b.total_amount == Decimal("130.48")
