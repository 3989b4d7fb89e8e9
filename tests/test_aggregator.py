"""
Unit Tests for Line Item Aggregator

Tests verify subtotals and the decrement-to-remove cart behaviour.
"""

from decimal import Decimal

import pytest

from billing.calculators import LineItemAggregator
from billing.errors import ValidationError
from billing.models import LineItem


def make_item(product_id, price, quantity, **kwargs):
    return LineItem(
        product_id=product_id,
        description=kwargs.pop("description", f"Product {product_id}"),
        unit_price=Decimal(price),
        quantity=quantity,
        **kwargs,
    )


class TestSubtotal:
    """Subtotal = Σ(unit_price × quantity) over lines with quantity > 0."""

    @pytest.fixture
    def aggregator(self):
        return LineItemAggregator()

    def test_reference_cart(self, aggregator):
        """24.99 × 2 + 18.50 × 3 = 105.48"""
        items = [make_item("tomatoes", "24.99", 2), make_item("peppers", "18.50", 3)]
        assert aggregator.subtotal(items) == Decimal("105.48")

    def test_empty_order(self, aggregator):
        assert aggregator.subtotal([]) == Decimal("0")

    def test_zero_quantity_contributes_nothing(self, aggregator):
        items = [make_item("tomatoes", "24.99", 2), make_item("peppers", "18.50", 0)]
        assert aggregator.subtotal(items) == Decimal("49.98")

    def test_negative_quantity_contributes_nothing(self, aggregator):
        items = [make_item("tomatoes", "24.99", 2), make_item("peppers", "18.50", -1)]
        assert aggregator.subtotal(items) == Decimal("49.98")

    def test_keeps_full_precision(self, aggregator):
        """Sub-cent unit prices are not rounded away."""
        items = [make_item("saffron", "0.125", 3)]
        assert aggregator.subtotal(items) == Decimal("0.375")

    def test_negative_price_raises(self, aggregator):
        items = [make_item("tomatoes", "-1.00", 1)]
        with pytest.raises(ValidationError, match="unit_price cannot be negative"):
            aggregator.subtotal(items)

    def test_free_item_allowed(self, aggregator):
        items = [make_item("sample", "0.00", 5), make_item("tomatoes", "24.99", 1)]
        assert aggregator.subtotal(items) == Decimal("24.99")


class TestLineTotal:
    def test_line_total(self):
        assert LineItemAggregator.line_total(make_item("yams", "3.75", 4)) == Decimal("15.00")

    def test_active_items_filters_non_positive(self):
        items = [make_item("a", "1", 1), make_item("b", "1", 0), make_item("c", "1", -2)]
        assert [i.product_id for i in LineItemAggregator.active_items(items)] == ["a"]


class TestUpdateQuantity:
    """Setting quantity ≤ 0 is equivalent to removing the line."""

    @pytest.fixture
    def aggregator(self):
        return LineItemAggregator()

    @pytest.fixture
    def items(self):
        return [make_item("tomatoes", "24.99", 2), make_item("peppers", "18.50", 3)]

    def test_increment(self, aggregator, items):
        updated = aggregator.update_quantity(items, "tomatoes", 5)
        assert updated[0].quantity == 5
        assert aggregator.subtotal(updated) == Decimal("180.45")

    def test_decrement_to_zero_removes_line(self, aggregator, items):
        updated = aggregator.update_quantity(items, "peppers", 0)
        assert [i.product_id for i in updated] == ["tomatoes"]

    def test_minus_one_removes_without_raising(self, aggregator, items):
        updated = aggregator.update_quantity(items, "peppers", -1)
        assert [i.product_id for i in updated] == ["tomatoes"]

    def test_removal_matches_zero_quantity_subtotal(self, aggregator, items):
        removed = aggregator.update_quantity(items, "peppers", 0)
        zeroed = [items[0], make_item("peppers", "18.50", 0)]
        assert aggregator.subtotal(removed) == aggregator.subtotal(zeroed)

    def test_input_untouched(self, aggregator, items):
        aggregator.update_quantity(items, "tomatoes", 0)
        assert len(items) == 2
        assert items[0].quantity == 2

    def test_unknown_product_is_noop(self, aggregator, items):
        assert aggregator.update_quantity(items, "okra", 3) == items

    def test_zeroed_negative_price_line_matches_removal(self, aggregator, items):
        """A line at quantity 0 is ignored entirely, price included."""
        zeroed = items + [make_item("refund-adjustment", "-5.00", 0)]
        assert aggregator.subtotal(zeroed) == aggregator.subtotal(items)
