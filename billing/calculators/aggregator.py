"""
Line Item Aggregator

Reduces order lines into a subtotal.
"""

from dataclasses import replace
from decimal import Decimal

from ..errors import ValidationError
from ..models import LineItem


class LineItemAggregator:
    """Sums line totals over the lines that are still in the order."""

    def subtotal(self, items: list[LineItem]) -> Decimal:
        """
        Subtotal = Σ(unit_price × quantity) over items with quantity > 0.

        Lines with quantity <= 0 contribute nothing, which makes
        decrementing to zero equivalent to removing the line.
        """
        total = Decimal("0")
        for item in items:
            if item.quantity <= 0:
                continue
            self._check_price(item)
            total += self.line_total(item)
        return total

    @staticmethod
    def line_total(item: LineItem) -> Decimal:
        return item.unit_price * item.quantity

    @staticmethod
    def active_items(items: list[LineItem]) -> list[LineItem]:
        return [item for item in items if item.quantity > 0]

    def update_quantity(self, items: list[LineItem], product_id: str, quantity: int) -> list[LineItem]:
        """
        Return a new item list with `product_id` set to `quantity`.

        Quantity <= 0 removes the line. The input list is left untouched.
        """
        updated = []
        for item in items:
            if item.product_id != product_id:
                updated.append(item)
            elif quantity > 0:
                updated.append(replace(item, quantity=quantity))
        return updated

    @staticmethod
    def _check_price(item: LineItem) -> None:
        if item.unit_price < 0:
            raise ValidationError(
                f"unit_price cannot be negative for {item.product_id or item.description!r}, "
                f"got: {item.unit_price}"
            )
