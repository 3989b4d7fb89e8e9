"""
Output Builder

Constructs the checkout summary record from the processing context.
This is the display boundary: Decimal values are rounded to cents here
and nowhere earlier.
"""

from decimal import Decimal

from .calculators.fees import quantize_money
from .models import CheckoutContext, CheckoutResult, MonetaryBreakdown

CURRENCY_SYMBOLS = {
    "USD": "$",
}


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places (half-up)."""
    return float(quantize_money(value))


def format_currency(value: Decimal, currency: str = "USD") -> str:
    """
    Format an amount for display: currency prefix, thousands separator,
    exactly 2 decimals, leading minus for negatives.
    """
    amount = quantize_money(value)
    prefix = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{prefix}{abs(amount):,.2f}"


def format_discount(value: Decimal, currency: str = "USD") -> str:
    """Discounts always read as a deduction: "-$10.55", never "($10.55)"."""
    amount = quantize_money(value)
    if amount == 0:
        return format_currency(amount, currency)
    return format_currency(-abs(amount), currency)


def _pct(rate: Decimal) -> str:
    return f"{rate * 100:.2f}%"


class OutputBuilder:
    """Builds the checkout summary response."""

    def build(self, ctx: CheckoutContext) -> CheckoutResult:
        """Construct the complete checkout result from processing context."""
        b = ctx.breakdown
        return CheckoutResult(
            order_summary=self._build_order_summary(ctx),
            line_items=self._build_line_items(ctx),
            breakdown=self._build_breakdown(ctx),
            settlement=self._build_settlement(b),
            promo=self._build_promo(ctx),
            currency=b.currency,
        )

    def _build_order_summary(self, ctx: CheckoutContext) -> dict:
        """Build order summary section."""
        order = ctx.order
        shipping = ctx.shipping
        active = [i for i in order.items if i.quantity > 0]
        return {
            "order_number": order.order_number,
            "item_count": sum(i.quantity for i in active),
            "unique_products": len(active),
            "shipping_option": {
                "id": shipping.option_id,
                "name": shipping.name,
                "delivery_estimate": shipping.delivery_estimate,
            } if shipping else None,
        }

    def _build_line_items(self, ctx: CheckoutContext) -> list:
        currency = ctx.breakdown.currency
        lines = []
        for item in ctx.order.items:
            if item.quantity <= 0:
                continue
            line_total = item.unit_price * item.quantity
            lines.append({
                "product_id": item.product_id,
                "description": item.description,
                "unit": item.unit,
                "quantity": item.quantity,
                "unit_price": to_money(item.unit_price),
                "line_total": to_money(line_total),
                "display": f"{item.quantity} × {format_currency(item.unit_price, currency)} = "
                           f"{format_currency(line_total, currency)}",
            })
        return lines

    def _build_breakdown(self, ctx: CheckoutContext) -> dict:
        """Build breakdown section with value, display string and description for each field."""
        b = ctx.breakdown
        cur = b.currency

        def money(value: Decimal, description: str, display: str | None = None) -> dict:
            return {
                "value": to_money(value),
                "display": display or format_currency(value, cur),
                "description": description,
            }

        shipping_name = ctx.shipping.name if ctx.shipping else b.shipping_option_id
        return {
            "subtotal": money(
                b.subtotal,
                "Sum of unit price × quantity over all items in the order",
            ),
            "shipping_fee": money(
                b.shipping_fee,
                f"{shipping_name} flat fee",
            ),
            "discount_amount": money(
                b.discount_amount,
                f"{_pct(b.promo_rate)} × subtotal ({format_currency(b.subtotal, cur)}) from promo {b.promo_code}"
                if b.promo_code else "No promo code applied",
                display=format_discount(b.discount_amount, cur),
            ),
            "taxable_base": money(
                b.taxable_base,
                f"subtotal ({format_currency(b.subtotal, cur)}) + shipping ({format_currency(b.shipping_fee, cur)}), "
                f"before discount",
            ),
            "tax_amount": money(
                b.tax_amount,
                f"{_pct(b.tax_rate)} × {format_currency(b.taxable_base, cur)}",
            ),
            "total_amount": money(
                b.total_amount,
                f"subtotal ({format_currency(b.subtotal, cur)}) + shipping ({format_currency(b.shipping_fee, cur)}) "
                f"+ tax ({format_currency(b.tax_amount, cur)}) - discount ({format_currency(b.discount_amount, cur)})",
            ),
        }

    def _build_settlement(self, b: MonetaryBreakdown) -> dict:
        """Seller-side figures, already posted in cents."""
        return {
            "gross_amount": to_money(b.gross_amount),
            "platform_fee": to_money(b.platform_fee),
            "processing_fee": to_money(b.processing_fee),
            "net_amount": to_money(b.net_amount),
        }

    def _build_promo(self, ctx: CheckoutContext) -> dict:
        return {
            "applied": ctx.promo_code is not None,
            "code": ctx.promo_code,
            "ignored_codes": list(ctx.ignored_promo_codes),
        }
