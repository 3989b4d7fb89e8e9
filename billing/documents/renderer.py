"""
Document Renderer

Projects a breakdown plus party data into a fixed-layout document model
(receipt, invoice or checkout summary). Amounts come from the breakdown as
persisted; the only thing recomputed here is each line total, as a
cross-check against the aggregated subtotal.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable

from .. import config
from ..calculators.aggregator import LineItemAggregator
from ..errors import ValidationError
from ..models import (
    Document,
    DocumentHeader,
    DocumentKind,
    DocumentRow,
    LineItem,
    MonetaryBreakdown,
    Party,
    PaymentDetails,
    TotalsRow,
    Transaction,
)
from ..output import format_currency, format_discount, to_money

VARIANTS = {
    DocumentKind.RECEIPT: ("compact", "summary", "statement"),
    DocumentKind.INVOICE: ("classic", "soft", "statement"),
    DocumentKind.CHECKOUT_SUMMARY: ("summary",),
}

TITLES = {
    DocumentKind.RECEIPT: "Payment receipt",
    DocumentKind.INVOICE: "Tax invoice",
    DocumentKind.CHECKOUT_SUMMARY: "Order summary",
}


class DocumentRenderer:
    """Builds Document models. Holds no per-document state."""

    def __init__(self, brand: str = config.BRAND):
        self.brand = brand
        self.aggregator = LineItemAggregator()

    def render(
        self,
        kind: DocumentKind,
        breakdown: MonetaryBreakdown,
        items: list[LineItem],
        *,
        document_number: str,
        date: str,
        status: str,
        buyer: Party,
        seller: Party,
        ship_to: Party | None = None,
        variant: str | None = None,
        reference_numbers: Iterable[tuple[str, str]] = (),
        meta_lines: Iterable[str] = (),
        payment: PaymentDetails | None = None,
        payment_instructions: Iterable[str] = (),
        footer_note: str | None = None,
    ) -> Document:
        kind = DocumentKind(kind)
        variant = self._resolve_variant(kind, variant)
        currency = breakdown.currency

        rows = self._build_rows(items, currency)
        self._reconcile(rows, breakdown)

        instructions = tuple(payment_instructions)
        if kind == DocumentKind.INVOICE and not instructions:
            instructions = config.DEFAULT_PAYMENT_INSTRUCTIONS

        return Document(
            kind=kind,
            variant=variant,
            header=DocumentHeader(
                brand=self.brand,
                title=TITLES[kind],
                document_number=document_number,
                date=date,
                status=status,
                reference_numbers=tuple(reference_numbers),
            ),
            parties=self._build_parties(kind, buyer, seller, ship_to),
            rows=rows,
            totals=self._build_totals(breakdown),
            currency=currency,
            meta_lines=tuple(meta_lines),
            payment=payment if kind == DocumentKind.RECEIPT else None,
            payment_instructions=instructions,
            footer_note=footer_note if footer_note is not None else config.DEFAULT_FOOTER_NOTE,
        )

    def render_transaction(self, kind: DocumentKind, tx: Transaction, items: list[LineItem], **kwargs) -> Document:
        """Render from a finalized snapshot. The snapshot is only read."""
        kwargs.setdefault("document_number", tx.transaction_number)
        kwargs.setdefault("status", tx.status.value)
        if tx.order_number:
            refs = list(kwargs.pop("reference_numbers", ()))
            refs.insert(0, ("Order", tx.order_number))
            kwargs["reference_numbers"] = refs
        return self.render(kind, tx.breakdown, items, **kwargs)

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _resolve_variant(self, kind: DocumentKind, variant: str | None) -> str:
        allowed = VARIANTS[kind]
        if variant is None:
            return allowed[0]
        if variant not in allowed:
            raise ValidationError(
                f"Unknown {kind.value} variant: {variant!r}. Must be one of {', '.join(allowed)}"
            )
        return variant

    def _build_parties(
        self, kind: DocumentKind, buyer: Party, seller: Party, ship_to: Party | None
    ) -> tuple[tuple[str, Party], ...]:
        if kind == DocumentKind.RECEIPT:
            return (("Received from", buyer), ("Paid to", seller))
        return (("Bill to", buyer), ("Ship to", ship_to or buyer), ("From", seller))

    def _build_rows(self, items: list[LineItem], currency: str) -> tuple[DocumentRow, ...]:
        """Itemized table. Each line total is recomputed from its own price and quantity."""
        rows = []
        for item in self.aggregator.active_items(items):
            if item.unit_price < 0:
                raise ValidationError(f"unit_price cannot be negative, got: {item.unit_price} ({item.description})")
            line_total = item.unit_price * item.quantity
            rows.append(DocumentRow(
                description=item.description,
                details=item.details,
                quantity=f"{item.quantity} {item.unit}",
                unit_price=format_currency(item.unit_price, currency),
                line_total=format_currency(line_total, currency),
                line_total_value=line_total,
            ))
        return tuple(rows)

    def _reconcile(self, rows: tuple[DocumentRow, ...], breakdown: MonetaryBreakdown) -> None:
        row_sum = sum((row.line_total_value for row in rows), Decimal("0"))
        if row_sum != breakdown.subtotal:
            raise ValidationError(
                f"Line totals ({row_sum}) do not reconcile with breakdown subtotal ({breakdown.subtotal})"
            )

    def _build_totals(self, b: MonetaryBreakdown) -> tuple[TotalsRow, ...]:
        """Fixed order: subtotal, shipping, platform fee, tax, discount, total."""
        cur = b.currency
        tax_label = f"Tax ({b.tax_rate * 100:.2f}%)"
        discount_label = f"Discount ({b.promo_code})" if b.promo_code else "Discount"
        return (
            TotalsRow("Subtotal", format_currency(b.subtotal, cur)),
            TotalsRow("Shipping", format_currency(b.shipping_fee, cur)),
            TotalsRow("Platform fee", format_currency(b.platform_fee, cur)),
            TotalsRow(tax_label, format_currency(b.tax_amount, cur)),
            TotalsRow(discount_label, format_discount(b.discount_amount, cur)),
            TotalsRow("Total", format_currency(b.total_amount, cur), emphasis=True),
        )


def document_to_dict(document: Document) -> Dict[str, Any]:
    """JSON view of a document model."""
    header = document.header
    return {
        "kind": document.kind.value,
        "variant": document.variant,
        "currency": document.currency,
        "header": {
            "brand": header.brand,
            "title": header.title,
            "document_number": header.document_number,
            "date": header.date,
            "status": header.status,
            "reference_numbers": [{"label": k, "value": v} for k, v in header.reference_numbers],
        },
        "parties": [{"label": label, "lines": party.lines()} for label, party in document.parties],
        "items": [
            {
                "description": row.description,
                "details": row.details,
                "quantity": row.quantity,
                "unit_price": row.unit_price,
                "line_total": row.line_total,
                "line_total_value": to_money(row.line_total_value),
            }
            for row in document.rows
        ],
        "totals": [{"label": t.label, "value": t.value} for t in document.totals],
        "meta_lines": list(document.meta_lines),
        "payment": {
            "method": document.payment.method,
            "reference": document.payment.reference,
            "account_ending": document.payment.account_ending,
            "status": document.payment.status,
        } if document.payment else None,
        "payment_instructions": list(document.payment_instructions),
        "footer_note": document.footer_note,
    }
