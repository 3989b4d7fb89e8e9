"""
Checkout Processor - Main Orchestrator

Coordinates the checkout pipeline through discrete, testable steps.
"""

from datetime import date
from typing import Any, Dict

from . import config
from .calculators import (
    FeeScheduleResolver,
    LineItemAggregator,
    MonetaryBreakdownCalculator,
    PromoState,
    SettlementProjector,
)
from .documents.renderer import DocumentRenderer
from .errors import ValidationError
from .ledger import TransactionLedger, transaction_to_dict
from .models import (
    CheckoutContext,
    CheckoutResult,
    Document,
    DocumentKind,
    FeePolicy,
    OrderInput,
    Party,
    PaymentDetails,
    Transaction,
)
from .output import OutputBuilder
from .validators import InputValidator


class CheckoutProcessor:
    """
    Main orchestrator for checkout processing.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Build Context
    3. Resolve Shipping Option
    4. Resolve Promo State
    5. Calculate Breakdown (subtotal, shipping, discount, tax, total, settlement)
    6. Build Output
    """

    def __init__(
        self,
        resolver: FeeScheduleResolver | None = None,
        default_policy: FeePolicy | None = None,
    ):
        self.validator = InputValidator()
        self.resolver = resolver or FeeScheduleResolver()
        self.default_policy = default_policy or config.load_fee_policy()
        self.aggregator = LineItemAggregator()
        self.calculator = MonetaryBreakdownCalculator(
            aggregator=self.aggregator,
            resolver=self.resolver,
            settlement=SettlementProjector(),
        )
        self.ledger = TransactionLedger()
        self.output_builder = OutputBuilder()
        self.renderer = DocumentRenderer()

    def process(self, input_data: OrderInput) -> CheckoutContext:
        """
        Run an order through the pipeline.

        Args:
            input_data: OrderInput object

        Returns:
            CheckoutContext with the breakdown populated
        """
        # Step 1: Validate
        policy = input_data.fee_policy or self.default_policy
        self.validator.validate(input_data, policy)

        # Step 2: Build initial context
        ctx = CheckoutContext(order=input_data, policy=policy)

        # Step 3: Resolve shipping (raises UnknownShippingOption)
        ctx.shipping = self.resolver.shipping_option(input_data.shipping_option_id)

        # Step 4: Resolve promo state
        promo = PromoState()
        for code in input_data.promo_codes:
            promo = self.resolver.apply_promo(promo, code)
            # Unknown codes and codes shadowed by an earlier promo are reported back
            if not promo.is_applied or not promo.applied.matches(code):
                ctx.ignored_promo_codes.append(code)
        ctx.promo_code = promo.code

        # Step 5: Calculate breakdown
        ctx.breakdown = self.calculator.calculate(
            input_data.items,
            input_data.shipping_option_id,
            policy,
            promo,
        )
        return ctx

    def summarize(self, input_data: OrderInput) -> CheckoutResult:
        """Process an order and build the checkout summary."""
        # Step 6: Build output
        return self.output_builder.build(self.process(input_data))

    def finalize(self, input_data: OrderInput, transaction_number: str | None = None) -> Transaction:
        """Process an order and freeze its breakdown into a pending sale."""
        ctx = self.process(input_data)
        return self.ledger.finalize(
            ctx.breakdown,
            order_number=input_data.order_number,
            transaction_number=transaction_number,
        )

    def summarize_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Build a checkout summary from raw dictionary input.

        Convenience method for API usage.
        """
        input_data = OrderInput.from_dict(data, default_policy=self.default_policy)
        return self._result_to_dict(self.summarize(input_data))

    def finalize_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        input_data = OrderInput.from_dict(data, default_policy=self.default_policy)
        tx = self.finalize(input_data, transaction_number=data.get("transaction_number"))
        return transaction_to_dict(tx)

    def _result_to_dict(self, result: CheckoutResult) -> Dict[str, Any]:
        """Convert CheckoutResult to dictionary for API response."""
        return {
            "order_summary": result.order_summary,
            "line_items": result.line_items,
            "breakdown": result.breakdown,
            "settlement": result.settlement,
            "promo": result.promo,
            "currency": result.currency,
        }

    def render_document_from_dict(self, kind: str, data: Dict[str, Any]) -> Document:
        """
        Compute an order's breakdown and render it as a document.

        Document fields sit next to the order fields in `data`:
        document_number, date, status, variant, buyer, seller, ship_to,
        reference_numbers, meta_lines, payment, payment_instructions, footer_note.
        """
        try:
            kind = DocumentKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown document kind: {kind!r}") from None

        input_data = OrderInput.from_dict(data, default_policy=self.default_policy)
        document_number = data.get("document_number") or input_data.order_number
        if not document_number:
            raise ValidationError("document_number or order_number is required")

        ctx = self.process(input_data)
        return self.renderer.render(
            kind,
            ctx.breakdown,
            input_data.items,
            document_number=document_number,
            date=data.get("date") or date.today().strftime("%d %b %Y"),
            status=data.get("status", "pending"),
            variant=data.get("variant"),
            buyer=Party.from_dict(data.get("buyer")),
            seller=Party.from_dict(data.get("seller")),
            ship_to=Party.from_dict(data["ship_to"]) if data.get("ship_to") else None,
            reference_numbers=[(r["label"], r["value"]) for r in data.get("reference_numbers", [])],
            meta_lines=data.get("meta_lines", []),
            payment=PaymentDetails.from_dict(data["payment"]) if data.get("payment") else None,
            payment_instructions=data.get("payment_instructions", []),
            footer_note=data.get("footer_note"),
        )
