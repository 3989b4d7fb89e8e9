"""
Domain Models for the Procur Billing Engine

These dataclasses provide type-safe representations of all billing entities.
All monetary values use Decimal for precision; rounding to cents only
happens at the display boundary (see output.py and documents/).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from .errors import ValidationError


def to_decimal(value, default: str = "0") -> Decimal:
    """Convert a raw JSON number (or string) to Decimal without float drift."""
    if value is None:
        return Decimal(default)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Not a valid amount: {value!r}") from None
    if not result.is_finite():
        raise ValidationError(f"Amount must be a finite number, got: {value!r}")
    return result


def to_quantity(value) -> int:
    """Whole-number quantity. Fractions and booleans are rejected, never truncated."""
    if isinstance(value, bool):
        raise ValidationError(f"quantity must be a whole number, got: {value!r}")
    amount = to_decimal(value)
    if amount != amount.to_integral_value():
        raise ValidationError(f"quantity must be a whole number, got: {value!r}")
    return int(amount)


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class LineItem:
    """A single order line."""

    product_id: str
    description: str
    unit_price: Decimal
    quantity: int
    unit: str = "unit"
    details: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            product_id=str(data.get("product_id") or data.get("id") or ""),
            description=data.get("description") or data.get("product_name") or "",
            unit_price=to_decimal(data["unit_price"]),
            quantity=to_quantity(data["quantity"]),
            unit=data.get("unit") or data.get("unit_of_measurement") or "unit",
            details=data.get("details"),
        )


@dataclass(frozen=True)
class ShippingOption:
    """An entry on the shipping menu."""

    option_id: str
    name: str
    fee: Decimal
    delivery_estimate: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ShippingOption":
        return cls(
            option_id=data["id"],
            name=data.get("name", data["id"]),
            fee=to_decimal(data["fee"]),
            delivery_estimate=data.get("delivery_estimate", ""),
        )


@dataclass(frozen=True)
class PromoCode:
    """A percentage-off-subtotal promo code."""

    code: str
    rate: Decimal
    active: bool = True

    def matches(self, code: str) -> bool:
        return self.code.strip().lower() == code.strip().lower()

    @classmethod
    def from_dict(cls, data: dict) -> "PromoCode":
        return cls(
            code=data["code"],
            rate=to_decimal(data["rate"]),
            active=data.get("active", True),
        )


class FeeKind(str, Enum):
    FLAT = "flat"
    PERCENT = "percent"


@dataclass(frozen=True)
class FeeRule:
    """A platform or processing fee: flat amount or fraction of a base."""

    kind: FeeKind = FeeKind.FLAT
    value: Decimal = Decimal("0")

    def amount(self, base: Decimal) -> Decimal:
        if self.kind == FeeKind.PERCENT:
            return base * self.value
        return self.value

    @classmethod
    def flat(cls, value) -> "FeeRule":
        return cls(kind=FeeKind.FLAT, value=to_decimal(value))

    @classmethod
    def percent(cls, value) -> "FeeRule":
        return cls(kind=FeeKind.PERCENT, value=to_decimal(value))

    @classmethod
    def from_dict(cls, data) -> "FeeRule":
        # A bare number is a flat fee
        if not isinstance(data, dict):
            return cls.flat(data)
        return cls(kind=FeeKind(data.get("type", "flat")), value=to_decimal(data.get("value")))


@dataclass(frozen=True)
class FeePolicy:
    """Fees and tax applicable to an order."""

    platform_fee: FeeRule = field(default_factory=FeeRule)
    processing_fee: FeeRule = field(default_factory=FeeRule)
    tax_rate: Decimal = Decimal("0")
    currency: str = "USD"

    @classmethod
    def from_dict(cls, data: dict, defaults: "FeePolicy | None" = None) -> "FeePolicy":
        """Build a policy, falling back to `defaults` for any omitted key."""
        base = defaults or cls()
        return cls(
            platform_fee=FeeRule.from_dict(data["platform_fee"]) if "platform_fee" in data else base.platform_fee,
            processing_fee=(
                FeeRule.from_dict(data["processing_fee"]) if "processing_fee" in data else base.processing_fee
            ),
            tax_rate=to_decimal(data["tax_rate"]) if "tax_rate" in data else base.tax_rate,
            currency=data.get("currency", base.currency),
        )


@dataclass
class OrderInput:
    """Complete input for computing an order's breakdown."""

    items: list[LineItem]
    shipping_option_id: str
    promo_codes: list[str] = field(default_factory=list)
    fee_policy: FeePolicy | None = None
    order_number: str | None = None

    @classmethod
    def from_dict(cls, data: dict, default_policy: FeePolicy | None = None) -> "OrderInput":
        promo = data.get("promo_codes", [])
        # Accept a single code as well as a list
        if isinstance(promo, str):
            promo = [promo]
        if data.get("promo_code"):
            promo = list(promo) + [data["promo_code"]]
        return cls(
            items=[LineItem.from_dict(i) for i in data.get("items", [])],
            shipping_option_id=data["shipping_option"],
            promo_codes=list(promo),
            fee_policy=FeePolicy.from_dict(data.get("fee_policy", {}), defaults=default_policy),
            order_number=data.get("order_number"),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass(frozen=True)
class Settlement:
    """Seller-side view of a breakdown. Fees and net are posted in cents."""

    gross_amount: Decimal
    platform_fee: Decimal
    processing_fee: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class MonetaryBreakdown:
    """
    Canonical decomposition of an order's charge.

    Buyer-side amounts keep full Decimal precision. Consumers display
    these values; they never recompute them.
    """

    subtotal: Decimal
    shipping_fee: Decimal
    discount_amount: Decimal
    taxable_base: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    gross_amount: Decimal
    platform_fee: Decimal
    processing_fee: Decimal
    net_amount: Decimal
    tax_rate: Decimal = Decimal("0")
    promo_rate: Decimal = Decimal("0")
    promo_code: str | None = None
    shipping_option_id: str | None = None
    currency: str = "USD"


@dataclass
class CheckoutContext:
    """
    Holds all intermediate state during checkout processing.
    This is the "bag" that flows through the pipeline.
    """

    # Input (immutable during processing)
    order: OrderInput
    policy: FeePolicy

    # Step results (populated as we go)
    shipping: ShippingOption | None = None
    promo_code: str | None = None
    ignored_promo_codes: list[str] = field(default_factory=list)
    breakdown: MonetaryBreakdown | None = None


@dataclass
class CheckoutResult:
    """Final output of checkout processing."""

    order_summary: dict
    line_items: list
    breakdown: dict
    settlement: dict
    promo: dict
    currency: str


class TransactionType(str, Enum):
    SALE = "sale"
    REFUND = "refund"
    PAYOUT = "payout"
    FEE = "fee"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger snapshot of a finalized breakdown."""

    transaction_number: str
    type: TransactionType
    status: TransactionStatus
    amount: Decimal
    platform_fee: Decimal
    payment_processing_fee: Decimal
    net_amount: Decimal
    currency: str
    breakdown: MonetaryBreakdown
    order_number: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None
    settled_at: datetime | None = None


# =============================================================================
# DOCUMENT MODELS
# =============================================================================


class DocumentKind(str, Enum):
    RECEIPT = "receipt"
    INVOICE = "invoice"
    CHECKOUT_SUMMARY = "checkout_summary"


@dataclass(frozen=True)
class Party:
    """Buyer or seller identity as printed on a document."""

    name: str = ""
    contact: str | None = None
    address_lines: tuple[str, ...] = ()
    country: str | None = None
    email: str | None = None
    phone: str | None = None
    tax_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "Party":
        data = data or {}
        lines = data.get("address_lines")
        if lines is None and data.get("address"):
            lines = [data["address"]]
        return cls(
            name=data.get("name", ""),
            contact=data.get("contact"),
            address_lines=tuple(lines or ()),
            country=data.get("country"),
            email=data.get("email"),
            phone=data.get("phone"),
            tax_id=data.get("tax_id"),
        )

    def lines(self) -> list[str]:
        """Printable lines, skipping empty fields."""
        out = [self.name] if self.name else []
        if self.contact:
            out.append(f"Attn: {self.contact}")
        out.extend(self.address_lines)
        for value in (self.country, self.email, self.phone, self.tax_id):
            if value:
                out.append(value)
        return out


@dataclass(frozen=True)
class PaymentDetails:
    """Payment block printed on receipts."""

    method: str = ""
    reference: str = ""
    account_ending: str | None = None
    status: str = ""

    @classmethod
    def from_dict(cls, data: dict | None) -> "PaymentDetails":
        data = data or {}
        return cls(
            method=data.get("method", ""),
            reference=data.get("reference", ""),
            account_ending=data.get("account_ending"),
            status=data.get("status", ""),
        )


@dataclass(frozen=True)
class DocumentHeader:
    brand: str
    title: str
    document_number: str
    date: str
    status: str
    reference_numbers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class DocumentRow:
    """One itemized row; display strings plus the recomputed line total."""

    description: str
    details: str | None
    quantity: str
    unit_price: str
    line_total: str
    line_total_value: Decimal


@dataclass(frozen=True)
class TotalsRow:
    label: str
    value: str
    emphasis: bool = False


@dataclass(frozen=True)
class Document:
    """Fixed-layout rendering of a breakdown, ready for print or export."""

    kind: DocumentKind
    variant: str
    header: DocumentHeader
    parties: tuple[tuple[str, Party], ...]
    rows: tuple[DocumentRow, ...]
    totals: tuple[TotalsRow, ...]
    currency: str
    meta_lines: tuple[str, ...] = ()
    payment: PaymentDetails | None = None
    payment_instructions: tuple[str, ...] = ()
    footer_note: str = ""
