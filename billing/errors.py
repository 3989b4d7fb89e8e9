"""
Error Taxonomy for the Procur Billing Engine

Validation and rate errors subclass ValueError so that callers which
already treat ValueError as "bad input" keep working.
"""


class BillingError(Exception):
    """Base class for every error raised by the billing engine."""


class ValidationError(BillingError, ValueError):
    """Input violates a business rule (negative price, malformed line, ...)."""


class UnknownShippingOption(ValidationError):
    """Selected shipping option id is not on the configured menu."""

    def __init__(self, option_id: str, available: list[str] | None = None):
        self.option_id = option_id
        self.available = sorted(available or [])
        message = f"Unknown shipping option: {option_id!r}"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class InvalidRateError(ValidationError):
    """A tax or promo rate lies outside [0, 1]."""

    def __init__(self, name: str, rate):
        self.name = name
        self.rate = rate
        super().__init__(f"{name} must be between 0 and 1, got: {rate}")


class NegativeSettlementError(BillingError):
    """
    Fees exceed the gross amount.

    Never clamped: the seller must not see an artificially zeroed payout,
    so this is reported for manual review.
    """

    def __init__(self, gross_amount, platform_fee, processing_fee):
        self.gross_amount = gross_amount
        self.platform_fee = platform_fee
        self.processing_fee = processing_fee
        self.net_amount = gross_amount - platform_fee - processing_fee
        super().__init__(
            f"Settlement would be negative: gross {gross_amount} - platform fee "
            f"{platform_fee} - processing fee {processing_fee} = {self.net_amount}"
        )


class CaptureFailure(BillingError):
    """Document capture or export failed. Safe to retry the whole export."""


class UnsupportedOperation(BillingError):
    """Operation intentionally not supported pending a product decision."""


class InvalidStatusTransition(BillingError):
    """A transaction status change that the ledger does not allow."""
