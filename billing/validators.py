"""
Input Validation for the Procur Billing Engine

Validates all input data before any arithmetic runs.
Raises ValidationError (a ValueError) with clear messages for any
constraint violation; rate problems raise InvalidRateError.
"""

from .errors import InvalidRateError, ValidationError
from .models import FeeKind, FeePolicy, LineItem, OrderInput


class InputValidator:
    """Validates order input according to business rules."""

    def validate(self, input_data: OrderInput, policy: FeePolicy | None = None) -> None:
        """
        Run all validations. Raises ValidationError if any check fails.

        `policy` overrides the order's own fee policy when given.
        """
        self._validate_items(input_data.items)
        self._validate_shipping(input_data.shipping_option_id)
        policy = policy or input_data.fee_policy
        if policy is not None:
            self._validate_policy(policy)

    def _validate_items(self, items: list[LineItem]) -> None:
        """Validate line-level constraints."""
        if not any(item.quantity > 0 for item in items):
            raise ValidationError("Order must contain at least one item with a positive quantity")

        for item in items:
            if item.quantity > 0 and item.unit_price < 0:
                raise ValidationError(f"unit_price cannot be negative, got: {item.unit_price} ({item.description})")

    def _validate_shipping(self, option_id: str) -> None:
        # Unknown ids are rejected by the resolver; here we only catch a missing selection
        if not option_id:
            raise ValidationError("shipping_option is required")

    def _validate_policy(self, policy: FeePolicy) -> None:
        """Validate fee policy constraints."""
        if not (0 <= policy.tax_rate <= 1):
            raise InvalidRateError("tax_rate", policy.tax_rate)

        for name, rule in (("platform_fee", policy.platform_fee), ("processing_fee", policy.processing_fee)):
            if rule.kind == FeeKind.PERCENT and not (0 <= rule.value <= 1):
                raise InvalidRateError(f"{name} rate", rule.value)

        if not policy.currency:
            raise ValidationError("currency is required")
