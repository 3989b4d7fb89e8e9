"""
Promo Code State

A promo is either unapplied or applied; the only transition is
unapplied -> applied. Removal needs a product decision and is refused.
"""

from dataclasses import dataclass
from decimal import Decimal

from ..errors import UnsupportedOperation
from ..models import PromoCode


@dataclass(frozen=True)
class PromoState:
    """Immutable promo selection for one order."""

    applied: PromoCode | None = None

    @property
    def is_applied(self) -> bool:
        return self.applied is not None

    @property
    def rate(self) -> Decimal:
        return self.applied.rate if self.applied else Decimal("0")

    @property
    def code(self) -> str | None:
        return self.applied.code if self.applied else None

    def apply(self, promo: PromoCode) -> "PromoState":
        """
        Transition to applied.

        Re-applying the code already applied returns the same state. Once a
        code is applied, other codes do not replace it.
        """
        if self.applied is not None:
            return self
        return PromoState(applied=promo)

    def remove(self) -> "PromoState":
        raise UnsupportedOperation(
            "Removing an applied promo code is not supported; "
            "the order must be rebuilt without it"
        )


UNAPPLIED = PromoState()
