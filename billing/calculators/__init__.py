"""
Calculators Package

Provides all calculation components for order billing.
"""

from .aggregator import LineItemAggregator
from .breakdown import MonetaryBreakdownCalculator
from .fees import FeeScheduleResolver
from .promo import PromoState
from .settlement import SettlementProjector

__all__ = [
    "LineItemAggregator",
    "FeeScheduleResolver",
    "PromoState",
    "MonetaryBreakdownCalculator",
    "SettlementProjector",
]
