"""
PROCUR BILLING ENGINE
Breakdown, settlement and document generation for marketplace orders
"""

from .models import MonetaryBreakdown, OrderInput, Transaction
from .processor import CheckoutProcessor

__all__ = ['CheckoutProcessor', 'OrderInput', 'MonetaryBreakdown', 'Transaction']
