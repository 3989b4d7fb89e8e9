"""
Transaction Ledger

Freezes a breakdown into an immutable Transaction snapshot, moves
snapshots through their status lifecycle and summarizes seller earnings.
A status change produces a new snapshot; the monetary fields never change.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable

from .calculators.fees import quantize_money
from .errors import InvalidStatusTransition, ValidationError
from .models import MonetaryBreakdown, Transaction, TransactionStatus, TransactionType
from .output import to_money

ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: {
        TransactionStatus.PROCESSING,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    },
    TransactionStatus.PROCESSING: {
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
    },
    TransactionStatus.COMPLETED: set(),
    TransactionStatus.FAILED: set(),
    TransactionStatus.CANCELLED: set(),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_transaction_number(at: datetime | None = None) -> str:
    at = at or _now()
    return f"TXN-{at:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


class TransactionLedger:
    """Creates and advances transaction snapshots."""

    def finalize(
        self,
        breakdown: MonetaryBreakdown,
        order_number: str | None = None,
        transaction_number: str | None = None,
        transaction_type: TransactionType = TransactionType.SALE,
        at: datetime | None = None,
    ) -> Transaction:
        """Snapshot a breakdown as a pending transaction."""
        at = at or _now()
        return Transaction(
            transaction_number=transaction_number or new_transaction_number(at),
            type=transaction_type,
            status=TransactionStatus.PENDING,
            amount=quantize_money(breakdown.gross_amount),
            platform_fee=breakdown.platform_fee,
            payment_processing_fee=breakdown.processing_fee,
            net_amount=breakdown.net_amount,
            currency=breakdown.currency,
            breakdown=breakdown,
            order_number=order_number,
            created_at=at,
        )

    def transition(self, tx: Transaction, status: TransactionStatus, at: datetime | None = None) -> Transaction:
        """
        Return a copy of `tx` in `status`.

        Completing a transaction stamps processed_at.
        """
        status = TransactionStatus(status)
        if status not in ALLOWED_TRANSITIONS[tx.status]:
            raise InvalidStatusTransition(
                f"{tx.transaction_number}: cannot move from {tx.status.value} to {status.value}"
            )
        changes: Dict[str, Any] = {"status": status}
        if status == TransactionStatus.COMPLETED:
            changes["processed_at"] = at or _now()
        return replace(tx, **changes)

    def settle(self, tx: Transaction, at: datetime | None = None) -> Transaction:
        """Mark the seller payout for a completed transaction as settled."""
        if tx.status != TransactionStatus.COMPLETED:
            raise InvalidStatusTransition(
                f"{tx.transaction_number}: only completed transactions can settle, status is {tx.status.value}"
            )
        if tx.settled_at is not None:
            return tx
        return replace(tx, settled_at=at or _now())

    def summarize(self, transactions: Iterable[Transaction]) -> Dict[str, float]:
        """
        Summarize completed transactions.

        total_sales   = Σ amount of sales
        total_refunds = Σ amount of refunds
        total_fees    = Σ platform + processing fees on sales, plus fee transactions
        net_earnings  = total_sales - total_refunds - total_fees
        """
        sales = refunds = fees = Decimal('0')
        currencies = set()

        for tx in transactions:
            if tx.status != TransactionStatus.COMPLETED:
                continue
            currencies.add(tx.currency)
            if tx.type == TransactionType.SALE:
                sales += tx.amount
                fees += tx.platform_fee + tx.payment_processing_fee
            elif tx.type == TransactionType.REFUND:
                refunds += tx.amount
            elif tx.type == TransactionType.FEE:
                fees += tx.amount

        if len(currencies) > 1:
            raise ValidationError(f"Cannot summarize mixed currencies: {sorted(currencies)}")

        return {
            "total_sales": to_money(sales),
            "total_refunds": to_money(refunds),
            "total_fees": to_money(fees),
            "net_earnings": to_money(sales - refunds - fees),
        }


def transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    """Ledger record for API consumers."""
    return {
        "transaction_number": tx.transaction_number,
        "order_number": tx.order_number,
        "type": tx.type.value,
        "status": tx.status.value,
        "amount": to_money(tx.amount),
        "platform_fee": to_money(tx.platform_fee),
        "payment_processing_fee": to_money(tx.payment_processing_fee),
        "net_amount": to_money(tx.net_amount),
        "currency": tx.currency,
        "created_at": tx.created_at.isoformat() if tx.created_at else None,
        "processed_at": tx.processed_at.isoformat() if tx.processed_at else None,
        "settled_at": tx.settled_at.isoformat() if tx.settled_at else None,
    }
