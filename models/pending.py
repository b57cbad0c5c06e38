# models/pending.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Tuple, Union

from core.intent import ClassifiedIntent, IntentKind, TransactionType


@dataclass(frozen=True)
class PendingAction:
    """A single high-value create waiting for the user's yes/no."""

    user_key: str
    user_id: str
    kind: IntentKind
    intent: ClassifiedIntent
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def is_batch(self) -> bool:
        return False


@dataclass(frozen=True)
class BatchItem:
    kind: IntentKind
    intent: ClassifiedIntent


@dataclass(frozen=True)
class PendingBatchAction:
    """
    A whole multi-intent message held back because at least one
    create in it crossed the threshold. Every item is kept, in order,
    including the ones that would not have needed confirmation alone.
    """

    user_key: str
    user_id: str
    items: Tuple[BatchItem, ...]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def is_batch(self) -> bool:
        return True

    @property
    def size(self) -> int:
        return len(self.items)

    def _total(self, tx_type: TransactionType) -> Decimal:
        return sum(
            (
                item.intent.amount
                for item in self.items
                if item.kind.is_confirmable()
                and item.kind.transaction_type() == tx_type
                and item.intent.amount is not None
            ),
            Decimal("0"),
        )

    @property
    def total_expenses(self) -> Decimal:
        return self._total(TransactionType.EXPENSE)

    @property
    def total_income(self) -> Decimal:
        return self._total(TransactionType.INCOME)


PendingRecord = Union[PendingAction, PendingBatchAction]
