# services/confirmation_gate.py
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Optional

from configurations.config import (
    CONFIRMATION_THRESHOLD,
    CONFIRMATION_WINDOW_SECONDS,
)
from core.clock import Clock, utc_now
from core.intent import ClassifiedIntent, IntentKind
from core.log_format import get_logger
from models.pending import BatchItem, PendingAction, PendingBatchAction, PendingRecord
from services.response_formatter import (
    batch_confirmation_prompt,
    format_amount,
    single_confirmation_prompt,
)

logger = get_logger("confirmation_gate")

AFFIRMATIVE_WORDS = frozenset(
    {"sí", "si", "confirmar", "confirmo", "yes", "ok", "dale", "hazlo", "adelante"}
)
NEGATIVE_WORDS = frozenset(
    {"no", "cancelar", "cancelo", "cancel", "anular", "olvídalo", "olvidalo", "mejor no"}
)
_IGNORED_PUNCTUATION = "!.¡"


class ConfirmationDecision(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    UNCLEAR = "unclear"


def classify_confirmation_text(text: Optional[str]) -> ConfirmationDecision:
    """
    Exact-vocabulary match only. Anything else is UNCLEAR and must be
    treated as a fresh message by the caller.
    """
    if not text:
        return ConfirmationDecision.UNCLEAR

    normalized = text.strip().lower().strip(_IGNORED_PUNCTUATION).strip()
    if normalized in AFFIRMATIVE_WORDS:
        return ConfirmationDecision.CONFIRM
    if normalized in NEGATIVE_WORDS:
        return ConfirmationDecision.CANCEL
    return ConfirmationDecision.UNCLEAR


class ConfirmationGate:
    """
    Holds at most one pending high-value action (single or batch) per user key.

    Every mutation of the slot is a single dict assignment or pop, so a
    create always fully replaces whatever was there and a confirm can
    only ever hand the record out once.
    """

    def __init__(
        self,
        threshold: Decimal = CONFIRMATION_THRESHOLD,
        window: timedelta = timedelta(seconds=CONFIRMATION_WINDOW_SECONDS),
        clock: Clock = utc_now,
    ):
        self.threshold = threshold
        self.window = window
        self._clock = clock
        self._pending: Dict[str, PendingRecord] = {}

    # -----------------------------
    # Threshold checks
    # -----------------------------
    def requires_confirmation(self, amount: Optional[Decimal]) -> bool:
        return amount is not None and amount > self.threshold

    def batch_requires_confirmation(self, intents: Iterable[ClassifiedIntent]) -> bool:
        return any(
            intent.kind.is_confirmable() and self.requires_confirmation(intent.amount)
            for intent in intents
        )

    # -----------------------------
    # Create (replace-on-create)
    # -----------------------------
    def create_pending_single(
        self,
        kind: IntentKind,
        intent: ClassifiedIntent,
        user_id: str,
        user_key: str,
    ) -> str:
        now = self._clock()
        record = PendingAction(
            user_key=user_key,
            user_id=user_id,
            kind=kind,
            intent=intent,
            created_at=now,
            expires_at=now + self.window,
        )
        self._replace(user_key, record)

        logger.info(
            f"⏳ [PENDING] user_key={user_key}, kind={kind.value}, "
            f"amount={format_amount(intent.amount)}"
        )
        return single_confirmation_prompt(record)

    def create_pending_batch(
        self,
        intents: Iterable[ClassifiedIntent],
        user_id: str,
        user_key: str,
    ) -> str:
        now = self._clock()
        record = PendingBatchAction(
            user_key=user_key,
            user_id=user_id,
            items=tuple(BatchItem(kind=i.kind, intent=i) for i in intents),
            created_at=now,
            expires_at=now + self.window,
        )
        self._replace(user_key, record)

        logger.info(
            f"⏳ [PENDING_BATCH] user_key={user_key}, operations={record.size}"
        )
        return batch_confirmation_prompt(record)

    def _replace(self, user_key: str, record: PendingRecord) -> None:
        previous = self._pending.get(user_key)
        self._pending[user_key] = record
        if previous is not None:
            logger.debug(f"🔄 [PENDING] user_key={user_key} replaced previous pending action")

    # -----------------------------
    # Lookup / resolve
    # -----------------------------
    def peek(self, user_key: str) -> Optional[PendingRecord]:
        record = self._pending.get(user_key)
        if record is None:
            return None
        if record.is_expired(self._clock()):
            self._discard_if_same(user_key, record)
            return None
        return record

    def discard_expired(self, user_key: str) -> bool:
        """Drop an expired record for the key. True when one was there."""
        record = self._pending.get(user_key)
        if record is None or not record.is_expired(self._clock()):
            return False
        self._discard_if_same(user_key, record)
        logger.info(f"⏰ [PENDING] user_key={user_key} pending action expired")
        return True

    def confirm(self, user_key: str) -> Optional[PendingRecord]:
        record = self._pending.pop(user_key, None)
        if record is None:
            return None
        if record.is_expired(self._clock()):
            logger.info(f"⏰ [CONFIRM] user_key={user_key} tried to confirm an expired action")
            return None

        logger.info(f"✅ [CONFIRM] user_key={user_key}, batch={record.is_batch}")
        return record

    def cancel(self, user_key: str) -> bool:
        removed = self._pending.pop(user_key, None) is not None
        if removed:
            logger.info(f"❌ [CANCEL] user_key={user_key}")
        return removed

    # -----------------------------
    # Housekeeping
    # -----------------------------
    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [
            (key, record)
            for key, record in list(self._pending.items())
            if record.is_expired(now)
        ]
        for key, record in expired:
            self._discard_if_same(key, record)

        if expired:
            logger.info(f"🧹 [PENDING] removed {len(expired)} expired action(s)")
        return len(expired)

    def pending_count(self) -> int:
        """Outstanding (not yet expired) confirmations across all keys."""
        now = self._clock()
        return sum(1 for record in list(self._pending.values()) if not record.is_expired(now))

    def _discard_if_same(self, user_key: str, record: PendingRecord) -> None:
        # A concurrent create may have replaced the record; never drop the new one.
        if self._pending.get(user_key) is record:
            self._pending.pop(user_key, None)
