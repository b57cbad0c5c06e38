# services/intent_dispatcher.py
from typing import Dict, Iterable, List, Optional, Tuple

from core.clock import Clock, utc_now
from core.intent import ClassifiedIntent, IntentKind
from core.log_format import get_logger
from executors.base import BaseExecutor, ExecutionResult
from executors.conversation import ConversationExecutor
from executors.listing import ListingExecutor
from executors.query import QueryExecutor
from executors.recurring import RecurringExecutor
from executors.rule import RuleExecutor
from executors.transaction import TransactionExecutor, with_defaults
from models.pending import PendingRecord
from services.backend_client import FinancialBackend
from services.confirmation_gate import ConfirmationGate
from services.response_formatter import ERROR_PREFIX, batch_report

logger = get_logger("intent_dispatcher")

BATCH_ITEM_UNEXPECTED_ERROR = "Error inesperado en la operación"


def default_executors(backend: FinancialBackend, clock: Clock = utc_now) -> List[BaseExecutor]:
    return [
        TransactionExecutor(backend, clock),
        ListingExecutor(backend),
        RecurringExecutor(backend),
        QueryExecutor(backend),
        RuleExecutor(backend),
        ConversationExecutor(backend),
    ]


class IntentDispatcher:
    """
    Routes classified intents to their executor.

    High-value creates never reach the backend from here directly: they
    are parked in the ConfirmationGate and the prompt is returned instead.
    """

    def __init__(
        self,
        backend: FinancialBackend,
        gate: ConfirmationGate,
        executors: Optional[Iterable[BaseExecutor]] = None,
        clock: Clock = utc_now,
    ):
        self.backend = backend
        self.gate = gate
        self._handlers: Dict[IntentKind, BaseExecutor] = {}
        self._fallback: Optional[BaseExecutor] = None

        for executor in executors or default_executors(backend, clock):
            for kind in executor.kinds:
                self._handlers[kind] = executor
            if isinstance(executor, ConversationExecutor):
                self._fallback = executor

        if self._fallback is None:
            self._fallback = ConversationExecutor(backend)

    def handler_for(self, kind: IntentKind) -> BaseExecutor:
        return self._handlers.get(kind, self._fallback)

    # -----------------------------
    # Single intent
    # -----------------------------
    async def execute_one(
        self, user_id: str, user_key: str, intent: ClassifiedIntent
    ) -> ExecutionResult:
        kind = intent.kind
        if kind.is_confirmable():
            intent = with_defaults(intent)
            if self.gate.requires_confirmation(intent.amount):
                logger.info(
                    f"⚠️ [DISPATCH] user_key={user_key}, kind={kind.value} above threshold, deferring"
                )
                prompt = self.gate.create_pending_single(kind, intent, user_id, user_key)
                return ExecutionResult(prompt, deferred=True)

        logger.info(f"➡️ [DISPATCH] user_key={user_key}, kind={kind.value}")
        return await self.handler_for(kind).execute(user_id, intent)

    # -----------------------------
    # Several intents in one message
    # -----------------------------
    async def execute_many(
        self, user_id: str, user_key: str, intents: List[ClassifiedIntent]
    ) -> ExecutionResult:
        prepared = [with_defaults(i) for i in intents]

        if self.gate.batch_requires_confirmation(prepared):
            logger.info(
                f"⚠️ [BATCH] user_key={user_key}, {len(prepared)} operations deferred for confirmation"
            )
            prompt = self.gate.create_pending_batch(prepared, user_id, user_key)
            return ExecutionResult(prompt, deferred=True)

        return await self._run_batch(user_id, user_key, prepared)

    # -----------------------------
    # After the user said yes
    # -----------------------------
    async def execute_confirmed(self, record: PendingRecord) -> ExecutionResult:
        if record.is_batch:
            intents = [item.intent for item in record.items]
            return await self._run_batch(record.user_id, record.user_key, intents)

        logger.info(
            f"✅ [DISPATCH] user_key={record.user_key}, executing confirmed {record.kind.value}"
        )
        return await self.handler_for(record.kind).execute(record.user_id, record.intent)

    async def _run_batch(
        self, user_id: str, user_key: str, intents: List[ClassifiedIntent]
    ) -> ExecutionResult:
        """Best-effort: every item runs even when earlier ones fail."""
        failures: List[Tuple[int, str]] = []

        for number, intent in enumerate(intents, start=1):
            logger.info(
                f"🔄 [BATCH] user_key={user_key}, operation {number}/{len(intents)}: {intent.kind.value}"
            )
            try:
                result = await self.handler_for(intent.kind).execute(user_id, intent)
            except Exception:
                logger.exception(
                    f"❌ [BATCH] user_key={user_key}, operation {number} ({intent.kind.value}) raised"
                )
                failures.append((number, BATCH_ITEM_UNEXPECTED_ERROR))
                continue

            if not result.ok:
                failures.append((number, result.message.removeprefix(ERROR_PREFIX).strip()))

        report = batch_report([(i.kind, i) for i in intents], failures)
        return ExecutionResult(report, ok=not failures)
