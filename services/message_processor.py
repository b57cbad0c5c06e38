# services/message_processor.py
"""
Entry point of the assistant: one inbound text -> one reply string.

Order of work for a turn (serialized per user key):
  1. yes/no answers to a pending high-value action are resolved first;
  2. anything else is classified with the prior conversation as context;
  3. intents are dispatched (single or batch), possibly deferred;
  4. single read-heavy answers may be humanized;
  5. the reply is remembered and returned.
"""
from typing import Callable, List, Optional, Protocol, Sequence

from configurations.config import HUMANIZE_MIN_LENGTH, USE_MOCK_BACKEND
from core.intent import ClassifiedIntent
from core.log_format import get_logger
from executors.base import ExecutionResult
from models.conversation import ConversationEntry, Role
from services.backend_client import HttpFinancialBackend
from services.confirmation_gate import (
    ConfirmationDecision,
    ConfirmationGate,
    classify_confirmation_text,
)
from services.conversation_window import ConversationWindow
from services.humanizer import Humanizer
from services.intent_classifier import IntentClassifier
from services.intent_dispatcher import IntentDispatcher
from services.keyed_lock import KeyedLock
from services.mock_backend import InMemoryFinancialBackend
from services.response_formatter import (
    CANCELLED_MESSAGE,
    EXPIRED_MESSAGE,
    GENERIC_APOLOGY,
    NOTHING_PENDING_MESSAGE,
)

logger = get_logger("message_processor")


class Classifier(Protocol):
    async def classify(
        self, text: str, context: Sequence[ConversationEntry] = ()
    ) -> List[ClassifiedIntent]: ...


def should_humanize(intents: List[ClassifiedIntent], result: ExecutionResult) -> bool:
    if len(intents) != 1 or not result.ok or result.deferred:
        return False
    intent = intents[0]
    return (
        intent.kind.is_read_heavy()
        and len(result.message) > HUMANIZE_MIN_LENGTH
        and not intent.is_filtered_view()
    )


class MessageProcessor:
    def __init__(
        self,
        classifier: Classifier,
        dispatcher: IntentDispatcher,
        gate: ConfirmationGate,
        window: ConversationWindow,
        humanizer: Optional[Humanizer] = None,
        resolve_user_id: Callable[[str], str] = lambda user_key: user_key,
    ):
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.gate = gate
        self.window = window
        self.humanizer = humanizer
        self.resolve_user_id = resolve_user_id
        self._locks = KeyedLock()

    async def process_message(self, user_key: str, text: str) -> str:
        """Never raises; unexpected failures become the generic apology."""
        async with self._locks.hold(user_key):
            kind = None
            recorded = False
            try:
                decision = classify_confirmation_text(text)
                if decision is not ConfirmationDecision.UNCLEAR:
                    self.window.append(user_key, Role.USER, text)
                    recorded = True
                    reply = await self._answer_confirmation(user_key, decision)
                    self.window.append(user_key, Role.ASSISTANT, reply)
                    return reply

                context = self.window.snapshot(user_key)
                self.window.append(user_key, Role.USER, text)
                recorded = True
                intents = await self._classify(user_key, text, context)
                kind = intents[0].kind.value if len(intents) == 1 else "batch"

                user_id = self.resolve_user_id(user_key)
                if len(intents) == 1:
                    result = await self.dispatcher.execute_one(user_id, user_key, intents[0])
                else:
                    result = await self.dispatcher.execute_many(user_id, user_key, intents)

                reply = result.message
                if self.humanizer is not None and should_humanize(intents, result):
                    reply = await self.humanizer.humanize(reply, text, intents[0].kind)

                self.window.append(user_key, Role.ASSISTANT, reply)
                return reply

            except Exception:
                logger.exception(
                    f"❌ [ERROR] user_key={user_key}, intent={kind}, text_length={len(text or '')}"
                )
                if not recorded:
                    self.window.append(user_key, Role.USER, text)
                self.window.append(user_key, Role.ASSISTANT, GENERIC_APOLOGY)
                return GENERIC_APOLOGY

    def pending_count(self) -> int:
        return self.gate.pending_count()

    # -----------------------------
    # Steps
    # -----------------------------
    async def _answer_confirmation(self, user_key: str, decision: ConfirmationDecision) -> str:
        logger.info(f"🔐 [CONFIRMATION] user_key={user_key}, decision={decision.value}")
        expired = self.gate.discard_expired(user_key)

        if decision is ConfirmationDecision.CANCEL:
            if self.gate.cancel(user_key):
                return CANCELLED_MESSAGE
            return EXPIRED_MESSAGE if expired else NOTHING_PENDING_MESSAGE

        record = self.gate.confirm(user_key)
        if record is None:
            return EXPIRED_MESSAGE if expired else NOTHING_PENDING_MESSAGE

        result = await self.dispatcher.execute_confirmed(record)
        return result.message

    async def _classify(
        self, user_key: str, text: str, context: Sequence[ConversationEntry]
    ) -> List[ClassifiedIntent]:
        intents = await self.classifier.classify(text, context)
        logger.info(
            f"🧭 [INTENT] user_key={user_key}, kinds={[i.kind.value for i in intents]}, "
            f"text='{text[:100]}'"
        )
        return intents


def build_message_processor(backend=None, use_mock: Optional[bool] = None) -> MessageProcessor:
    """Wire the default stack: HTTP (or in-memory) backend, Gemini classifier and humanizer."""
    if backend is None:
        mock = USE_MOCK_BACKEND if use_mock is None else use_mock
        backend = InMemoryFinancialBackend() if mock else HttpFinancialBackend()
        logger.info(f"🔌 [SETUP] backend={type(backend).__name__}")

    gate = ConfirmationGate()
    return MessageProcessor(
        classifier=IntentClassifier(),
        dispatcher=IntentDispatcher(backend, gate),
        gate=gate,
        window=ConversationWindow(),
        humanizer=Humanizer(),
    )
