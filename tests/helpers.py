# tests/helpers.py
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from core.intent import ClassifiedIntent
from models.conversation import ConversationEntry
from services.confirmation_gate import ConfirmationGate
from services.conversation_window import ConversationWindow
from services.humanizer import Humanizer
from services.intent_dispatcher import IntentDispatcher
from services.message_processor import MessageProcessor

START = datetime(2025, 11, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually driven clock; call it like utc_now()."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def intent(kind: str, **fields) -> ClassifiedIntent:
    return ClassifiedIntent.model_validate({"intent": kind, **fields})


class ScriptedClassifier:
    """
    Classifier double: exact text -> list of intent dicts.
    Unscripted text becomes a plain question. Records every call.
    """

    def __init__(self, script: Optional[Dict[str, List[dict]]] = None, delay: float = 0):
        self.script = dict(script or {})
        self.delay = delay
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self.active = 0
        self.max_active = 0

    def add(self, text: str, *intents: dict) -> None:
        self.script[text] = list(intents)

    async def classify(
        self, text: str, context: Sequence[ConversationEntry] = ()
    ) -> List[ClassifiedIntent]:
        self.calls.append((text, list(context)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            raw = self.script.get(text, [{"intent": "question", "response": "(sin guion)"}])
            return [ClassifiedIntent.model_validate(item) for item in raw]
        finally:
            self.active -= 1


def build_processor(
    backend,
    classifier,
    clock,
    humanizer: Optional[Humanizer] = None,
) -> MessageProcessor:
    gate = ConfirmationGate(clock=clock)
    return MessageProcessor(
        classifier=classifier,
        dispatcher=IntentDispatcher(backend, gate, clock=clock),
        gate=gate,
        window=ConversationWindow(clock=clock),
        humanizer=humanizer,
    )
