# services/intent_classifier.py
from typing import Callable, List, Sequence

from pydantic_ai import Agent

from agents.intent_agent import get_intent_agent
from core.errors import ClassificationFailure
from core.intent import ClassifiedIntent, IntentKind
from core.log_format import get_logger
from models.conversation import ConversationEntry
from services.response_formatter import CLASSIFICATION_FALLBACK

logger = get_logger("intent_classifier")


def render_context(entries: Sequence[ConversationEntry]) -> str:
    if not entries:
        return ""
    lines = ["Historial reciente de la conversación:"]
    lines.extend(f"{e.role.label()}: {e.content}" for e in entries)
    return "\n".join(lines) + "\n"


def fallback_intents() -> List[ClassifiedIntent]:
    return [ClassifiedIntent(kind=IntentKind.QUESTION, response=CLASSIFICATION_FALLBACK)]


class IntentClassifier:
    """
    Turns one user message (plus the prior conversation) into an ordered,
    non-empty list of intents. Never raises: any failure becomes a single
    `question` intent carrying the apology text.
    """

    def __init__(self, agent_factory: Callable[[], Agent] = get_intent_agent):
        self._agent_factory = agent_factory

    async def classify(
        self, text: str, context: Sequence[ConversationEntry] = ()
    ) -> List[ClassifiedIntent]:
        try:
            intents = await self._run(text, context)
        except ClassificationFailure as e:
            logger.warning(f"⚠️ [CLASSIFY] falling back to question: {e}")
            return fallback_intents()

        logger.info(
            f"🧭 [CLASSIFY] {len(intents)} intent(s): {[i.kind.value for i in intents]}"
        )
        return intents

    async def _run(self, text: str, context: Sequence[ConversationEntry]) -> List[ClassifiedIntent]:
        history = render_context(context)
        prompt = f"{history}\nMensaje actual del usuario: {text}" if history else text

        try:
            result = await self._agent_factory().run(prompt)
        except Exception as e:
            raise ClassificationFailure(f"{type(e).__name__}: {e}") from e

        intents = list(result.output or [])
        if not intents:
            raise ClassificationFailure("classifier returned no intents")
        return intents
