# services/humanizer.py
from typing import Callable

from pydantic_ai import Agent

from agents.humanizer_agent import get_humanizer_agent
from configurations.config import HUMANIZE_RESPONSES
from core.intent import IntentKind
from core.log_format import get_logger

logger = get_logger("humanizer")

MIN_HUMANIZED_LENGTH = 20


class Humanizer:
    """Best-effort rewrite of a structured reply into a friendlier one."""

    def __init__(
        self,
        agent_factory: Callable[[], Agent] = get_humanizer_agent,
        enabled: bool = HUMANIZE_RESPONSES,
    ):
        self._agent_factory = agent_factory
        self.enabled = enabled

    async def humanize(self, reply: str, user_text: str, kind: IntentKind) -> str:
        if not self.enabled:
            return reply

        prompt = (
            f"PREGUNTA DEL USUARIO: {user_text}\n"
            f"TIPO DE CONSULTA: {kind.value}\n\n"
            f"RESPUESTA ESTRUCTURADA:\n{reply}"
        )
        try:
            result = await self._agent_factory().run(prompt)
            text = (result.output or "").strip()
        except Exception as e:
            logger.warning(f"⚠️ [HUMANIZE] failed, keeping original reply: {e}")
            return reply

        if len(text) <= MIN_HUMANIZED_LENGTH:
            return reply
        return text
