from core.intent import ClassifiedIntent, IntentKind
from executors.base import BaseExecutor, ExecutionResult
from services.response_formatter import DEFAULT_GREETING


class ConversationExecutor(BaseExecutor):
    """
    Executes conversation-type intents.
    The classifier already wrote the answer; unknown kinds land here too.
    """

    kinds = (IntentKind.QUESTION,)

    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        return ExecutionResult(intent.response or DEFAULT_GREETING)
