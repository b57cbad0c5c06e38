from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

from core.intent import ClassifiedIntent, IntentKind
from services.backend_client import FinancialBackend


@dataclass(frozen=True)
class ExecutionResult:
    message: str
    ok: bool = True
    deferred: bool = False

    @classmethod
    def failure(cls, message: str) -> "ExecutionResult":
        return cls(message=message, ok=False)


class BaseExecutor(ABC):
    """
    Base contract for all executors.
    An executor owns a fixed set of intent kinds and turns one
    ClassifiedIntent into a reply. No routing and no confirmation
    logic here: the dispatcher decides what reaches an executor.
    """

    kinds: Tuple[IntentKind, ...] = ()

    def __init__(self, backend: FinancialBackend):
        self.backend = backend

    @abstractmethod
    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        pass
