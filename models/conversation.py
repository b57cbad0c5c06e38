# models/conversation.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

    def label(self) -> str:
        return "Usuario" if self is Role.USER else "Asistente"


@dataclass(frozen=True)
class ConversationEntry:
    role: Role
    content: str
    timestamp: datetime
