# services/conversation_window.py
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Dict, List, Optional

from configurations.config import (
    CONVERSATION_MAX_MESSAGES,
    CONVERSATION_TIMEOUT_MINUTES,
)
from core.clock import Clock, utc_now
from core.log_format import get_logger
from models.conversation import ConversationEntry, Role

logger = get_logger("conversation_window")


class ConversationWindow:
    """
    Short rolling memory of each user's recent exchange.

    Keeps at most `max_messages` entries per user (oldest evicted first).
    When the last append is older than `timeout`, the whole window is wiped
    before any read or append goes through.
    """

    def __init__(
        self,
        max_messages: int = CONVERSATION_MAX_MESSAGES,
        timeout: timedelta = timedelta(minutes=CONVERSATION_TIMEOUT_MINUTES),
        clock: Clock = utc_now,
    ):
        self.max_messages = max_messages
        self.timeout = timeout
        self._clock = clock
        self._entries: Dict[str, Deque[ConversationEntry]] = {}
        self._last_activity: Dict[str, datetime] = {}

    # -----------------------------
    # Public API
    # -----------------------------
    def append(self, user_key: str, role: Role, text: str) -> None:
        now = self._clock()
        self._expire_if_inactive(user_key, now)

        window = self._entries.setdefault(
            user_key, deque(maxlen=self.max_messages)
        )
        window.append(ConversationEntry(role=role, content=text, timestamp=now))
        self._last_activity[user_key] = now

    def snapshot(self, user_key: str) -> List[ConversationEntry]:
        """Entries oldest first. Returns a copy."""
        self._expire_if_inactive(user_key, self._clock())
        return list(self._entries.get(user_key, ()))

    def clear(self, user_key: str) -> None:
        self._entries.pop(user_key, None)
        self._last_activity.pop(user_key, None)

    def size(self, user_key: str) -> int:
        self._expire_if_inactive(user_key, self._clock())
        return len(self._entries.get(user_key, ()))

    def cleanup_inactive(self) -> int:
        """Wipe every timed-out window. Returns how many users were cleared."""
        now = self._clock()
        stale = [
            key
            for key, last in list(self._last_activity.items())
            if self._is_stale(last, now)
        ]
        for key in stale:
            self.clear(key)

        if stale:
            logger.info(f"🧹 [CONVERSATION] cleared {len(stale)} inactive window(s)")
        return len(stale)

    # -----------------------------
    # Internals
    # -----------------------------
    def _is_stale(self, last: Optional[datetime], now: datetime) -> bool:
        return last is not None and now - last > self.timeout

    def _expire_if_inactive(self, user_key: str, now: datetime) -> None:
        if self._is_stale(self._last_activity.get(user_key), now):
            logger.info(f"⏰ [CONVERSATION] user_key={user_key} inactive, window wiped")
            self.clear(user_key)
