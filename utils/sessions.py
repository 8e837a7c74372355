from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

DEFAULT_TTL_SECONDS = 600


class PendingOperation(str, Enum):
    ADD_PAGE = "addpage"
    REMOVE_PAGE = "remove"


@dataclass(frozen=True)
class PendingInput:
    operation: PendingOperation
    created_at: float


class SessionStore:
    """Per-chat conversation state for commands that wait for a follow-up message.

    A chat holds at most one pending operation. Entries expire after ``ttl``
    seconds and are dropped on the next lookup.
    """

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._pending: Dict[str, PendingInput] = {}
        self._lock = threading.Lock()

    def await_input(self, chat_id: str, operation: PendingOperation) -> PendingInput:
        pending = PendingInput(operation=PendingOperation(operation), created_at=self._clock())
        with self._lock:
            self._pending[str(chat_id)] = pending
        return pending

    def pending(self, chat_id: str) -> Optional[PendingInput]:
        with self._lock:
            entry = self._pending.get(str(chat_id))
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl:
                del self._pending[str(chat_id)]
                return None
            return entry

    def complete(self, chat_id: str) -> Optional[PendingInput]:
        """Pop the pending operation so the current message can fulfil it."""
        entry = self.pending(chat_id)
        if entry is not None:
            with self._lock:
                self._pending.pop(str(chat_id), None)
        return entry

    def cancel(self, chat_id: str) -> bool:
        with self._lock:
            return self._pending.pop(str(chat_id), None) is not None
