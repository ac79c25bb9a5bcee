"""Per-chat conversation state for the bot front-end.

Each chat is either idle or waiting for exactly one structured reply. The
reply is consumed once, successful or not, and the chat returns to idle.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Protocol

from models import TransactionField


class ChatState(Enum):
    IDLE = "idle"
    AWAITING_TRANSACTION = "awaiting_transaction"
    AWAITING_DELETE_TRANSACTION = "awaiting_delete_transaction"
    AWAITING_FILTER_VALUE = "awaiting_filter_value"
    AWAITING_SET_BUDGET = "awaiting_set_budget"
    AWAITING_FILE = "awaiting_file"


class InputKind(Enum):
    TEXT = "text"
    DOCUMENT = "document"


# (state, input) -> next state. Pairs not listed are ignored and keep the state.
TRANSITIONS: Dict[tuple[ChatState, InputKind], ChatState] = {
    (ChatState.AWAITING_TRANSACTION, InputKind.TEXT): ChatState.IDLE,
    (ChatState.AWAITING_DELETE_TRANSACTION, InputKind.TEXT): ChatState.IDLE,
    (ChatState.AWAITING_FILTER_VALUE, InputKind.TEXT): ChatState.IDLE,
    (ChatState.AWAITING_SET_BUDGET, InputKind.TEXT): ChatState.IDLE,
    (ChatState.AWAITING_FILE, InputKind.DOCUMENT): ChatState.IDLE,
}


def next_state(state: ChatState, kind: InputKind) -> Optional[ChatState]:
    """Target state for an input, or ``None`` when the input is not expected."""
    return TRANSITIONS.get((state, kind))


@dataclass(frozen=True)
class SessionContext:
    state: ChatState = ChatState.IDLE
    filter_field: Optional[TransactionField] = None

    def awaiting(self, state: ChatState, **changes) -> SessionContext:
        return replace(self, state=state, **changes)

    def resolved(self) -> SessionContext:
        return SessionContext()


class SessionStore(Protocol):
    def get(self, chat_id: int) -> SessionContext: ...

    def set(self, chat_id: int, context: SessionContext) -> None: ...

    def clear(self, chat_id: int) -> None: ...


class InMemorySessionStore:
    """Dict-backed store, safe to share between concurrent update handlers."""

    def __init__(self):
        self._sessions: Dict[int, SessionContext] = {}
        self._lock = threading.Lock()

    def get(self, chat_id: int) -> SessionContext:
        with self._lock:
            return self._sessions.get(chat_id, SessionContext())

    def set(self, chat_id: int, context: SessionContext) -> None:
        with self._lock:
            if context.state is ChatState.IDLE and context.filter_field is None:
                self._sessions.pop(chat_id, None)
            else:
                self._sessions[chat_id] = context

    def clear(self, chat_id: int) -> None:
        with self._lock:
            self._sessions.pop(chat_id, None)

    def __len__(self):
        with self._lock:
            return len(self._sessions)
